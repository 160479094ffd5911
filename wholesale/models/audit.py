"""
wholesale/models/audit.py

Subscription audit events (tier changes, billing outcomes, limit hits).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict


SubscriptionEventType = Literal[
    "upgrade",
    "downgrade",
    "cancel",
    "reactivate",
    "payment_success",
    "payment_failed",
    "webhook_received",
    "manual_override",
    "product_unlock",
    "limit_reached",
]


class SubscriptionAuditEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    event_type: SubscriptionEventType
    timestamp: datetime
    from_tier: Optional[str] = None
    to_tier: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
