"""
wholesale/models/subscription.py

Account subscription state as read by the gating layer.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from wholesale.models.plan import Plan


class AccountSubscription(BaseModel):
    """
    AccountSubscription links an account to its current plan.

    ``plan`` is None when no plan record resolves for ``current_plan``;
    callers then fall back to the default limits. Billing identifiers are
    opaque here.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    current_plan: str = "free"
    subscription_status: str = "inactive"
    plan: Optional[Plan] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_ends_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.subscription_status == "active"
