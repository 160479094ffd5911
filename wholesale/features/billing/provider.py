"""
Billing provider protocol.

Defines the interface the webhook pipeline needs from a billing provider,
so subscription sync does not depend on Stripe types.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class BillingWebhookResult:
    """Normalized billing webhook event."""
    event_id: str
    event_type: str
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    price_id: Optional[str] = None
    status: Optional[str] = None  # active, canceled, past_due, etc.
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class BillingProvider(Protocol):
    """
    Protocol for billing providers.

    Implementations must verify the webhook signature before returning a
    parsed event.
    """

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> BillingWebhookResult:
        """
        Verify and parse a webhook delivery.

        Args:
            payload: Raw request body (signature is computed over it)
            signature: Value of the provider's signature header

        Raises:
            BillingWebhookError: If signature invalid or parsing fails
        """
        ...
