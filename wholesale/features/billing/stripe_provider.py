"""
Stripe billing provider implementation.

Verifies the Stripe-Signature header and normalizes subscription and
invoice events into BillingWebhookResult.
"""
from typing import Dict, Any, Optional
from datetime import datetime
from decimal import Decimal
import stripe

from wholesale.core.errors import BillingWebhookError
from wholesale.features.billing.provider import BillingWebhookResult


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        tolerance: int = 300,
    ):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key
            webhook_secret: Stripe webhook signing secret (whsec_...)
            tolerance: Maximum age of a signed delivery, in seconds
        """
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

        if self.secret_key:
            stripe.api_key = self.secret_key

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        try:
            if not signature:
                raise BillingWebhookError("Missing stripe-signature header")

            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret, tolerance=self.tolerance
            )
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        if "type" not in event:
            raise BillingWebhookError("Invalid payload: missing event type")

        return self._parse_event(event)

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        event_type = event["type"]
        data = (event.get("data") or {}).get("object") or {}

        result = BillingWebhookResult(
            event_id=event.get("id") or "",
            event_type=event_type,
            customer_id=data.get("customer"),
            metadata=dict(data.get("metadata") or {}),
        )

        if event_type.startswith("customer.subscription."):
            result.subscription_id = data.get("id")
            result.status = data.get("status")
            result.cancel_at_period_end = bool(data.get("cancel_at_period_end", False))

            items = (data.get("items") or {}).get("data") or []
            if items:
                result.price_id = (items[0].get("price") or {}).get("id")

            period_end_ts = data.get("current_period_end")
            if period_end_ts:
                result.current_period_end = datetime.fromtimestamp(period_end_ts)

        elif event_type.startswith("invoice."):
            result.subscription_id = data.get("subscription")
            amount_minor = data.get("amount_paid") if event_type == "invoice.payment_succeeded" else data.get("amount_due")
            if amount_minor is not None:
                result.amount = Decimal(amount_minor) / Decimal(100)
            if data.get("currency"):
                result.currency = str(data["currency"]).upper()

        return result
