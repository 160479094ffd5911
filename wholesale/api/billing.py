"""
Billing API routes.

- POST /api/billing/webhook: Handle Stripe subscription webhooks
"""
from fastapi import APIRouter, Request

from wholesale.core.errors import BillingDisabledError
from wholesale.features.billing.service import billing_enabled, process_webhook_event


router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.post("/webhook")
async def handle_webhook(request: Request):
    """
    Handle Stripe webhook events.

    Verifies the Stripe-Signature header and syncs the account's plan.

    Returns:
        {"received": true, "eventType": ..., "handled": bool}

    Errors:
        400: Invalid signature or payload
        503: Billing disabled
    """
    if not billing_enabled():
        raise BillingDisabledError("Billing disabled")

    # Raw body is required for signature verification
    body = await request.body()
    headers = dict(request.headers)

    return process_webhook_event(headers, body)
