"""
Billing service orchestrator.

Keeps the account's plan in sync with Stripe:
- Webhook verification (via StripeProvider)
- Subscription lifecycle (created, updated, deleted)
- Payment outcomes recorded in the subscription audit log

Checkout and portal flows live in the dashboard and are not served here.
"""
from typing import Optional, Dict, Any
from datetime import datetime
import logging
from sqlalchemy import select, insert, update

from wholesale.core.config import settings
from wholesale.core.database import get_db_session, user_subscriptions, users as app_users
from wholesale.core.errors import BillingDisabledError
from wholesale.features.accounts.service import (
    find_account_by_stripe_ids,
    get_or_create_account,
)
from wholesale.features.audit.service import (
    log_downgrade,
    log_subscription_event,
    log_upgrade,
)
from wholesale.features.billing.provider import BillingProvider, BillingWebhookResult
from wholesale.features.billing.stripe_provider import StripeProvider
from wholesale.features.plans.service import FREE_PLAN_ID, get_plan, get_plan_by_price
from wholesale.models.account import Account

logger = logging.getLogger(__name__)

# Stripe statuses that no longer grant a paid plan
LAPSED_STATUSES = ("canceled", "unpaid", "incomplete_expired")


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(settings.STRIPE_SECRET_KEY)


def get_provider() -> Optional[BillingProvider]:
    """Get billing provider if billing is enabled."""
    if not billing_enabled():
        return None
    return StripeProvider(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )


def _resolve_plan_id(result: BillingWebhookResult) -> str:
    """Plan for a subscription event: the mapped Stripe price, else free."""
    if result.status in LAPSED_STATUSES:
        return FREE_PLAN_ID

    if result.price_id:
        plan = get_plan_by_price(result.price_id)
        if plan:
            return plan.plan_id

    return FREE_PLAN_ID


def _resolve_account(result: BillingWebhookResult) -> Optional[Account]:
    user_id = result.metadata.get("user_id")
    if user_id:
        return get_or_create_account(user_id)
    return find_account_by_stripe_ids(result.subscription_id, result.customer_id)


def apply_subscription_state(
    user_id: str,
    plan_id: str,
    status: str,
    stripe_subscription_id: Optional[str] = None,
    stripe_customer_id: Optional[str] = None,
    current_period_end: Optional[datetime] = None,
    cancel_at_period_end: bool = False,
) -> None:
    """
    Apply subscription state to database (idempotent).

    Updates the account row read by the gating layer and upserts the
    account's user_subscriptions record.
    """
    now = datetime.now()
    account_values: Dict[str, Any] = {
        "current_plan": plan_id,
        "subscription_status": status,
        "subscription_ends_at": current_period_end,
        "updated_at": now,
    }
    if stripe_subscription_id:
        account_values["stripe_subscription_id"] = stripe_subscription_id
    if stripe_customer_id:
        account_values["stripe_customer_id"] = stripe_customer_id

    with get_db_session() as session:
        session.execute(
            update(app_users).where(app_users.c.user_id == user_id).values(**account_values)
        )

        existing = session.execute(
            select(user_subscriptions.c.id).where(user_subscriptions.c.user_id == user_id)
        ).first()

        subscription_values = {
            "plan_id": plan_id,
            "status": status,
            "stripe_subscription_id": stripe_subscription_id,
            "current_period_end": current_period_end,
            "cancel_at_period_end": cancel_at_period_end,
            "updated_at": now,
        }
        if existing:
            session.execute(
                update(user_subscriptions)
                .where(user_subscriptions.c.user_id == user_id)
                .values(**subscription_values)
            )
        else:
            session.execute(
                insert(user_subscriptions).values(
                    user_id=user_id,
                    current_period_start=now,
                    created_at=now,
                    **subscription_values,
                )
            )


def _audit_tier_change(account: Account, to_plan: str, result: BillingWebhookResult) -> None:
    from_plan = account.current_plan or FREE_PLAN_ID
    if from_plan == to_plan:
        return

    from_record = get_plan(from_plan)
    to_record = get_plan(to_plan)
    from_rank = from_record.sort_order if from_record else 0
    to_rank = to_record.sort_order if to_record else 0
    metadata = {"stripeEventId": result.event_id, "stripeSubscriptionId": result.subscription_id}

    if to_rank > from_rank:
        amount = to_record.monthly_price if to_record else None
        log_upgrade(account.user_id, from_plan, to_plan, amount=amount, metadata=metadata)
    else:
        log_downgrade(account.user_id, from_plan, to_plan, reason="Subscription changed in Stripe", metadata=metadata)


def process_webhook_event(headers: Dict[str, str], body: bytes) -> Dict[str, Any]:
    """
    Process a Stripe webhook delivery.

    1. Verify signature and parse
    2. Locate the account (metadata user_id, then Stripe ids)
    3. Apply plan/status changes and audit them

    Returns:
        {"received": True, "eventType": ..., "handled": bool}

    Raises:
        BillingDisabledError: STRIPE_SECRET_KEY not configured
        BillingWebhookError: If signature invalid or payload malformed
    """
    provider = get_provider()
    if not provider:
        raise BillingDisabledError("Billing disabled")

    signature = headers.get("stripe-signature") or headers.get("Stripe-Signature")
    result = provider.parse_webhook(body, signature)
    event_type = result.event_type

    account = _resolve_account(result)
    if account is None:
        logger.warning(
            "[billing] webhook for unknown account",
            extra={"event_type": event_type, "stripe_subscription_id": result.subscription_id},
        )
        return {"received": True, "eventType": event_type, "handled": False}

    if event_type in ("customer.subscription.created", "customer.subscription.updated"):
        plan_id = _resolve_plan_id(result)
        status = result.status or "active"
        _audit_tier_change(account, plan_id, result)
        if account.subscription_status == "canceled" and status == "active":
            log_subscription_event(
                account.user_id,
                "reactivate",
                to_tier=plan_id,
                stripe_subscription_id=result.subscription_id,
                stripe_customer_id=result.customer_id,
            )
        apply_subscription_state(
            account.user_id,
            plan_id,
            status,
            stripe_subscription_id=result.subscription_id,
            stripe_customer_id=result.customer_id,
            current_period_end=result.current_period_end,
            cancel_at_period_end=result.cancel_at_period_end,
        )

    elif event_type == "customer.subscription.deleted":
        apply_subscription_state(
            account.user_id,
            FREE_PLAN_ID,
            "canceled",
            stripe_subscription_id=result.subscription_id,
            stripe_customer_id=result.customer_id,
            current_period_end=result.current_period_end,
        )
        log_subscription_event(
            account.user_id,
            "cancel",
            from_tier=account.current_plan or FREE_PLAN_ID,
            to_tier=FREE_PLAN_ID,
            stripe_subscription_id=result.subscription_id,
            stripe_customer_id=result.customer_id,
            reason="Subscription deleted in Stripe",
        )

    elif event_type in ("invoice.payment_succeeded", "invoice.payment_failed"):
        log_subscription_event(
            account.user_id,
            "payment_success" if event_type == "invoice.payment_succeeded" else "payment_failed",
            to_tier=account.current_plan,
            amount=result.amount,
            currency=result.currency,
            stripe_subscription_id=result.subscription_id,
            stripe_customer_id=result.customer_id,
        )

    else:
        log_subscription_event(
            account.user_id,
            "webhook_received",
            stripe_subscription_id=result.subscription_id,
            stripe_customer_id=result.customer_id,
            metadata={"eventType": event_type, "eventId": result.event_id},
        )
        return {"received": True, "eventType": event_type, "handled": False}

    logger.info(
        "[billing] webhook processed",
        extra={"user_id": account.user_id, "event_type": event_type},
    )
    return {"received": True, "eventType": event_type, "handled": True}
