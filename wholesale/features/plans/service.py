"""
wholesale/features/plans/service.py

Plan resolver.

Handles:
- Plan seeding (free, standard, premium)
- Resolving an account's current plan and its limits
- Requested-value feature access checks
- Manual plan overrides (audited)
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging
from sqlalchemy import select, insert, update

from wholesale.core.database import get_db_session, subscription_plans, users as app_users
from wholesale.core.errors import NotFoundError
from wholesale.features.audit.service import log_manual_override
from wholesale.models.plan import Plan, UNLIMITED
from wholesale.models.subscription import AccountSubscription


logger = logging.getLogger(__name__)

FREE_PLAN_ID = "free"

# Fallback limits used whenever no plan record resolves for an account.
# Shared by the resolver, the feature gate and check_feature_access.
DEFAULT_LIMITS: Dict[str, int] = {
    "products": 10,
    "broadcasts": 5,
    "teamMembers": 1,
    "customGroups": 2,
}

# Default plan configurations
DEFAULT_PLANS = {
    "free": {
        "name": "Free",
        "description": "Get started with basic features",
        "monthly_price": Decimal("0.00"),
        "stripe_price_id": None,
        "sort_order": 0,
        "features": [
            "Up to 10 products",
            "Up to 5 broadcasts per month",
            "Basic dashboard analytics",
            "Standard email support",
        ],
        "limits": dict(DEFAULT_LIMITS),
    },
    "standard": {
        "name": "Standard",
        "description": "Perfect for growing wholesale businesses",
        "monthly_price": Decimal("9.99"),
        "stripe_price_id": "price_standard",
        "sort_order": 1,
        "features": [
            "Up to 50 products",
            "Up to 25 broadcasts per month",
            "Advanced analytics and insights",
            "Priority email support",
        ],
        "limits": {
            "products": 50,
            "broadcasts": 25,
            "teamMembers": 3,
            "customGroups": 5,
        },
    },
    "premium": {
        "name": "Premium",
        "description": "Everything you need to scale your wholesale business",
        "monthly_price": Decimal("19.99"),
        "stripe_price_id": "price_premium",
        "sort_order": 2,
        "features": [
            "Unlimited products",
            "Unlimited broadcasts",
            "Full business performance analytics",
            "Custom reports and insights",
            "Priority email and phone support",
        ],
        "limits": {
            "products": UNLIMITED,
            "broadcasts": UNLIMITED,
            "teamMembers": UNLIMITED,
            "customGroups": UNLIMITED,
        },
    },
}


def _row_to_plan(row) -> Plan:
    return Plan(
        plan_id=row.plan_id,
        name=row.name,
        description=row.description,
        limits=dict(row.limits or {}),
        features=list(row.features or []),
        monthly_price=row.monthly_price,
        currency=row.currency,
        stripe_price_id=row.stripe_price_id,
        sort_order=row.sort_order,
        is_active=row.is_active,
    )


def seed_plans() -> None:
    """
    Seed default plans into database (idempotent).

    Safe to call multiple times; existing plan rows are left untouched.
    """
    now = datetime.now()

    with get_db_session() as session:
        for plan_id, config in DEFAULT_PLANS.items():
            existing = session.execute(
                select(subscription_plans.c.plan_id).where(subscription_plans.c.plan_id == plan_id)
            ).first()
            if existing:
                continue

            session.execute(
                insert(subscription_plans).values(
                    plan_id=plan_id,
                    name=config["name"],
                    description=config["description"],
                    monthly_price=config["monthly_price"],
                    currency="GBP",
                    stripe_price_id=config["stripe_price_id"],
                    limits=config["limits"],
                    features=config["features"],
                    sort_order=config["sort_order"],
                    is_active=True,
                    created_at=now,
                )
            )


def get_plan(plan_id: str) -> Optional[Plan]:
    """Get plan by ID."""
    with get_db_session() as session:
        row = session.execute(
            select(subscription_plans).where(subscription_plans.c.plan_id == plan_id)
        ).first()
        return _row_to_plan(row) if row else None


def get_plan_by_price(stripe_price_id: str) -> Optional[Plan]:
    with get_db_session() as session:
        row = session.execute(
            select(subscription_plans).where(subscription_plans.c.stripe_price_id == stripe_price_id)
        ).first()
        return _row_to_plan(row) if row else None


def list_plans(active_only: bool = True) -> List[Plan]:
    """Plans in display order."""
    with get_db_session() as session:
        query = select(subscription_plans)
        if active_only:
            query = query.where(subscription_plans.c.is_active.is_(True))
        rows = session.execute(query.order_by(subscription_plans.c.sort_order)).all()
        return [_row_to_plan(row) for row in rows]


def get_user_subscription(user_id: str) -> AccountSubscription:
    """
    Read an account's subscription state.

    The plan identifier defaults to "free" when the account has none recorded
    (or does not exist). ``plan`` is None when no plan record matches.

    Raises:
        Any database error; callers decide how to degrade.
    """
    with get_db_session() as session:
        account = session.execute(
            select(app_users).where(app_users.c.user_id == user_id)
        ).first()

        current_plan = (account.current_plan if account else None) or FREE_PLAN_ID
        plan_row = session.execute(
            select(subscription_plans).where(subscription_plans.c.plan_id == current_plan)
        ).first()

        return AccountSubscription(
            user_id=user_id,
            current_plan=current_plan,
            subscription_status=account.subscription_status if account else "inactive",
            plan=_row_to_plan(plan_row) if plan_row else None,
            stripe_customer_id=account.stripe_customer_id if account else None,
            stripe_subscription_id=account.stripe_subscription_id if account else None,
            subscription_ends_at=account.subscription_ends_at if account else None,
        )


def resolve_plan_limits(user_id: str) -> Tuple[str, Dict[str, int]]:
    """
    Resolve (plan name, limits) for an account.

    Never raises: lookup failures are logged and degrade to the free tier's
    default limits.
    """
    try:
        subscription = get_user_subscription(user_id)
    except Exception:
        logger.error(
            "[plans] plan resolution failed, using default limits",
            exc_info=True,
            extra={"user_id": user_id},
        )
        return FREE_PLAN_ID, dict(DEFAULT_LIMITS)

    if subscription.plan is None:
        return subscription.current_plan, dict(DEFAULT_LIMITS)
    return subscription.current_plan, dict(subscription.plan.limits)


def evaluate_feature_access(
    user_id: str, feature: str, value: Optional[int] = None
) -> Tuple[bool, AccountSubscription]:
    """
    Decide whether an account may use ``feature`` at ``value``.

    - Free tier (or no plan record): value must not exceed the default limit
      (unknown features have limit 0); without a value the feature must be
      part of the free tier.
    - Paid plans: features without a limit, or with -1, are always allowed;
      otherwise value must not exceed the limit.

    Returns:
        (allowed, the subscription the decision was made against)

    Raises:
        Any database error from the subscription lookup.
    """
    subscription = get_user_subscription(user_id)

    if subscription.plan is None or subscription.current_plan == FREE_PLAN_ID:
        if value is not None:
            return value <= DEFAULT_LIMITS.get(feature, 0), subscription
        return feature in DEFAULT_LIMITS, subscription

    plan = subscription.plan
    if plan.limit_for(feature) is None or plan.is_unlimited(feature):
        return True, subscription
    if value is not None:
        return value <= plan.limit_for(feature), subscription
    return True, subscription


def check_feature_access(user_id: str, feature: str, value: Optional[int] = None) -> bool:
    """
    Boolean form of evaluate_feature_access.

    Fails closed: any error denies access.
    """
    try:
        allowed, _ = evaluate_feature_access(user_id, feature, value)
        return allowed
    except Exception:
        logger.error(
            "[plans] feature access check failed, denying",
            exc_info=True,
            extra={"user_id": user_id, "feature": feature},
        )
        return False


def assign_plan(
    user_id: str,
    plan_id: str,
    *,
    reason: str,
    actor: Optional[str] = None,
    subscription_status: str = "active",
) -> AccountSubscription:
    """
    Manually move an account to another plan (support override).

    Args:
        user_id: Account to update (created if missing)
        plan_id: Target plan
        reason: Human-readable justification, stored in the audit log
        actor: Admin identity performing the override

    Raises:
        NotFoundError: If plan_id doesn't exist
    """
    plan = get_plan(plan_id)
    if plan is None:
        raise NotFoundError(f"Plan {plan_id} not found")

    from wholesale.features.accounts.service import get_or_create_account

    account = get_or_create_account(user_id)
    from_tier = account.current_plan or FREE_PLAN_ID

    with get_db_session() as session:
        session.execute(
            update(app_users)
            .where(app_users.c.user_id == user_id)
            .values(
                current_plan=plan_id,
                subscription_status=subscription_status,
                updated_at=datetime.now(),
            )
        )

    log_manual_override(
        user_id,
        from_tier,
        plan_id,
        reason,
        metadata={"actor": actor} if actor else None,
    )
    logger.info(
        "[plans] plan assigned",
        extra={"user_id": user_id, "from_plan": from_tier, "to_plan": plan_id},
    )
    return get_user_subscription(user_id)
