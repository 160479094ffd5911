"""
Subscription feature gating for API routes.

FastAPI dependencies that stand in front of resource-creating handlers:
- require_product_limits / require_broadcast_limits / require_team_member_limits
  count current usage and compare it against the account's plan
- require_feature_access / enforce_feature_access check a requested value
  for any feature

Anonymous requests are rejected with 401 before any database access.
Denials are 403 with an upgrade prompt and a limit_reached audit event.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request

from wholesale.core.auth import get_optional_user_id
from wholesale.core.config import settings
from wholesale.core.logging import log_event
from wholesale.core.errors import (
    AuthRequiredError,
    FeatureCheckFailedError,
    FeatureLimitExceededError,
)
from wholesale.features.audit.service import log_limit_reached
from wholesale.features.gating.service import check_feature_limits
from wholesale.features.plans.service import DEFAULT_LIMITS, evaluate_feature_access
from wholesale.features.usage.service import (
    count_broadcasts,
    count_products,
    count_team_members,
)
from wholesale.models.usage import FeatureLimitCheck

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceGate:
    feature: str
    error: str
    code: str
    failure_error: str
    failure_code: str
    message: str  # formatted with plan and limit


PRODUCT_GATE = ResourceGate(
    feature="products",
    error="Product limit exceeded",
    code="PRODUCT_LIMIT_EXCEEDED",
    failure_error="Failed to check product limits",
    failure_code="PRODUCT_LIMIT_CHECK_FAILED",
    message="You've reached your {plan} plan limit of {limit} products. Upgrade to add more products.",
)

BROADCAST_GATE = ResourceGate(
    feature="broadcasts",
    error="Broadcast limit exceeded",
    code="BROADCAST_LIMIT_EXCEEDED",
    failure_error="Failed to check broadcast limits",
    failure_code="BROADCAST_LIMIT_CHECK_FAILED",
    message="You've reached your {plan} plan limit of {limit} broadcasts this month. Upgrade for more broadcasts.",
)

TEAM_MEMBER_GATE = ResourceGate(
    feature="teamMembers",
    error="Team member limit exceeded",
    code="TEAM_LIMIT_EXCEEDED",
    failure_error="Failed to check team member limits",
    failure_code="TEAM_LIMIT_CHECK_FAILED",
    message="You've reached your {plan} plan limit of {limit} team members. Upgrade to add more team members.",
)


def _require_identity(request: Request, feature: str) -> str:
    user_id = get_optional_user_id(request)
    if not user_id:
        raise AuthRequiredError(
            {"error": "Authentication required", "feature": feature, "code": "AUTH_REQUIRED"}
        )
    return user_id


def _enforce_resource_limit(
    request: Request,
    gate: ResourceGate,
    counter: Callable[[str], int],
) -> FeatureLimitCheck:
    user_id = _require_identity(request, gate.feature)

    try:
        current_count = counter(user_id)
        check = check_feature_limits(user_id, gate.feature, current_count)
    except Exception:
        logger.error(
            "[gating] limit check failed",
            exc_info=True,
            extra={"user_id": user_id, "feature": gate.feature, "error_code": gate.failure_code},
        )
        raise FeatureCheckFailedError(
            {"error": gate.failure_error, "feature": gate.feature, "code": gate.failure_code}
        )

    if check.allowed:
        return check

    log_event(
        "info",
        "gate.limit_reached",
        request_id=None,
        user_id=user_id,
        feature=gate.feature,
        event_type="limit_reached",
        error_code=gate.code,
        extra={"plan": check.plan, "current_count": check.current_count, "limit": check.limit},
    )
    log_limit_reached(user_id, gate.feature, check.current_count, check.plan)
    raise FeatureLimitExceededError(
        {
            "error": gate.error,
            "feature": gate.feature,
            "currentPlan": check.plan,
            "currentCount": check.current_count,
            "limit": check.limit,
            "code": gate.code,
            "upgradeUrl": settings.UPGRADE_URL,
            "message": gate.message.format(plan=check.plan, limit=check.limit),
        }
    )


def require_product_limits():
    """Dependency: deny product creation once the plan's product limit is reached."""

    def dependency(request: Request) -> FeatureLimitCheck:
        return _enforce_resource_limit(request, PRODUCT_GATE, lambda user_id: count_products(user_id))

    return dependency


def require_broadcast_limits():
    """Dependency: deny broadcasts once this month's allowance is used."""

    def dependency(request: Request) -> FeatureLimitCheck:
        return _enforce_resource_limit(request, BROADCAST_GATE, lambda user_id: count_broadcasts(user_id))

    return dependency


def require_team_member_limits():
    """Dependency: deny invitations once every seat is taken."""

    def dependency(request: Request) -> FeatureLimitCheck:
        return _enforce_resource_limit(request, TEAM_MEMBER_GATE, lambda user_id: count_team_members(user_id))

    return dependency


def enforce_feature_access(user_id: str, feature: str, requested_value: Optional[int] = None) -> None:
    """
    Raise a 403 gate error when ``requested_value`` is beyond the account's plan.

    Use from handlers that only know the requested value once the request
    body has been read.

    Raises:
        FeatureLimitExceededError: Access denied (upgrade required)
        FeatureCheckFailedError: Plan lookup failed unexpectedly
    """
    try:
        allowed, subscription = evaluate_feature_access(user_id, feature, requested_value)
    except Exception:
        logger.error(
            "[gating] feature access check failed",
            exc_info=True,
            extra={"user_id": user_id, "feature": feature, "error_code": "FEATURE_CHECK_FAILED"},
        )
        raise FeatureCheckFailedError(
            {"error": "Failed to check feature access", "feature": feature, "code": "FEATURE_CHECK_FAILED"}
        )

    if allowed:
        return

    plan_name = subscription.current_plan
    limits = subscription.plan.limits if subscription.plan else DEFAULT_LIMITS
    current_limit = limits.get(feature, 0)
    log_event(
        "info",
        "gate.feature_denied",
        request_id=None,
        user_id=user_id,
        feature=feature,
        event_type="limit_reached",
        error_code="SUBSCRIPTION_UPGRADE_REQUIRED",
        extra={"plan": plan_name, "requested_value": requested_value, "limit": current_limit},
    )
    log_limit_reached(
        user_id,
        feature,
        requested_value if requested_value is not None else 0,
        plan_name,
        metadata={"requestedValue": requested_value},
    )
    raise FeatureLimitExceededError(
        {
            "error": "Feature access denied - subscription upgrade required",
            "feature": feature,
            "currentPlan": plan_name,
            "currentLimit": current_limit,
            "requestedValue": requested_value,
            "code": "SUBSCRIPTION_UPGRADE_REQUIRED",
            "upgradeUrl": settings.UPGRADE_URL,
            "message": f"Your {plan_name} plan does not allow this many {feature}. Upgrade to unlock more.",
        }
    )


def require_feature_access(feature: str, max_value: Optional[int] = None):
    """
    Dependency factory for a generic feature check.

    Args:
        feature: Limit key on the plan
        max_value: Value the route needs; None checks that the feature is available at all

    Returns:
        Dependency resolving to the authenticated account id
    """

    def dependency(request: Request) -> str:
        user_id = _require_identity(request, feature)
        enforce_feature_access(user_id, feature, max_value)
        return user_id

    return dependency
