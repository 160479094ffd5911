"""
wholesale/features/gating/service.py

Feature gate and plan/usage reporting.

Handles:
- Limit comparison (-1 = unlimited, otherwise strictly below the limit)
- Per-feature limit checks against the resolved plan
- Percent-of-limit report for the dashboard
"""

from datetime import datetime
from typing import Dict, Optional
import logging
import math

from wholesale.features.plans.service import resolve_plan_limits, FREE_PLAN_ID
from wholesale.features.usage.service import get_usage_snapshot
from wholesale.models.plan import UNLIMITED
from wholesale.models.usage import FeatureLimitCheck, PlanLimitsReport


logger = logging.getLogger(__name__)

REPORTED_FEATURES = ("products", "broadcasts", "teamMembers")


def is_within_limit(limit: int, current_count: int) -> bool:
    """True when one more unit may be added (limit 0 never allows)."""
    if limit == UNLIMITED:
        return True
    return current_count < limit


def check_feature_limits(user_id: str, feature: str, current_count: int) -> FeatureLimitCheck:
    """
    Compare ``current_count`` against the plan limit for ``feature``.

    Features missing from the plan's limits are treated as unlimited.
    Unexpected errors deny with an upgrade prompt.

    Args:
        user_id: Account being gated
        feature: Limit key (products, broadcasts, teamMembers, customGroups)
        current_count: Usage already recorded for the feature

    Returns:
        FeatureLimitCheck (never raises)
    """
    try:
        plan_name, limits = resolve_plan_limits(user_id)
        limit = limits.get(feature, UNLIMITED)
        allowed = is_within_limit(limit, current_count)
        return FeatureLimitCheck(
            allowed=allowed,
            limit=limit,
            current_count=current_count,
            plan=plan_name,
            upgrade_required=not allowed,
        )
    except Exception:
        logger.error(
            "[gating] feature limit check failed, denying",
            exc_info=True,
            extra={"user_id": user_id, "feature": feature},
        )
        return FeatureLimitCheck(
            allowed=False,
            limit=0,
            current_count=current_count,
            plan=FREE_PLAN_ID,
            upgrade_required=True,
        )


def percent_used(usage: int, limit: int) -> int:
    """
    Whole-number percentage of ``limit`` consumed (half rounds up).

    Unlimited features report 0; a zero limit reports 100 once anything is used.
    """
    if limit == UNLIMITED:
        return 0
    if limit <= 0:
        return 100 if usage > 0 else 0
    return int(math.floor(usage * 100 / limit + 0.5))


def get_user_plan_limits(user_id: str, now: Optional[datetime] = None) -> PlanLimitsReport:
    """Plan, limits, current usage and percent used per reported feature."""
    plan_name, limits = resolve_plan_limits(user_id)
    usage = get_usage_snapshot(user_id, now=now)
    usage_map = usage.as_feature_map()

    percents: Dict[str, int] = {}
    for feature in REPORTED_FEATURES:
        percents[feature] = percent_used(usage_map[feature], limits.get(feature, UNLIMITED))

    return PlanLimitsReport(
        plan=plan_name,
        limits=limits,
        usage=usage,
        percent_used=percents,
    )
