"""
wholesale/features/usage/service.py

Usage counters for gated resources.

Handles:
- Product count (all rows owned by the account)
- Broadcast count (current calendar month only)
- Team member count (owner plus non-removed invitations)
- Customer group count

Counters fail open: a query error is logged and reported as zero usage
(the owner alone for team members) so the gate can still decide.
"""

from datetime import datetime
from typing import Optional
import logging
from sqlalchemy import select, func

from wholesale.core.database import (
    get_db_session,
    products,
    broadcasts,
    team_members,
    customer_groups,
)
from wholesale.models.usage import UsageSnapshot


logger = logging.getLogger(__name__)

OWNER_SEAT = 1


def start_of_current_month(now: Optional[datetime] = None) -> datetime:
    """
    First instant of the calendar month containing ``now``.

    Server-local time, matching the naive ``created_at`` timestamps written
    by the catalog service.
    """
    if now is None:
        now = datetime.now()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _scalar_count(query) -> int:
    with get_db_session() as session:
        return int(session.execute(query).scalar() or 0)


def count_products(user_id: str) -> int:
    """Number of products owned by the account (any status)."""
    try:
        return _scalar_count(
            select(func.count()).select_from(products).where(products.c.wholesaler_id == user_id)
        )
    except Exception:
        logger.error("[usage] product count failed", exc_info=True, extra={"user_id": user_id})
        return 0


def count_broadcasts(user_id: str, now: Optional[datetime] = None) -> int:
    """Broadcasts created by the account since the start of the current month."""
    month_start = start_of_current_month(now)
    try:
        return _scalar_count(
            select(func.count())
            .select_from(broadcasts)
            .where(
                broadcasts.c.wholesaler_id == user_id,
                broadcasts.c.created_at >= month_start,
            )
        )
    except Exception:
        logger.error("[usage] broadcast count failed", exc_info=True, extra={"user_id": user_id})
        return 0


def count_team_members(user_id: str) -> int:
    """
    Seats in use: the account owner plus every invitation not removed.

    Falls back to the owner seat on query error.
    """
    try:
        invited = _scalar_count(
            select(func.count())
            .select_from(team_members)
            .where(
                team_members.c.wholesaler_id == user_id,
                team_members.c.status != "removed",
            )
        )
    except Exception:
        logger.error("[usage] team member count failed", exc_info=True, extra={"user_id": user_id})
        return OWNER_SEAT
    return OWNER_SEAT + invited


def count_customer_groups(user_id: str) -> int:
    try:
        return _scalar_count(
            select(func.count())
            .select_from(customer_groups)
            .where(customer_groups.c.wholesaler_id == user_id)
        )
    except Exception:
        logger.error("[usage] customer group count failed", exc_info=True, extra={"user_id": user_id})
        return 0


def get_usage_snapshot(user_id: str, now: Optional[datetime] = None) -> UsageSnapshot:
    """Current usage for the dashboard report."""
    return UsageSnapshot(
        products=count_products(user_id),
        broadcasts=count_broadcasts(user_id, now=now),
        team_members=count_team_members(user_id),
    )
