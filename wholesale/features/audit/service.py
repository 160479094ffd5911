"""
wholesale/features/audit/service.py

Subscription audit log.

Handles:
- Recording tier changes, billing outcomes and limit hits
- Per-account history (newest first)
- Aggregate stats over a time range for the admin dashboard

Writes never raise: a failed audit write is logged and buffered in memory so
subscription flows and gated requests are not broken by it.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Deque, Dict, List, Optional

from sqlalchemy import insert, select

from wholesale.core.config import settings
from wholesale.core.database import get_db_session, subscription_audit_logs
from wholesale.core.logging import get_request_id
from wholesale.models.audit import SubscriptionAuditEvent

logger = logging.getLogger(__name__)

MAX_BUFFERED_EVENTS = 1000

# Fallback buffer when the DB write fails; oldest events drop first
_memory_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_BUFFERED_EVENTS)

TIME_RANGES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}


def _safe_truncate(value: Any, limit: int = 500):
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_subscription_event(
    user_id: str,
    event_type: str,
    *,
    from_tier: Optional[str] = None,
    to_tier: Optional[str] = None,
    amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    stripe_subscription_id: Optional[str] = None,
    stripe_customer_id: Optional[str] = None,
    reason: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a subscription event (respects AUDIT_ENABLED)."""
    if not settings.AUDIT_ENABLED:
        return

    safe_metadata = None
    if metadata:
        safe_metadata = {k: _safe_truncate(v) for k, v in metadata.items()}

    record = {
        "user_id": user_id,
        "event_type": event_type,
        "from_tier": from_tier,
        "to_tier": to_tier,
        "amount": amount,
        "currency": currency,
        "stripe_subscription_id": stripe_subscription_id,
        "stripe_customer_id": stripe_customer_id,
        "reason": reason,
        "metadata": safe_metadata,
        "timestamp": datetime.now(),
    }

    try:
        with get_db_session() as session:
            session.execute(insert(subscription_audit_logs).values(**record))
    except Exception as exc:
        logger.warning(f"Subscription audit write failed: {exc}")
        _memory_events.append(record)
        return

    transition = f"{from_tier} -> {to_tier}" if from_tier and to_tier else (to_tier or "")
    logger.info(
        f"subscription.{event_type}",
        extra={
            "request_id": get_request_id(),
            "user_id": user_id,
            "event_type": event_type,
            "transition": transition,
            "reason": _safe_truncate(reason) if reason else None,
        },
    )


def log_upgrade(user_id: str, from_tier: str, to_tier: str, amount: Optional[Decimal] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
    log_subscription_event(
        user_id,
        "upgrade",
        from_tier=from_tier,
        to_tier=to_tier,
        amount=amount,
        currency="GBP",
        reason="User initiated upgrade",
        metadata=metadata,
    )


def log_downgrade(user_id: str, from_tier: str, to_tier: str, reason: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
    log_subscription_event(
        user_id,
        "downgrade",
        from_tier=from_tier,
        to_tier=to_tier,
        reason=reason or "User initiated downgrade",
        metadata=metadata,
    )


def log_manual_override(user_id: str, from_tier: str, to_tier: str, reason: str, metadata: Optional[Dict[str, Any]] = None) -> None:
    log_subscription_event(
        user_id,
        "manual_override",
        from_tier=from_tier,
        to_tier=to_tier,
        reason=reason,
        metadata=metadata,
    )


def log_limit_reached(user_id: str, limit_type: str, current_count: int, tier: str, metadata: Optional[Dict[str, Any]] = None) -> None:
    log_subscription_event(
        user_id,
        "limit_reached",
        to_tier=tier,
        reason=f"{limit_type} limit reached: {current_count}",
        metadata={**(metadata or {}), "limitType": limit_type, "currentCount": current_count},
    )


def _row_to_event(row) -> SubscriptionAuditEvent:
    data = row._mapping
    return SubscriptionAuditEvent(
        user_id=data["user_id"],
        event_type=data["event_type"],
        timestamp=data["timestamp"],
        from_tier=data["from_tier"],
        to_tier=data["to_tier"],
        amount=data["amount"],
        currency=data["currency"],
        stripe_subscription_id=data["stripe_subscription_id"],
        stripe_customer_id=data["stripe_customer_id"],
        reason=data["reason"],
        metadata=data["metadata"],
    )


def get_user_subscription_history(user_id: str) -> List[SubscriptionAuditEvent]:
    """Audit events for one account, newest first."""
    with get_db_session() as session:
        rows = session.execute(
            select(subscription_audit_logs)
            .where(subscription_audit_logs.c.user_id == user_id)
            .order_by(subscription_audit_logs.c.timestamp.desc(), subscription_audit_logs.c.id.desc())
        ).all()
        return [_row_to_event(row) for row in rows]


def get_subscription_stats(time_range: str = "30d", now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Summarize audit events inside a trailing window.

    Args:
        time_range: One of 24h, 7d, 30d, 90d
        now: Fixed timestamp for deterministic queries

    Raises:
        ValueError: Unknown time_range
    """
    if time_range not in TIME_RANGES:
        raise ValueError(f"time_range must be one of {', '.join(TIME_RANGES)}")

    cutoff = (now or datetime.now()) - TIME_RANGES[time_range]
    with get_db_session() as session:
        rows = session.execute(
            select(subscription_audit_logs).where(subscription_audit_logs.c.timestamp >= cutoff)
        ).all()
        events = [_row_to_event(row) for row in rows]

    def _count(event_type: str) -> int:
        return sum(1 for event in events if event.event_type == event_type)

    revenue = sum(
        (event.amount for event in events if event.event_type == "payment_success" and event.amount),
        Decimal("0"),
    )

    return {
        "timeRange": time_range,
        "totalEvents": len(events),
        "upgrades": _count("upgrade"),
        "downgrades": _count("downgrade"),
        "cancellations": _count("cancel"),
        "paymentSuccesses": _count("payment_success"),
        "paymentFailures": _count("payment_failed"),
        "limitReached": _count("limit_reached"),
        "totalRevenue": float(revenue),
    }


def get_buffered_events() -> List[Dict[str, Any]]:
    return list(_memory_events)
