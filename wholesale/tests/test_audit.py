"""
Test the subscription audit log.
"""
from collections import deque
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import insert

from wholesale.core.config import settings
from wholesale.core.database import get_db_session, subscription_audit_logs
from wholesale.features.audit import service as audit_service
from wholesale.features.audit.service import (
    get_subscription_stats,
    get_user_subscription_history,
    log_downgrade,
    log_limit_reached,
    log_manual_override,
    log_subscription_event,
    log_upgrade,
)


def _insert_event(event_type: str, timestamp: datetime, amount=None, user_id="u1"):
    with get_db_session() as session:
        session.execute(
            insert(subscription_audit_logs).values(
                user_id=user_id,
                event_type=event_type,
                amount=amount,
                timestamp=timestamp,
            )
        )


def test_helpers_record_transitions():
    log_upgrade("u1", "free", "standard", amount=Decimal("9.99"))
    log_downgrade("u1", "standard", "free")
    log_manual_override("u1", "free", "premium", "Support goodwill")

    history = get_user_subscription_history("u1")

    assert [e.event_type for e in history] == ["manual_override", "downgrade", "upgrade"]
    assert history[2].amount == Decimal("9.99")
    assert history[2].currency == "GBP"
    assert history[1].reason == "User initiated downgrade"
    assert history[0].reason == "Support goodwill"


def test_limit_reached_metadata():
    log_limit_reached("u1", "broadcasts", 5, "free", metadata={"route": "/api/broadcasts"})

    event = get_user_subscription_history("u1")[0]

    assert event.to_tier == "free"
    assert event.reason == "broadcasts limit reached: 5"
    assert event.metadata == {"route": "/api/broadcasts", "limitType": "broadcasts", "currentCount": "5"}


def test_history_is_per_account():
    log_upgrade("u1", "free", "standard")
    log_upgrade("u2", "free", "premium")
    assert len(get_user_subscription_history("u1")) == 1


def test_metadata_values_are_truncated():
    log_subscription_event("u1", "webhook_received", metadata={"payload": "x" * 2000})
    value = get_user_subscription_history("u1")[0].metadata["payload"]
    assert value.endswith("...<truncated>")
    assert len(value) < 600


def test_disabled_audit_writes_nothing(monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_ENABLED", False)
    log_upgrade("u1", "free", "standard")
    assert get_user_subscription_history("u1") == []


def test_write_failure_is_buffered_not_raised(monkeypatch):
    monkeypatch.setattr(audit_service, "_memory_events", deque(maxlen=audit_service.MAX_BUFFERED_EVENTS))
    with patch("wholesale.features.audit.service.get_db_session", side_effect=RuntimeError("db down")):
        log_upgrade("u1", "free", "standard")

    buffered = audit_service.get_buffered_events()
    assert len(buffered) == 1
    assert buffered[0]["event_type"] == "upgrade"


def test_write_failure_buffer_is_bounded(monkeypatch):
    monkeypatch.setattr(audit_service, "_memory_events", deque(maxlen=3))
    with patch("wholesale.features.audit.service.get_db_session", side_effect=RuntimeError("db down")):
        for i in range(5):
            log_subscription_event(f"u{i}", "limit_reached")

    buffered = audit_service.get_buffered_events()
    assert [e["user_id"] for e in buffered] == ["u2", "u3", "u4"]


class TestStats:
    def test_counts_within_range(self):
        now = datetime(2025, 6, 30, 12, 0)
        _insert_event("upgrade", now - timedelta(days=1))
        _insert_event("upgrade", now - timedelta(days=20))
        _insert_event("downgrade", now - timedelta(days=2))
        _insert_event("cancel", now - timedelta(hours=3))
        _insert_event("payment_success", now - timedelta(days=3), amount=Decimal("9.99"))
        _insert_event("payment_success", now - timedelta(days=4), amount=Decimal("19.99"))
        _insert_event("payment_failed", now - timedelta(days=5))
        _insert_event("limit_reached", now - timedelta(days=40))

        stats = get_subscription_stats("7d", now=now)

        assert stats == {
            "timeRange": "7d",
            "totalEvents": 6,
            "upgrades": 1,
            "downgrades": 1,
            "cancellations": 1,
            "paymentSuccesses": 2,
            "paymentFailures": 1,
            "limitReached": 0,
            "totalRevenue": pytest.approx(29.98),
        }

    def test_24h_range(self):
        now = datetime(2025, 6, 30, 12, 0)
        _insert_event("cancel", now - timedelta(hours=3))
        _insert_event("cancel", now - timedelta(hours=30))
        assert get_subscription_stats("24h", now=now)["cancellations"] == 1

    def test_unknown_range_raises(self):
        with pytest.raises(ValueError):
            get_subscription_stats("1y")
