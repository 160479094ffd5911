"""
Test usage counters (products, monthly broadcasts, team seats).
"""
from datetime import datetime
from unittest.mock import patch

from wholesale.features.usage.service import (
    count_broadcasts,
    count_customer_groups,
    count_products,
    count_team_members,
    get_usage_snapshot,
    start_of_current_month,
)
from wholesale.tests.factories import (
    add_broadcasts,
    add_customer_groups,
    add_products,
    add_team_members,
)


def test_start_of_current_month():
    assert start_of_current_month(datetime(2025, 3, 17, 14, 5, 9, 123)) == datetime(2025, 3, 1)


def test_start_of_current_month_on_first_instant():
    assert start_of_current_month(datetime(2025, 3, 1)) == datetime(2025, 3, 1)


def test_count_products_scoped_to_owner():
    add_products("u1", 3)
    add_products("u2", 5)
    assert count_products("u1") == 3
    assert count_products("u2") == 5
    assert count_products("u3") == 0


def test_count_broadcasts_only_current_month():
    now = datetime(2025, 3, 17, 12, 0)
    add_broadcasts(
        "u1",
        [
            datetime(2025, 2, 28, 23, 59, 59),  # last month
            datetime(2025, 3, 1, 0, 0, 0),      # first instant of the month
            datetime(2025, 3, 10, 8, 30),
        ],
    )
    assert count_broadcasts("u1", now=now) == 2


def test_count_broadcasts_resets_next_month():
    add_broadcasts("u1", [datetime(2025, 3, 10), datetime(2025, 3, 11)])
    assert count_broadcasts("u1", now=datetime(2025, 4, 2)) == 0


def test_count_team_members_includes_owner():
    assert count_team_members("u1") == 1


def test_count_team_members_excludes_removed():
    add_team_members("u1", ["pending", "active", "removed"])
    assert count_team_members("u1") == 3


def test_count_customer_groups():
    add_customer_groups("u1", 2)
    assert count_customer_groups("u1") == 2


def test_product_count_error_fails_open():
    with patch("wholesale.features.usage.service.get_db_session", side_effect=RuntimeError("db down")):
        assert count_products("u1") == 0


def test_broadcast_count_error_fails_open():
    with patch("wholesale.features.usage.service.get_db_session", side_effect=RuntimeError("db down")):
        assert count_broadcasts("u1") == 0


def test_team_count_error_falls_back_to_owner():
    with patch("wholesale.features.usage.service.get_db_session", side_effect=RuntimeError("db down")):
        assert count_team_members("u1") == 1


def test_usage_snapshot():
    now = datetime(2025, 3, 17)
    add_products("u1", 4)
    add_broadcasts("u1", [datetime(2025, 3, 2), datetime(2025, 1, 2)])
    add_team_members("u1", ["active"])

    snapshot = get_usage_snapshot("u1", now=now)
    assert snapshot.products == 4
    assert snapshot.broadcasts == 1
    assert snapshot.team_members == 2
