"""
Test the plan/usage report shown on the merchant dashboard.
"""
from datetime import datetime

from wholesale.features.gating.service import get_user_plan_limits
from wholesale.features.plans.service import DEFAULT_LIMITS
from wholesale.tests.factories import add_broadcasts, add_products, add_team_members, create_account


NOW = datetime(2025, 6, 15, 9, 0)


def test_free_account_report():
    create_account("u_free")
    add_products("u_free", 5)
    add_broadcasts("u_free", [datetime(2025, 6, 1), datetime(2025, 6, 2), datetime(2025, 5, 30)])

    report = get_user_plan_limits("u_free", now=NOW).to_response()

    assert report["plan"] == "free"
    assert report["limits"] == DEFAULT_LIMITS
    assert report["usage"] == {"products": 5, "broadcasts": 2, "teamMembers": 1}
    assert report["percentUsed"] == {"products": 50, "broadcasts": 40, "teamMembers": 100}


def test_premium_report_is_zero_percent():
    create_account("u_prem", plan="premium")
    add_products("u_prem", 500)

    report = get_user_plan_limits("u_prem", now=NOW).to_response()

    assert report["usage"]["products"] == 500
    assert report["percentUsed"] == {"products": 0, "broadcasts": 0, "teamMembers": 0}


def test_standard_team_seats():
    create_account("u_std", plan="standard")
    add_team_members("u_std", ["active", "removed"])

    report = get_user_plan_limits("u_std", now=NOW)

    assert report.usage.team_members == 2
    assert report.percent_used["teamMembers"] == 67


def test_missing_account_reports_defaults():
    report = get_user_plan_limits("nobody", now=NOW)
    assert report.plan == "free"
    assert report.limits == DEFAULT_LIMITS
    assert report.percent_used == {"products": 0, "broadcasts": 0, "teamMembers": 100}
