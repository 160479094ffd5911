"""
Test the feature gate decision and percent-of-limit reporting.
"""
from unittest.mock import patch

import pytest

from wholesale.features.gating.service import check_feature_limits, is_within_limit, percent_used
from wholesale.tests.factories import create_account


class TestIsWithinLimit:
    @pytest.mark.parametrize("current_count", [0, 1, 10, 10_000, 10**9])
    def test_unlimited_always_allows(self, current_count):
        assert is_within_limit(-1, current_count) is True

    @pytest.mark.parametrize("limit", [0, 1, 5, 10, 50])
    @pytest.mark.parametrize("current_count", [0, 1, 4, 5, 9, 10, 11, 49, 50, 51])
    def test_finite_limit_allows_strictly_below(self, limit, current_count):
        assert is_within_limit(limit, current_count) == (current_count < limit)

    def test_zero_limit_denies_first_unit(self):
        assert is_within_limit(0, 0) is False


class TestCheckFeatureLimits:
    def test_at_limit_is_denied(self):
        create_account("u_free")
        check = check_feature_limits("u_free", "products", 10)
        assert check.allowed is False
        assert check.limit == 10
        assert check.current_count == 10
        assert check.plan == "free"
        assert check.upgrade_required is True

    def test_below_limit_is_allowed(self):
        create_account("u_free")
        check = check_feature_limits("u_free", "products", 9)
        assert check.allowed is True
        assert check.upgrade_required is False

    def test_unlimited_plan(self):
        create_account("u_prem", plan="premium")
        check = check_feature_limits("u_prem", "broadcasts", 500)
        assert check.allowed is True
        assert check.limit == -1
        assert check.plan == "premium"

    def test_unknown_feature_is_unlimited(self):
        create_account("u_std", plan="standard")
        check = check_feature_limits("u_std", "apiAccess", 1000)
        assert check.allowed is True
        assert check.limit == -1

    def test_no_account_uses_default_limits(self):
        check = check_feature_limits("nobody", "broadcasts", 5)
        assert check.allowed is False
        assert check.limit == 5
        assert check.plan == "free"

    def test_unexpected_error_denies(self):
        with patch(
            "wholesale.features.gating.service.resolve_plan_limits",
            side_effect=RuntimeError("boom"),
        ):
            check = check_feature_limits("u1", "products", 3)
        assert check.allowed is False
        assert check.limit == 0
        assert check.plan == "free"
        assert check.upgrade_required is True
        assert check.current_count == 3


class TestPercentUsed:
    def test_unlimited_is_zero(self):
        assert percent_used(500, -1) == 0

    def test_rounds_half_up(self):
        assert percent_used(1, 8) == 13  # 12.5
        assert percent_used(1, 3) == 33
        assert percent_used(2, 3) == 67

    def test_full_and_over(self):
        assert percent_used(10, 10) == 100
        assert percent_used(12, 10) == 120

    def test_zero_limit(self):
        assert percent_used(0, 0) == 0
        assert percent_used(1, 0) == 100
