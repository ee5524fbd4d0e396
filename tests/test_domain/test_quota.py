"""Tests for quota usage aggregation"""
from decimal import Decimal

from hourbook.domain.quota import compute_usage, effective_quota, usage_percentage


class TestEffectiveQuota:
    def test_no_override_uses_project_quota(self):
        assert effective_quota(50, None) == 50

    def test_override_wins(self):
        assert effective_quota(50, 20) == 20

    def test_zero_override_is_kept(self):
        assert effective_quota(50, 0) == 0


class TestComputeUsage:
    def test_warning_at_threshold(self):
        usage = compute_usage(4000, 4000, 50, 50, 80)
        assert usage.used_hours == Decimal("40.00")
        assert usage.usage_percentage == 80.0
        assert usage.is_warning is True
        assert usage.is_over_quota is False

    def test_below_threshold(self):
        usage = compute_usage(1000, 1000, 50, 50, 80)
        assert usage.usage_percentage == 20.0
        assert usage.is_warning is False

    def test_over_quota(self):
        usage = compute_usage(5000, 5000, 50, 50, 80)
        assert usage.usage_percentage == 100.0
        assert usage.is_over_quota is True

    def test_no_hours_logged(self):
        usage = compute_usage(0, 0, 50, 50, 80)
        assert usage.used_hours == Decimal("0.00")
        assert usage.usage_percentage == 0.0
        assert usage.is_warning is False
        assert usage.is_over_quota is False

    def test_zero_quota_gives_zero_percentage(self):
        usage = compute_usage(1500, 1500, 0, 0, 80)
        assert usage.usage_percentage == 0.0
        assert usage.total_usage_percentage == 0.0
        assert usage.is_over_quota is False

    def test_user_and_project_totals_are_separate(self):
        # user: 10h of a personal 20h quota; project: 30h of 100h
        usage = compute_usage(1000, 3000, 20, 100, 80)
        assert usage.usage_percentage == 50.0
        assert usage.total_used_hours == Decimal("30.00")
        assert usage.total_quota_hours == 100
        assert usage.total_usage_percentage == 30.0

    def test_percentage_helper(self):
        assert usage_percentage(Decimal("1.50"), 3) == 50.0
