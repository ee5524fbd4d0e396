"""
Quota usage: how much of a project's (or a user's) hour budget is consumed.
"""
from dataclasses import dataclass
from decimal import Decimal

from hourbook.domain.scaled import from_scaled


@dataclass(frozen=True)
class QuotaUsage:
    used_hours: Decimal
    user_quota_hours: int
    usage_percentage: float
    is_warning: bool
    is_over_quota: bool
    total_used_hours: Decimal
    total_quota_hours: int
    total_usage_percentage: float


def effective_quota(project_quota_hours: int, override_hours: int | None) -> int:
    """User override when one exists, otherwise the project quota."""
    if override_hours is None:
        return project_quota_hours
    return override_hours


def usage_percentage(used_hours: Decimal, quota_hours: int) -> float:
    if quota_hours <= 0:
        return 0.0
    return float(used_hours * 100 / quota_hours)


def compute_usage(
    user_hours_scaled: int,
    total_project_hours_scaled: int,
    effective_quota_hours: int,
    total_quota_hours: int,
    warning_threshold: int,
) -> QuotaUsage:
    """
    Usage of one user on one project plus the project-wide usage.

    Example:
        >>> u = compute_usage(4000, 4000, 50, 50, 80)
        >>> u.usage_percentage, u.is_warning, u.is_over_quota
        (80.0, True, False)
    """
    used = from_scaled(user_hours_scaled)
    total_used = from_scaled(total_project_hours_scaled)

    pct = usage_percentage(used, effective_quota_hours)

    return QuotaUsage(
        used_hours=used,
        user_quota_hours=effective_quota_hours,
        usage_percentage=pct,
        is_warning=pct >= warning_threshold,
        is_over_quota=pct >= 100,
        total_used_hours=total_used,
        total_quota_hours=total_quota_hours,
        total_usage_percentage=usage_percentage(total_used, total_quota_hours),
    )
