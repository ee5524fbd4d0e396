"""
Monthly time report (data only).

Summarises one month of time entries: totals, per-project shares and the
detailed entry table with the cost of every entry.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date as date_type

from sqlalchemy.orm import Session, joinedload

from hourbook.domain.period import validate_period, month_bounds
from hourbook.domain.scaled import scaled_product
from hourbook.errors import NotFoundError
from hourbook.infrastructure.db.models import TimeEntry, User


@dataclass(frozen=True)
class ReportEntry:
    date: date_type
    project_name: str
    category_name: str
    hours: int
    start_time: str | None
    end_time: str | None
    description: str | None
    hourly_rate: int
    cost: int


@dataclass(frozen=True)
class ProjectSummary:
    project_name: str
    total_hours: int
    entry_count: int
    percentage: float


@dataclass(frozen=True)
class MonthlyReport:
    user_name: str
    user_email: str | None
    period_label: str
    year: int
    month: int
    total_hours: int
    total_cost: int
    entry_count: int
    project_summaries: list[ProjectSummary] = field(default_factory=list)
    entries: list[ReportEntry] = field(default_factory=list)


class MonthlyReportService:
    def __init__(self, db: Session):
        self.db = db

    def build(self, actor: User, year: int, month: int) -> MonthlyReport:
        """
        Admins get every user's entries, everybody else only their own.

        Raises:
            NotFoundError: no entries in the month
        """
        validate_period(month, year)
        start, end = month_bounds(year, month)

        q = self.db.query(TimeEntry).options(
            joinedload(TimeEntry.project), joinedload(TimeEntry.category),
        ).filter(
            TimeEntry.date >= start,
            TimeEntry.date < end,
        )
        if not actor.is_admin:
            q = q.filter(TimeEntry.user_id == actor.id)
        rows = q.order_by(TimeEntry.date, TimeEntry.id).all()

        if not rows:
            raise NotFoundError("No time entries found for this period")

        entries = [
            ReportEntry(
                date=e.date,
                project_name=e.project.name,
                category_name=e.category.name,
                hours=e.duration_hours,
                start_time=e.start_time,
                end_time=e.end_time,
                description=e.description,
                hourly_rate=e.project.hourly_rate,
                cost=scaled_product(e.duration_hours, e.project.hourly_rate),
            )
            for e in rows
        ]

        total_hours = sum(e.hours for e in entries)
        per_project: dict[str, list[int]] = {}
        for e in entries:
            bucket = per_project.setdefault(e.project_name, [0, 0])
            bucket[0] += e.hours
            bucket[1] += 1

        summaries = sorted(
            (
                ProjectSummary(
                    project_name=name,
                    total_hours=hours,
                    entry_count=count,
                    percentage=(hours / total_hours * 100) if total_hours else 0.0,
                )
                for name, (hours, count) in per_project.items()
            ),
            key=lambda s: s.total_hours,
            reverse=True,
        )

        return MonthlyReport(
            user_name=actor.name or actor.username or "Unknown User",
            user_email=actor.email,
            period_label=f"{calendar.month_name[month]} {year}",
            year=year,
            month=month,
            total_hours=total_hours,
            total_cost=sum(e.cost for e in entries),
            entry_count=len(entries),
            project_summaries=summaries,
            entries=entries,
        )
