"""
Monthly report API endpoint
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user
from hourbook.config import get_settings
from hourbook.application.reports import MonthlyReportService
from hourbook.domain.scaled import from_scaled
from hourbook.infrastructure.db.models import User
from hourbook.utils.money import format_money


router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


class ReportEntryResponse(BaseModel):
    entry_date: date
    project_name: str
    category_name: str
    hours: str
    start_time: str | None
    end_time: str | None
    description: str | None
    hourly_rate: str
    cost: str


class ProjectSummaryResponse(BaseModel):
    project_name: str
    total_hours: str
    entry_count: int
    percentage: float


class MonthlyReportResponse(BaseModel):
    user_name: str
    user_email: str | None
    period: str
    total_hours: str
    total_cost: str
    total_cost_display: str
    entry_count: int
    project_summaries: list[ProjectSummaryResponse]
    entries: list[ReportEntryResponse]


def _s(value: int) -> str:
    return str(from_scaled(value))


@router.get("/monthly", response_model=MonthlyReportResponse)
def monthly_report(
    year: int = Query(),
    month: int = Query(ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    report = MonthlyReportService(db).build(user, year=year, month=month)
    return MonthlyReportResponse(
        user_name=report.user_name,
        user_email=report.user_email,
        period=report.period_label,
        total_hours=_s(report.total_hours),
        total_cost=_s(report.total_cost),
        total_cost_display=format_money(report.total_cost, get_settings().CURRENCY),
        entry_count=report.entry_count,
        project_summaries=[
            ProjectSummaryResponse(
                project_name=s.project_name,
                total_hours=_s(s.total_hours),
                entry_count=s.entry_count,
                percentage=round(s.percentage, 2),
            )
            for s in report.project_summaries
        ],
        entries=[
            ReportEntryResponse(
                entry_date=e.date,
                project_name=e.project_name,
                category_name=e.category_name,
                hours=_s(e.hours),
                start_time=e.start_time,
                end_time=e.end_time,
                description=e.description,
                hourly_rate=_s(e.hourly_rate),
                cost=_s(e.cost),
            )
            for e in report.entries
        ],
    )
