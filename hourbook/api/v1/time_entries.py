"""
Time entry API endpoints
"""
from datetime import date as date_type

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user, get_audit
from hourbook.application.time_entries import (
    CreateTimeEntryUseCase, UpdateTimeEntryUseCase, DeleteTimeEntryUseCase,
    TimeEntryReadService, MAX_LIST_LIMIT, DEFAULT_LIST_LIMIT,
)
from hourbook.domain.scaled import from_scaled
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User, TimeEntry


router = APIRouter(prefix="/api/v1/time-entries", tags=["time-entries"])


# === Request/Response models ===

class CreateTimeEntryRequest(BaseModel):
    project_id: int
    category_id: int
    date: date_type
    start_time: str | None = None  # HH:MM
    end_time: str | None = None  # HH:MM
    hours: str | None = None  # manual entry, Decimal as string
    description: str | None = None
    kilometers: int | None = Field(default=None, ge=0)


class UpdateTimeEntryRequest(BaseModel):
    project_id: int | None = None
    category_id: int | None = None
    date: date_type | None = None
    start_time: str | None = None
    end_time: str | None = None
    hours: str | None = None
    description: str | None = None
    kilometers: int | None = Field(default=None, ge=0)


class TimeEntryResponse(BaseModel):
    id: int
    user_id: int
    project_id: int
    project_name: str
    category_id: int
    category_code: str
    date: date_type
    start_time: str | None
    end_time: str | None
    duration_hours: str
    description: str | None
    kilometers: int | None


class SummaryResponse(BaseModel):
    project_id: int
    project_name: str
    category_id: int
    category_code: str
    total_hours: str
    entry_count: int


def _to_response(entry: TimeEntry) -> TimeEntryResponse:
    return TimeEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        project_id=entry.project_id,
        project_name=entry.project.name,
        category_id=entry.category_id,
        category_code=entry.category.code,
        date=entry.date,
        start_time=entry.start_time,
        end_time=entry.end_time,
        duration_hours=str(from_scaled(entry.duration_hours)),
        description=entry.description,
        kilometers=entry.kilometers,
    )


# === Endpoints ===

@router.get("/", response_model=list[TimeEntryResponse])
def list_time_entries(
    user_id: int | None = None,
    project_id: int | None = None,
    category_id: int | None = None,
    start_date: date_type | None = None,
    end_date: date_type | None = None,
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest first. Only admins may look at other users' entries."""
    entries = TimeEntryReadService(db).list(
        actor=user,
        user_id=user_id,
        project_id=project_id,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return [_to_response(e) for e in entries]


@router.get("/summary", response_model=list[SummaryResponse])
def time_entry_summary(
    user_id: int | None = None,
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = TimeEntryReadService(db).summary(actor=user, user_id=user_id, month=month, year=year)
    return [
        SummaryResponse(
            project_id=r.project_id,
            project_name=r.project_name,
            category_id=r.category_id,
            category_code=r.category_code,
            total_hours=str(r.total_hours),
            entry_count=r.entry_count,
        )
        for r in rows
    ]


@router.get("/{entry_id}", response_model=TimeEntryResponse)
def get_time_entry(
    entry_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(TimeEntryReadService(db).get(entry_id, actor=user))


@router.post("/", response_model=TimeEntryResponse)
def create_time_entry(
    req: CreateTimeEntryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    entry_id = CreateTimeEntryUseCase(db, audit).execute(
        actor=user,
        project_id=req.project_id,
        category_id=req.category_id,
        date=req.date,
        manual_hours=req.hours,
        start_time=req.start_time,
        end_time=req.end_time,
        description=req.description,
        kilometers=req.kilometers,
    )
    return _to_response(TimeEntryReadService(db).get(entry_id, actor=user))


@router.patch("/{entry_id}", response_model=TimeEntryResponse)
def update_time_entry(
    entry_id: int,
    req: UpdateTimeEntryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    changes = req.model_dump(exclude_unset=True)
    if "hours" in changes:
        changes["manual_hours"] = changes.pop("hours")
    UpdateTimeEntryUseCase(db, audit).execute(entry_id=entry_id, actor=user, **changes)
    return _to_response(TimeEntryReadService(db).get(entry_id, actor=user))


@router.delete("/{entry_id}")
def delete_time_entry(
    entry_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    DeleteTimeEntryUseCase(db, audit).execute(entry_id=entry_id, actor=user)
    return {"success": True}
