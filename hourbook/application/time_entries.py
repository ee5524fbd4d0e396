"""
Time entries use-cases and read service.

Durations are computed here, never accepted from the caller as a scaled
value: manual hours or a start/end pair go through compute_duration.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from hourbook.domain.duration import compute_duration, normalize_time_of_day
from hourbook.domain.period import month_bounds, year_bounds
from hourbook.domain.scaled import from_scaled
from hourbook.errors import ValidationError, NotFoundError, AuthorizationError
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import TimeEntry, Project, Category, User

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 1000
DEFAULT_LIST_LIMIT = 100

_UNSET = object()


def entry_snapshot(entry: TimeEntry) -> dict:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "project_id": entry.project_id,
        "category_id": entry.category_id,
        "date": entry.date,
        "start_time": entry.start_time,
        "end_time": entry.end_time,
        "duration_hours": entry.duration_hours,
        "description": entry.description,
        "kilometers": entry.kilometers,
    }


def _ensure_access(actor: User, entry: TimeEntry) -> None:
    if not actor.is_admin and entry.user_id != actor.id:
        raise AuthorizationError("Access denied")


def _get_entry(db: Session, entry_id: int) -> TimeEntry:
    entry = db.get(TimeEntry, entry_id)
    if not entry:
        raise NotFoundError(f"Time entry {entry_id} not found")
    return entry


def _ensure_refs(db: Session, project_id: int | None, category_id: int | None) -> None:
    if project_id is not None and not db.get(Project, project_id):
        raise NotFoundError(f"Project {project_id} not found")
    if category_id is not None and not db.get(Category, category_id):
        raise NotFoundError(f"Category {category_id} not found")


def _validate_kilometers(kilometers: int | None) -> int | None:
    if kilometers is not None and kilometers < 0:
        raise ValidationError("Kilometers must not be negative")
    return kilometers


def _clean_times(start_time: str | None, end_time: str | None) -> tuple[str | None, str | None]:
    return (
        normalize_time_of_day(start_time) if start_time is not None else None,
        normalize_time_of_day(end_time) if end_time is not None else None,
    )


class CreateTimeEntryUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(
        self,
        actor: User,
        project_id: int,
        category_id: int,
        date: date_type,
        manual_hours: Decimal | float | str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        description: str | None = None,
        kilometers: int | None = None,
    ) -> int:
        duration = compute_duration(manual_hours, start_time, end_time)
        start_time, end_time = _clean_times(start_time, end_time)
        _validate_kilometers(kilometers)
        _ensure_refs(self.db, project_id, category_id)

        entry = TimeEntry(
            user_id=actor.id,
            project_id=project_id,
            category_id=category_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            duration_hours=duration,
            description=(description or "").strip() or None,
            kilometers=kilometers,
        )
        self.db.add(entry)
        self.db.commit()

        self.audit.record(
            "time_entry.created", actor_id=actor.id,
            entity_type="time_entry", entity_id=entry.id,
            new_value=entry_snapshot(entry),
        )
        return entry.id


class UpdateTimeEntryUseCase:
    """
    Partial update. Passing manual hours replaces any start/end times;
    passing a start or end time recomputes the duration from the merged
    pair (the other bound is taken from the stored entry).
    """

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(
        self,
        entry_id: int,
        actor: User,
        project_id: int | None = None,
        category_id: int | None = None,
        date: date_type | None = None,
        manual_hours: Decimal | float | str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        description=_UNSET,
        kilometers=_UNSET,
    ) -> None:
        entry = _get_entry(self.db, entry_id)
        _ensure_access(actor, entry)

        times_changed = start_time is not None or end_time is not None
        if manual_hours is not None and times_changed:
            raise ValidationError("Provide either manual hours or start/end times, not both")

        duration = None
        new_start, new_end = entry.start_time, entry.end_time
        if manual_hours is not None:
            duration = compute_duration(manual_hours=manual_hours)
            new_start, new_end = None, None
        elif times_changed:
            merged_start = start_time if start_time is not None else entry.start_time
            merged_end = end_time if end_time is not None else entry.end_time
            duration = compute_duration(start_time=merged_start, end_time=merged_end)
            new_start, new_end = _clean_times(merged_start, merged_end)

        if kilometers is not _UNSET:
            _validate_kilometers(kilometers)
        _ensure_refs(self.db, project_id, category_id)

        old = entry_snapshot(entry)

        if project_id is not None:
            entry.project_id = project_id
        if category_id is not None:
            entry.category_id = category_id
        if date is not None:
            entry.date = date
        if duration is not None:
            entry.duration_hours = duration
            entry.start_time, entry.end_time = new_start, new_end
        if description is not _UNSET:
            entry.description = (description or "").strip() or None
        if kilometers is not _UNSET:
            entry.kilometers = kilometers

        self.db.commit()

        self.audit.record(
            "time_entry.updated", actor_id=actor.id,
            entity_type="time_entry", entity_id=entry_id,
            old_value=old, new_value=entry_snapshot(entry),
        )


class DeleteTimeEntryUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, entry_id: int, actor: User) -> None:
        entry = _get_entry(self.db, entry_id)
        _ensure_access(actor, entry)

        old = entry_snapshot(entry)
        self.db.delete(entry)
        self.db.commit()

        self.audit.record(
            "time_entry.deleted", actor_id=actor.id,
            entity_type="time_entry", entity_id=entry_id,
            old_value=old,
        )


# ── Read Service ──

@dataclass(frozen=True)
class SummaryRow:
    project_id: int
    project_name: str
    category_id: int
    category_code: str
    total_hours: Decimal
    entry_count: int


class TimeEntryReadService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, entry_id: int, actor: User) -> TimeEntry:
        entry = _get_entry(self.db, entry_id)
        _ensure_access(actor, entry)
        return entry

    def _scoped(self, q, actor: User, user_id: int | None):
        # non-admins only ever see their own entries
        if not actor.is_admin:
            return q.filter(TimeEntry.user_id == actor.id)
        if user_id is not None:
            return q.filter(TimeEntry.user_id == user_id)
        return q

    def list(
        self,
        actor: User,
        user_id: int | None = None,
        project_id: int | None = None,
        category_id: int | None = None,
        start_date: date_type | None = None,
        end_date: date_type | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[TimeEntry]:
        if not 1 <= limit <= MAX_LIST_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        q = self._scoped(
            self.db.query(TimeEntry).options(
                joinedload(TimeEntry.project), joinedload(TimeEntry.category),
            ),
            actor, user_id,
        )
        if project_id is not None:
            q = q.filter(TimeEntry.project_id == project_id)
        if category_id is not None:
            q = q.filter(TimeEntry.category_id == category_id)
        if start_date is not None:
            q = q.filter(TimeEntry.date >= start_date)
        if end_date is not None:
            q = q.filter(TimeEntry.date <= end_date)

        return q.order_by(TimeEntry.date.desc(), TimeEntry.id.desc()).offset(offset).limit(limit).all()

    def summary(
        self,
        actor: User,
        user_id: int | None = None,
        month: int | None = None,
        year: int | None = None,
    ) -> list[SummaryRow]:
        """Hours and entry counts grouped by project and category"""
        q = self.db.query(
            TimeEntry.project_id,
            Project.name,
            TimeEntry.category_id,
            Category.code,
            func.sum(TimeEntry.duration_hours),
            func.count(TimeEntry.id),
        ).join(
            Project, Project.id == TimeEntry.project_id,
        ).join(
            Category, Category.id == TimeEntry.category_id,
        )
        q = self._scoped(q, actor, user_id)

        if month is not None and year is not None:
            start, end = month_bounds(year, month)
            q = q.filter(TimeEntry.date >= start, TimeEntry.date < end)
        elif year is not None:
            start, end = year_bounds(year)
            q = q.filter(TimeEntry.date >= start, TimeEntry.date < end)

        rows = q.group_by(
            TimeEntry.project_id, Project.name, TimeEntry.category_id, Category.code,
        ).order_by(Project.name, Category.code).all()

        return [
            SummaryRow(
                project_id=pid,
                project_name=pname,
                category_id=cid,
                category_code=ccode,
                total_hours=from_scaled(int(hours or 0)),
                entry_count=count,
            )
            for pid, pname, cid, ccode, hours, count in rows
        ]
