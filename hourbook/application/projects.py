"""
Projects use-cases and read service.
"""
from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from hourbook.domain.quota import QuotaUsage, compute_usage, effective_quota
from hourbook.domain.period import MIN_YEAR, MAX_YEAR
from hourbook.errors import ValidationError, NotFoundError, ConflictError
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import Project, TimeEntry, UserProjectQuota, User, InvoiceItem
from hourbook.utils.validation import parse_scaled_amount


# ── Constants ──

PROJECT_STATUSES = ("active", "archived")
VAT_TYPES = ("inclusive", "exclusive")

_EDITABLE_FIELDS = (
    "name", "hourly_rate", "vat_type", "total_quota_hours",
    "warning_threshold", "year", "status",
)


def project_snapshot(project: Project) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "hourly_rate": project.hourly_rate,
        "vat_type": project.vat_type,
        "total_quota_hours": project.total_quota_hours,
        "warning_threshold": project.warning_threshold,
        "year": project.year,
        "status": project.status,
    }


def get_project_or_raise(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise NotFoundError(f"Project {project_id} not found")
    return project


# ── Validation ──

def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Project name must not be empty")
    return name


def _validate_year(year: int) -> int:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}")
    return year


def _validate_field(field: str, value):
    if value is None:
        raise ValidationError(f"{field} must not be null")
    if field == "name":
        return _validate_name(value)
    if field == "hourly_rate":
        return parse_scaled_amount(value, "hourly_rate")
    if field == "vat_type":
        if value not in VAT_TYPES:
            raise ValidationError(f"Invalid VAT type: {value}")
        return value
    if field == "total_quota_hours":
        if value < 0:
            raise ValidationError("Quota hours must not be negative")
        return value
    if field == "warning_threshold":
        if not 0 <= value <= 100:
            raise ValidationError("Warning threshold must be between 0 and 100")
        return value
    if field == "year":
        return _validate_year(value)
    if field == "status":
        if value not in PROJECT_STATUSES:
            raise ValidationError(f"Invalid status: {value}")
        return value
    raise ValidationError(f"Unknown field: {field}")


# ── Use Cases ──

class CreateProjectUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(
        self,
        actor_id: int,
        name: str,
        hourly_rate,
        vat_type: str,
        total_quota_hours: int,
        year: int,
        warning_threshold: int = 80,
        status: str = "active",
    ) -> int:
        values = {
            field: _validate_field(field, value)
            for field, value in (
                ("name", name),
                ("hourly_rate", hourly_rate),
                ("vat_type", vat_type),
                ("total_quota_hours", total_quota_hours),
                ("warning_threshold", warning_threshold),
                ("year", year),
                ("status", status),
            )
        }

        project = Project(**values)
        self.db.add(project)
        self.db.commit()

        self.audit.record(
            "project.created", actor_id=actor_id,
            entity_type="project", entity_id=project.id,
            new_value=project_snapshot(project),
        )
        return project.id


class UpdateProjectUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, project_id: int, actor_id: int, **changes) -> None:
        # validate everything before touching the row
        validated = {}
        for field, value in changes.items():
            if field not in _EDITABLE_FIELDS:
                raise ValidationError(f"Unknown field: {field}")
            validated[field] = _validate_field(field, value)

        project = get_project_or_raise(self.db, project_id)
        old = project_snapshot(project)

        for field, value in validated.items():
            setattr(project, field, value)
        self.db.commit()

        self.audit.record(
            "project.updated", actor_id=actor_id,
            entity_type="project", entity_id=project_id,
            old_value=old, new_value=validated,
        )


class DeleteProjectUseCase:
    """Hard delete, refused while time entries reference the project."""

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, project_id: int, actor_id: int) -> None:
        project = get_project_or_raise(self.db, project_id)

        has_entries = self.db.query(TimeEntry.id).filter(
            TimeEntry.project_id == project_id,
        ).first()
        if has_entries:
            raise ConflictError(
                "Cannot delete project with existing time entries. Archive it instead."
            )

        invoiced = self.db.query(InvoiceItem.id).filter(
            InvoiceItem.project_id == project_id,
        ).first()
        if invoiced:
            raise ConflictError("Cannot delete a project that appears on invoices. Archive it instead.")

        old = project_snapshot(project)
        self.db.query(UserProjectQuota).filter(
            UserProjectQuota.project_id == project_id,
        ).delete(synchronize_session=False)
        self.db.delete(project)
        self.db.commit()

        self.audit.record(
            "project.deleted", actor_id=actor_id,
            entity_type="project", entity_id=project_id,
            old_value=old,
        )


class CloneProjectUseCase:
    """Copy rate, VAT type, quota and threshold into a new active project for another year."""

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, project_id: int, new_year: int, actor_id: int) -> int:
        _validate_year(new_year)
        original = get_project_or_raise(self.db, project_id)

        clone = Project(
            name=original.name,
            hourly_rate=original.hourly_rate,
            vat_type=original.vat_type,
            total_quota_hours=original.total_quota_hours,
            warning_threshold=original.warning_threshold,
            year=new_year,
            status="active",
        )
        self.db.add(clone)
        self.db.commit()

        self.audit.record(
            "project.cloned", actor_id=actor_id,
            entity_type="project", entity_id=clone.id,
            old_value={"source_project_id": project_id},
            new_value=project_snapshot(clone),
        )
        return clone.id


# ── Read Service ──

class ProjectReadService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, project_id: int) -> Project:
        return get_project_or_raise(self.db, project_id)

    def list(self, year: int | None = None, status: str | None = None) -> list[Project]:
        q = self.db.query(Project)
        if year is not None:
            q = q.filter(Project.year == year)
        if status is not None:
            q = q.filter(Project.status == status)
        return q.order_by(Project.year.desc(), Project.name).all()

    def usage_for(self, project: Project, user_id: int) -> QuotaUsage:
        return self.list_with_usage_for(user_id, [project])[0][1]

    def list_with_usage(
        self, user: User, year: int | None = None, status: str | None = None,
    ) -> list[tuple[Project, QuotaUsage]]:
        """Projects with the calling user's usage and the project-wide usage."""
        return self.list_with_usage_for(user.id, self.list(year=year, status=status))

    def list_with_usage_for(
        self, user_id: int, projects: list[Project],
    ) -> list[tuple[Project, QuotaUsage]]:
        if not projects:
            return []
        ids = [p.id for p in projects]

        total_rows = self.db.query(
            TimeEntry.project_id, func.coalesce(func.sum(TimeEntry.duration_hours), 0),
        ).filter(
            TimeEntry.project_id.in_(ids),
        ).group_by(TimeEntry.project_id).all()
        totals = {pid: int(hours) for pid, hours in total_rows}

        user_rows = self.db.query(
            TimeEntry.project_id, func.coalesce(func.sum(TimeEntry.duration_hours), 0),
        ).filter(
            TimeEntry.project_id.in_(ids),
            TimeEntry.user_id == user_id,
        ).group_by(TimeEntry.project_id).all()
        user_totals = {pid: int(hours) for pid, hours in user_rows}

        overrides = {
            q.project_id: q.quota_hours
            for q in self.db.query(UserProjectQuota).filter(
                UserProjectQuota.project_id.in_(ids),
                UserProjectQuota.user_id == user_id,
            ).all()
        }

        result = []
        for project in projects:
            usage = compute_usage(
                user_hours_scaled=user_totals.get(project.id, 0),
                total_project_hours_scaled=totals.get(project.id, 0),
                effective_quota_hours=effective_quota(
                    project.total_quota_hours, overrides.get(project.id),
                ),
                total_quota_hours=project.total_quota_hours,
                warning_threshold=project.warning_threshold,
            )
            result.append((project, usage))
        return result
