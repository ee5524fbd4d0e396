"""
Per-user project quota overrides
"""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from hourbook.application.projects import get_project_or_raise
from hourbook.errors import ValidationError, NotFoundError
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import UserProjectQuota, User


@dataclass(frozen=True)
class UpsertResult:
    id: int
    updated: bool


def quota_snapshot(quota: UserProjectQuota) -> dict:
    return {
        "id": quota.id,
        "user_id": quota.user_id,
        "project_id": quota.project_id,
        "quota_hours": quota.quota_hours,
    }


def _find(db: Session, user_id: int, project_id: int) -> UserProjectQuota | None:
    return db.query(UserProjectQuota).filter(
        UserProjectQuota.user_id == user_id,
        UserProjectQuota.project_id == project_id,
    ).first()


class UpsertQuotaUseCase:
    """Create the override, or change its hours when one already exists."""

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, actor_id: int, user_id: int, project_id: int, quota_hours: int) -> UpsertResult:
        if quota_hours < 0:
            raise ValidationError("Quota hours must not be negative")
        get_project_or_raise(self.db, project_id)
        if not self.db.get(User, user_id):
            raise NotFoundError(f"User {user_id} not found")

        existing = _find(self.db, user_id, project_id)
        new_value = {"user_id": user_id, "project_id": project_id, "quota_hours": quota_hours}

        if existing:
            old = quota_snapshot(existing)
            existing.quota_hours = quota_hours
            self.db.commit()
            self.audit.record(
                "quota.updated", actor_id=actor_id,
                entity_type="user_project_quota", entity_id=existing.id,
                old_value=old, new_value=new_value,
            )
            return UpsertResult(id=existing.id, updated=True)

        quota = UserProjectQuota(**new_value)
        self.db.add(quota)
        self.db.commit()
        self.audit.record(
            "quota.created", actor_id=actor_id,
            entity_type="user_project_quota", entity_id=quota.id,
            new_value=new_value,
        )
        return UpsertResult(id=quota.id, updated=False)


class DeleteQuotaUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, actor_id: int, user_id: int, project_id: int) -> bool:
        """Returns False when there was no override to delete."""
        existing = _find(self.db, user_id, project_id)
        if not existing:
            return False

        old = quota_snapshot(existing)
        self.db.delete(existing)
        self.db.commit()
        self.audit.record(
            "quota.deleted", actor_id=actor_id,
            entity_type="user_project_quota", entity_id=old["id"],
            old_value=old,
        )
        return True


class QuotaReadService:
    def __init__(self, db: Session):
        self.db = db

    def list_by_project(self, project_id: int) -> list[UserProjectQuota]:
        return self.db.query(UserProjectQuota).filter(
            UserProjectQuota.project_id == project_id,
        ).order_by(UserProjectQuota.user_id).all()

    def get(self, user_id: int, project_id: int) -> UserProjectQuota | None:
        return _find(self.db, user_id, project_id)
