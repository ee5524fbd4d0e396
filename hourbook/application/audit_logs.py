"""
Audit log read service (admin)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from hourbook.errors import ValidationError
from hourbook.infrastructure.db.models import AuditLog, User

MAX_LIMIT = 1000


@dataclass(frozen=True)
class AuditLogFilter:
    user_id: int | None = None
    action: str | None = None  # substring match
    entity_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None


class AuditLogReadService:
    def __init__(self, db: Session):
        self.db = db

    def _filtered(self, q, f: AuditLogFilter):
        if f.user_id is not None:
            q = q.filter(AuditLog.user_id == f.user_id)
        if f.action:
            q = q.filter(AuditLog.action.contains(f.action, autoescape=True))
        if f.entity_type:
            q = q.filter(AuditLog.entity_type == f.entity_type)
        if f.start is not None:
            q = q.filter(AuditLog.created_at >= f.start)
        if f.end is not None:
            q = q.filter(AuditLog.created_at <= f.end)
        return q

    def list(
        self, f: AuditLogFilter | None = None, limit: int = 100, offset: int = 0,
    ) -> list[tuple[AuditLog, str | None]]:
        """Newest first, each log paired with the acting user's name"""
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        q = self.db.query(AuditLog, User.name).outerjoin(User, User.id == AuditLog.user_id)
        q = self._filtered(q, f or AuditLogFilter())
        rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()
        return [(log, name) for log, name in rows]

    def count(self, f: AuditLogFilter | None = None) -> int:
        q = self._filtered(self.db.query(func.count(AuditLog.id)), f or AuditLogFilter())
        return q.scalar()
