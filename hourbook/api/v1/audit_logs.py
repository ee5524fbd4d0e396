"""
Audit log API endpoints (admin only)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, require_admin
from hourbook.application.audit_logs import AuditLogReadService, AuditLogFilter, MAX_LIMIT
from hourbook.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/audit-logs", tags=["audit-logs"])


class AuditLogResponse(BaseModel):
    id: int
    user_id: int | None
    user_name: str | None
    action: str
    entity_type: str | None
    entity_id: int | None
    old_value: str | None
    new_value: str | None
    ip_address: str | None
    user_agent: str | None
    created_at: datetime


def _filter(user_id, action, entity_type, start, end) -> AuditLogFilter:
    return AuditLogFilter(
        user_id=user_id, action=action, entity_type=entity_type, start=start, end=end,
    )


@router.get("/", response_model=list[AuditLogResponse])
def list_audit_logs(
    user_id: int | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=MAX_LIMIT),
    offset: int = Query(default=0, ge=0),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = AuditLogReadService(db).list(
        _filter(user_id, action, entity_type, start, end), limit=limit, offset=offset,
    )
    return [
        AuditLogResponse(
            id=log.id,
            user_id=log.user_id,
            user_name=user_name,
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            old_value=log.old_value,
            new_value=log.new_value,
            ip_address=log.ip_address,
            user_agent=log.user_agent,
            created_at=log.created_at,
        )
        for log, user_name in rows
    ]


@router.get("/count")
def count_audit_logs(
    user_id: int | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"count": AuditLogReadService(db).count(_filter(user_id, action, entity_type, start, end))}
