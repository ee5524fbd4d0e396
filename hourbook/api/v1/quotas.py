"""
Per-user project quota API endpoints (admin only)
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, require_admin, get_audit
from hourbook.application.quotas import UpsertQuotaUseCase, DeleteQuotaUseCase, QuotaReadService
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User, UserProjectQuota


router = APIRouter(prefix="/api/v1/quotas", tags=["quotas"])


class UpsertQuotaRequest(BaseModel):
    user_id: int
    project_id: int
    quota_hours: int = Field(ge=0)


class QuotaResponse(BaseModel):
    id: int
    user_id: int
    project_id: int
    quota_hours: int


def _to_response(quota: UserProjectQuota) -> QuotaResponse:
    return QuotaResponse(
        id=quota.id,
        user_id=quota.user_id,
        project_id=quota.project_id,
        quota_hours=quota.quota_hours,
    )


@router.get("/", response_model=list[QuotaResponse])
def list_quotas(
    project_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [_to_response(q) for q in QuotaReadService(db).list_by_project(project_id)]


@router.get("/{user_id}/{project_id}", response_model=QuotaResponse | None)
def get_quota(
    user_id: int,
    project_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    quota = QuotaReadService(db).get(user_id, project_id)
    return _to_response(quota) if quota else None


@router.put("/")
def upsert_quota(
    req: UpsertQuotaRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    result = UpsertQuotaUseCase(db, audit).execute(
        actor_id=admin.id,
        user_id=req.user_id,
        project_id=req.project_id,
        quota_hours=req.quota_hours,
    )
    return {"id": result.id, "updated": result.updated}


@router.delete("/{user_id}/{project_id}")
def delete_quota(
    user_id: int,
    project_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    deleted = DeleteQuotaUseCase(db, audit).execute(
        actor_id=admin.id, user_id=user_id, project_id=project_id,
    )
    return {"success": deleted}
