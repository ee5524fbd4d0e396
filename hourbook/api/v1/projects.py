"""
Project API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user, require_admin, get_audit
from hourbook.application.projects import (
    CreateProjectUseCase, UpdateProjectUseCase, DeleteProjectUseCase,
    CloneProjectUseCase, ProjectReadService,
)
from hourbook.domain.quota import QuotaUsage
from hourbook.domain.scaled import from_scaled
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User, Project


router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


# === Request/Response models ===

class CreateProjectRequest(BaseModel):
    name: str
    hourly_rate: str  # Decimal as string, e.g. "150.00"
    vat_type: str  # inclusive, exclusive
    total_quota_hours: int = Field(ge=0)
    warning_threshold: int = Field(default=80, ge=0, le=100)
    year: int
    status: str = "active"


class UpdateProjectRequest(BaseModel):
    name: str | None = None
    hourly_rate: str | None = None
    vat_type: str | None = None
    total_quota_hours: int | None = Field(default=None, ge=0)
    warning_threshold: int | None = Field(default=None, ge=0, le=100)
    year: int | None = None
    status: str | None = None


class CloneProjectRequest(BaseModel):
    new_year: int


class ProjectResponse(BaseModel):
    id: int
    name: str
    hourly_rate: str
    vat_type: str
    total_quota_hours: int
    warning_threshold: int
    year: int
    status: str


class ProjectUsageResponse(ProjectResponse):
    used_hours: str
    user_quota_hours: int
    usage_percentage: float
    is_warning: bool
    is_over_quota: bool
    total_used_hours: str
    total_usage_percentage: float


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        hourly_rate=str(from_scaled(project.hourly_rate)),
        vat_type=project.vat_type,
        total_quota_hours=project.total_quota_hours,
        warning_threshold=project.warning_threshold,
        year=project.year,
        status=project.status,
    )


def _to_usage_response(project: Project, usage: QuotaUsage) -> ProjectUsageResponse:
    return ProjectUsageResponse(
        **_to_response(project).model_dump(),
        used_hours=str(usage.used_hours),
        user_quota_hours=usage.user_quota_hours,
        usage_percentage=usage.usage_percentage,
        is_warning=usage.is_warning,
        is_over_quota=usage.is_over_quota,
        total_used_hours=str(usage.total_used_hours),
        total_usage_percentage=usage.total_usage_percentage,
    )


# === Endpoints ===

@router.get("/", response_model=list[ProjectUsageResponse])
def list_projects(
    year: int | None = None,
    status: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Projects with the caller's quota usage"""
    rows = ProjectReadService(db).list_with_usage(user, year=year, status=status)
    return [_to_usage_response(project, usage) for project, usage in rows]


@router.get("/{project_id}", response_model=ProjectUsageResponse)
def get_project(
    project_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = ProjectReadService(db)
    project = service.get(project_id)
    return _to_usage_response(project, service.usage_for(project, user.id))


@router.post("/", response_model=ProjectResponse)
def create_project(
    req: CreateProjectRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    project_id = CreateProjectUseCase(db, audit).execute(actor_id=admin.id, **req.model_dump())
    return _to_response(ProjectReadService(db).get(project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    req: UpdateProjectRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    UpdateProjectUseCase(db, audit).execute(
        project_id=project_id, actor_id=admin.id, **req.model_dump(exclude_unset=True),
    )
    return _to_response(ProjectReadService(db).get(project_id))


@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    DeleteProjectUseCase(db, audit).execute(project_id=project_id, actor_id=admin.id)
    return {"success": True}


@router.post("/{project_id}/clone", response_model=ProjectResponse)
def clone_project(
    project_id: int,
    req: CloneProjectRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    new_id = CloneProjectUseCase(db, audit).execute(
        project_id=project_id, new_year=req.new_year, actor_id=admin.id,
    )
    return _to_response(ProjectReadService(db).get(new_id))
