"""
User administration API endpoints (admin only)
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, require_admin, get_audit
from hourbook.application.users import (
    CreateLocalUserUseCase, UpdateUserRoleUseCase, DeactivateUserUseCase,
    DeleteUserUseCase, ResetUserPasswordUseCase, UserReadService,
)
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/users", tags=["users"])


# === Request/Response models ===

class CreateLocalUserRequest(BaseModel):
    username: str
    password: str
    name: str
    email: str | None = None
    role: str = "user"


class UpdateRoleRequest(BaseModel):
    role: str


class ResetPasswordRequest(BaseModel):
    new_password: str


class UserResponse(BaseModel):
    id: int
    username: str | None
    name: str | None
    email: str | None
    role: str
    status: str
    login_method: str | None
    created_at: datetime | None
    last_signed_in: datetime | None
    total_hours: str | None = None
    total_entries: int | None = None


def _to_response(user: User, total_hours=None, total_entries=None) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        email=user.email,
        role=user.role,
        status=user.status,
        login_method=user.login_method,
        created_at=user.created_at,
        last_signed_in=user.last_signed_in,
        total_hours=str(total_hours) if total_hours is not None else None,
        total_entries=total_entries,
    )


# === Endpoints ===

@router.get("/", response_model=list[UserResponse])
def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All users with their total hours and entry counts"""
    return [
        _to_response(row.user, row.total_hours, row.total_entries)
        for row in UserReadService(db).list_with_stats()
    ]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _to_response(UserReadService(db).get(user_id))


@router.post("/", response_model=UserResponse)
def create_local_user(
    req: CreateLocalUserRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    user_id = CreateLocalUserUseCase(db, audit).execute(
        actor=admin,
        username=req.username,
        password=req.password,
        name=req.name,
        email=req.email,
        role=req.role,
    )
    return _to_response(UserReadService(db).get(user_id))


@router.patch("/{user_id}/role")
def update_role(
    user_id: int,
    req: UpdateRoleRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    UpdateUserRoleUseCase(db, audit).execute(user_id, req.role, actor=admin)
    return {"success": True}


@router.post("/{user_id}/deactivate")
def deactivate_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    DeactivateUserUseCase(db, audit).execute(user_id, actor=admin)
    return {"success": True}


@router.post("/{user_id}/reset-password")
def reset_password(
    user_id: int,
    req: ResetPasswordRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    ResetUserPasswordUseCase(db, audit).execute(user_id, req.new_password, actor=admin)
    return {"success": True}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    DeleteUserUseCase(db, audit).execute(user_id, actor=admin)
    return {"success": True}
