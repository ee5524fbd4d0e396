"""
Authentication routes (local login, logout, own profile and password)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user, get_audit
from hourbook.application.users import LoginUseCase, ChangePasswordUseCase
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


# === Request/Response models ===

class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class MeResponse(BaseModel):
    id: int
    username: str | None
    name: str | None
    email: str | None
    role: str
    status: str
    login_method: str | None
    last_signed_in: datetime | None


def me_response(user: User) -> MeResponse:
    return MeResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        email=user.email,
        role=user.role,
        status=user.status,
        login_method=user.login_method,
        last_signed_in=user.last_signed_in,
    )


# === Endpoints ===

@router.post("/login", response_model=MeResponse)
def login(
    request: Request,
    req: LoginRequest,
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    """Check credentials and start a session"""
    user = LoginUseCase(db, audit).execute(req.username, req.password)

    request.session["user_id"] = user.id
    request.session["is_admin"] = user.is_admin
    return me_response(user)


@router.post("/logout")
def logout(request: Request, audit: AuditRecorder = Depends(get_audit)):
    user_id = request.session.get("user_id")
    request.session.clear()
    if user_id:
        audit.record("user.logout", actor_id=user_id, entity_type="user", entity_id=user_id)
    return {"success": True}


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return me_response(user)


@router.post("/change-password")
def change_password(
    req: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    ChangePasswordUseCase(db, audit).execute(user, req.current_password, req.new_password)
    return {"success": True}
