"""
FastAPI dependencies (DB session, authentication, audit context)
"""
from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from hourbook.application.odoo_sync import OdooInvoiceSync
from hourbook.config import get_settings
from hourbook.infrastructure.audit.recorder import AuditRecorder, AuditOrigin
from hourbook.infrastructure.db.session import get_db as _get_db
from hourbook.infrastructure.db.models import User


# Re-export so routers and tests override a single dependency
get_db = _get_db


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Current user from the session cookie

    Raises:
        HTTPException(401): not logged in, unknown or deactivated user

    Usage:
        @router.get("/me")
        def me(user: User = Depends(get_current_user)):
            ...
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        request.session.clear()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Current user, 403 unless admin"""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can perform this action"
        )
    return user


def request_origin(request: Request) -> AuditOrigin:
    client_host = request.client.host if request.client else None
    return AuditOrigin.from_headers(request.headers, client_host)


def get_audit(
    db: Session = Depends(get_db),
    origin: AuditOrigin = Depends(request_origin),
) -> AuditRecorder:
    return AuditRecorder(db, origin)


def get_odoo_sync(
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
) -> OdooInvoiceSync:
    settings = get_settings()
    return OdooInvoiceSync(
        db,
        company_name=settings.ODOO_COMPANY_NAME,
        timeout=settings.ODOO_TIMEOUT_SECONDS,
        currency=settings.CURRENCY,
        audit=audit,
    )
