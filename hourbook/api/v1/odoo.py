"""
Odoo settings API endpoints (per user)
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user
from hourbook.application.odoo_settings import OdooSettingsService
from hourbook.config import get_settings
from hourbook.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/odoo", tags=["odoo"])


class OdooConnectionRequest(BaseModel):
    odoo_url: str
    username: str
    database: str
    api_key: str


class SaveOdooConfigRequest(OdooConnectionRequest):
    is_active: bool = True


class OdooConfigResponse(BaseModel):
    odoo_url: str
    username: str
    database: str
    api_key: str  # masked
    is_active: bool
    last_tested_at: datetime | None


def _service(db: Session) -> OdooSettingsService:
    return OdooSettingsService(db, timeout=get_settings().ODOO_TIMEOUT_SECONDS)


@router.get("/config", response_model=OdooConfigResponse | None)
def get_config(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    config = _service(db).get(user.id)
    if config is None:
        return None
    return OdooConfigResponse(
        odoo_url=config.odoo_url,
        username=config.username,
        database=config.database,
        api_key=config.api_key,
        is_active=config.is_active,
        last_tested_at=config.last_tested_at,
    )


@router.post("/test-connection")
def test_connection(
    req: OdooConnectionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = _service(db).test(req.odoo_url, req.username, req.database, req.api_key)
    return {"success": result.success, "message": result.message, "uid": result.uid}


@router.put("/config")
def save_config(
    req: SaveOdooConfigRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Connection is tested before anything is stored"""
    _service(db).save(
        user_id=user.id,
        odoo_url=req.odoo_url,
        username=req.username,
        database=req.database,
        api_key=req.api_key,
        is_active=req.is_active,
    )
    return {"success": True, "message": "Configuration saved successfully"}


@router.delete("/config")
def delete_config(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _service(db).delete(user.id)
    return {"success": True, "message": "Configuration deleted successfully"}
