"""
Category API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user, require_admin, get_audit
from hourbook.application.categories import (
    CreateCategoryUseCase, UpdateCategoryUseCase, DeleteCategoryUseCase,
    SeedDefaultCategoriesUseCase, CategoryReadService,
)
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User, Category


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


# === Request/Response models ===

class CreateCategoryRequest(BaseModel):
    code: str
    name: str
    description: str | None = None


class UpdateCategoryRequest(BaseModel):
    code: str | None = None
    name: str | None = None
    description: str | None = None


class CategoryResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str | None


def _to_response(category: Category) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        code=category.code,
        name=category.name,
        description=category.description,
    )


# === Endpoints ===

@router.get("/", response_model=list[CategoryResponse])
def list_categories(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [_to_response(c) for c in CategoryReadService(db).list()]


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(CategoryReadService(db).get(category_id))


@router.post("/", response_model=CategoryResponse)
def create_category(
    req: CreateCategoryRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    category_id = CreateCategoryUseCase(db, audit).execute(
        actor_id=admin.id, code=req.code, name=req.name, description=req.description,
    )
    return _to_response(CategoryReadService(db).get(category_id))


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    req: UpdateCategoryRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    UpdateCategoryUseCase(db, audit).execute(
        category_id=category_id, actor_id=admin.id, **req.model_dump(exclude_unset=True),
    )
    return _to_response(CategoryReadService(db).get(category_id))


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    DeleteCategoryUseCase(db, audit).execute(category_id=category_id, actor_id=admin.id)
    return {"success": True}


@router.post("/seed-defaults")
def seed_default_categories(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Insert the standard category set (existing codes are kept)"""
    created = SeedDefaultCategoriesUseCase(db).execute()
    return {"success": True, "created": created}
