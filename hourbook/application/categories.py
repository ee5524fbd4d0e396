"""
Categories use-cases (work categories attached to time entries)
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from hourbook.errors import ValidationError, NotFoundError, ConflictError
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import Category, TimeEntry

logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 10

DEFAULT_CATEGORIES = (
    ("GF", "Geschäftsführung (Management)", "General management and leadership activities"),
    ("NRP", "NRP Projects", "New Regional Policy projects"),
    ("IC", "Innovationscoaching", "Innovation coaching activities"),
    ("IS", "Innoscouting", "Innovation scouting activities"),
    ("TP", "Tüftel Park", "Tüftel Park project activities"),
    ("SE", "Swiss Edition", "Swiss Edition project activities"),
    ("KI", "KI Projects", "Artificial Intelligence project activities"),
    ("SU", "Start-up Ökosystem", "Start-up ecosystem activities"),
)


def category_snapshot(category: Category) -> dict:
    return {
        "id": category.id,
        "code": category.code,
        "name": category.name,
        "description": category.description,
    }


def get_category_or_raise(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def _validate_code(code: str) -> str:
    code = (code or "").strip()
    if not code:
        raise ValidationError("Category code must not be empty")
    if len(code) > MAX_CODE_LENGTH:
        raise ValidationError(f"Category code must be at most {MAX_CODE_LENGTH} characters")
    return code


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name must not be empty")
    return name


def _ensure_code_free(db: Session, code: str, exclude_id: int | None = None) -> None:
    q = db.query(Category.id).filter(Category.code == code)
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError(f"Category code '{code}' already exists")


class CreateCategoryUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, actor_id: int, code: str, name: str, description: str | None = None) -> int:
        code = _validate_code(code)
        name = _validate_name(name)
        _ensure_code_free(self.db, code)

        category = Category(code=code, name=name, description=(description or "").strip() or None)
        self.db.add(category)
        self.db.commit()

        self.audit.record(
            "category.created", actor_id=actor_id,
            entity_type="category", entity_id=category.id,
            new_value=category_snapshot(category),
        )
        return category.id


class UpdateCategoryUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, category_id: int, actor_id: int, **changes) -> None:
        category = get_category_or_raise(self.db, category_id)
        old = category_snapshot(category)

        if "code" in changes:
            code = _validate_code(changes["code"])
            _ensure_code_free(self.db, code, exclude_id=category_id)
            category.code = code
        if "name" in changes:
            category.name = _validate_name(changes["name"])
        if "description" in changes:
            category.description = (changes["description"] or "").strip() or None

        self.db.commit()

        self.audit.record(
            "category.updated", actor_id=actor_id,
            entity_type="category", entity_id=category_id,
            old_value=old, new_value=category_snapshot(category),
        )


class DeleteCategoryUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, category_id: int, actor_id: int) -> None:
        category = get_category_or_raise(self.db, category_id)

        in_use = self.db.query(TimeEntry.id).filter(
            TimeEntry.category_id == category_id,
        ).first()
        if in_use:
            raise ConflictError("Cannot delete category with existing time entries.")

        old = category_snapshot(category)
        self.db.delete(category)
        self.db.commit()

        self.audit.record(
            "category.deleted", actor_id=actor_id,
            entity_type="category", entity_id=category_id,
            old_value=old,
        )


class SeedDefaultCategoriesUseCase:
    """Insert the standard category set; codes that already exist are skipped."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self) -> int:
        existing = {code for (code,) in self.db.query(Category.code).all()}
        created = 0
        for code, name, description in DEFAULT_CATEGORIES:
            if code in existing:
                logger.info("Category %s already exists, skipping", code)
                continue
            self.db.add(Category(code=code, name=name, description=description))
            created += 1
        self.db.commit()
        return created


class CategoryReadService:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> list[Category]:
        return self.db.query(Category).order_by(Category.code).all()

    def get(self, category_id: int) -> Category:
        return get_category_or_raise(self.db, category_id)
