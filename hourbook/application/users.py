"""
User administration and local (username/password) authentication.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from hourbook.auth import (
    LOCAL_LOGIN_METHOD, hash_password, verify_password, get_user_by_username, is_local_account,
)
from hourbook.domain.scaled import from_scaled
from hourbook.errors import (
    ValidationError, NotFoundError, ConflictError,
    AuthorizationError, AuthenticationError,
)
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import (
    User, TimeEntry, Invoice, UserProjectQuota, OdooConfiguration,
)


USER_ROLES = ("user", "admin")

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class UserWithStats:
    user: User
    total_hours: Decimal
    total_entries: int


def get_user_or_raise(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _validate_password(password: str) -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


# ── Administration ──

class UpdateUserRoleUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, user_id: int, role: str, actor: User) -> None:
        if role not in USER_ROLES:
            raise ValidationError(f"Invalid role: {role}")
        if user_id == actor.id and role != "admin":
            raise ValidationError("You cannot remove your own admin privileges")

        user = get_user_or_raise(self.db, user_id)
        old_role = user.role
        user.role = role
        self.db.commit()

        self.audit.record(
            "user.role_changed", actor_id=actor.id,
            entity_type="user", entity_id=user_id,
            old_value={"role": old_role}, new_value={"role": role},
        )


class DeactivateUserUseCase:
    """One-way: a deactivated user can no longer log in or use a session."""

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, user_id: int, actor: User) -> None:
        if user_id == actor.id:
            raise ValidationError("You cannot deactivate your own account")

        user = get_user_or_raise(self.db, user_id)
        if not user.is_active:
            return
        user.status = "deactivated"
        self.db.commit()

        self.audit.record(
            "user.deactivated", actor_id=actor.id,
            entity_type="user", entity_id=user_id,
            old_value={"status": "active"}, new_value={"status": "deactivated"},
        )


class DeleteUserUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, user_id: int, actor: User) -> None:
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account")

        user = get_user_or_raise(self.db, user_id)

        entry_count = self.db.query(func.count(TimeEntry.id)).filter(
            TimeEntry.user_id == user_id,
        ).scalar()
        if entry_count:
            raise ConflictError(
                f"Cannot delete user with {entry_count} time entries. "
                "Please reassign or delete their entries first."
            )

        invoice_count = self.db.query(func.count(Invoice.id)).filter(
            Invoice.user_id == user_id,
        ).scalar()
        if invoice_count:
            raise ConflictError(f"Cannot delete user with {invoice_count} invoices.")

        old = {"username": user.username, "name": user.name, "role": user.role}
        # owned settings go with the account
        self.db.query(UserProjectQuota).filter(
            UserProjectQuota.user_id == user_id,
        ).delete(synchronize_session=False)
        self.db.query(OdooConfiguration).filter(
            OdooConfiguration.user_id == user_id,
        ).delete(synchronize_session=False)
        self.db.delete(user)
        self.db.commit()

        self.audit.record(
            "user.deleted", actor_id=actor.id,
            entity_type="user", entity_id=user_id,
            old_value=old,
        )


class UserReadService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> User:
        return get_user_or_raise(self.db, user_id)

    def list_with_stats(self) -> list[UserWithStats]:
        stats = {
            user_id: (int(hours or 0), count)
            for user_id, hours, count in self.db.query(
                TimeEntry.user_id,
                func.sum(TimeEntry.duration_hours),
                func.count(TimeEntry.id),
            ).group_by(TimeEntry.user_id).all()
        }
        result = []
        for user in self.db.query(User).order_by(User.id).all():
            hours, count = stats.get(user.id, (0, 0))
            result.append(UserWithStats(user=user, total_hours=from_scaled(hours), total_entries=count))
        return result


# ── Local authentication ──

class CreateLocalUserUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(
        self,
        actor: User,
        username: str,
        password: str,
        name: str,
        email: str | None = None,
        role: str = "user",
    ) -> int:
        username = (username or "").strip()
        if not MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be {MIN_USERNAME_LENGTH}-{MAX_USERNAME_LENGTH} characters"
            )
        _validate_password(password)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name must not be empty")
        if role not in USER_ROLES:
            raise ValidationError(f"Invalid role: {role}")
        if get_user_by_username(self.db, username):
            raise ConflictError("Username already exists")

        user = User(
            username=username,
            password_hash=hash_password(password),
            name=name,
            email=email,
            login_method=LOCAL_LOGIN_METHOD,
            role=role,
        )
        self.db.add(user)
        self.db.commit()

        self.audit.record(
            "user.created", actor_id=actor.id,
            entity_type="user", entity_id=user.id,
            new_value={"username": username, "name": name, "role": role},
        )
        return user.id


class LoginUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, username: str, password: str) -> User:
        """
        Raises:
            AuthenticationError: unknown user or wrong password
            AuthorizationError: account deactivated
            ValidationError: account has no local password
        """
        user = get_user_by_username(self.db, (username or "").strip())
        if not user:
            raise AuthenticationError("Invalid username or password")
        if not user.is_active:
            raise AuthorizationError("This account has been deactivated")
        if not user.password_hash:
            raise ValidationError("This account does not use password authentication")
        if not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid username or password")

        user.last_signed_in = datetime.now(timezone.utc)
        self.db.commit()

        self.audit.record("user.login", actor_id=user.id, entity_type="user", entity_id=user.id)
        return user


class ChangePasswordUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, actor: User, current_password: str, new_password: str) -> None:
        if not actor.password_hash:
            raise ValidationError("This account does not use password authentication")
        if not verify_password(current_password, actor.password_hash):
            raise AuthenticationError("Current password is incorrect")
        _validate_password(new_password)

        actor.password_hash = hash_password(new_password)
        self.db.commit()

        self.audit.record(
            "user.password_changed", actor_id=actor.id,
            entity_type="user", entity_id=actor.id,
        )


class ResetUserPasswordUseCase:
    """Admin sets a new password for a local user"""

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, user_id: int, new_password: str, actor: User) -> None:
        _validate_password(new_password)
        user = get_user_or_raise(self.db, user_id)
        if not is_local_account(user):
            raise ValidationError("Can only reset passwords for local users")

        user.password_hash = hash_password(new_password)
        self.db.commit()

        self.audit.record(
            "user.password_changed", actor_id=actor.id,
            entity_type="user", entity_id=user_id,
            new_value={"reset_by_admin": actor.id},
        )
