"""
Audit recorder - append-only trail of administrative and data-changing actions

The recorder runs after the primary change has been committed and writes in
its own transaction. A failing audit write is logged and swallowed; it never
undoes or fails the action being audited.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from hourbook.infrastructure.db.models import AuditLog

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = (
    "user.created",
    "user.updated",
    "user.deleted",
    "user.role_changed",
    "user.deactivated",
    "user.login",
    "user.logout",
    "user.password_changed",
    "project.created",
    "project.updated",
    "project.deleted",
    "project.cloned",
    "time_entry.created",
    "time_entry.updated",
    "time_entry.deleted",
    "invoice.created",
    "invoice.status_changed",
    "invoice.deleted",
    "invoice.synced",
    "category.created",
    "category.updated",
    "category.deleted",
    "quota.created",
    "quota.updated",
    "quota.deleted",
)


@dataclass(frozen=True)
class AuditOrigin:
    """Where a request came from"""
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_headers(cls, headers, client_host: str | None = None) -> "AuditOrigin":
        """
        Client IP: first hop of X-Forwarded-For, then X-Real-IP, then the socket peer.
        """
        forwarded = headers.get("x-forwarded-for")
        ip = None
        if forwarded:
            ip = forwarded.split(",")[0].strip() or None
        if not ip:
            ip = headers.get("x-real-ip") or client_host
        return cls(ip_address=ip, user_agent=headers.get("user-agent"))


def _to_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str, ensure_ascii=False)


class AuditRecorder:
    def __init__(self, db: Session, origin: AuditOrigin | None = None):
        self.db = db
        self.origin = origin or AuditOrigin()

    def record(
        self,
        action: str,
        actor_id: int | None = None,
        entity_type: str | None = None,
        entity_id: int | None = None,
        old_value: Any = None,
        new_value: Any = None,
    ) -> None:
        """
        Append one audit entry and commit it.

        Example:
            >>> AuditRecorder(db, origin).record(
            ...     "project.deleted", actor_id=1,
            ...     entity_type="project", entity_id=7,
            ...     old_value={"name": "Alpha"},
            ... )
        """
        try:
            self.db.add(AuditLog(
                user_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                old_value=_to_json(old_value),
                new_value=_to_json(new_value),
                ip_address=self.origin.ip_address,
                user_agent=self.origin.user_agent,
            ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to write audit log %s for %s #%s", action, entity_type, entity_id)
