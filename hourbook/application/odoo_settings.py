"""
Per-user Odoo connection settings
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from hourbook.errors import ValidationError, ExternalServiceError
from hourbook.infrastructure.db.models import OdooConfiguration
from hourbook.infrastructure.odoo.client import OdooClient, OdooConfig, ConnectionTestResult


@dataclass(frozen=True)
class MaskedOdooConfig:
    odoo_url: str
    username: str
    database: str
    api_key: str
    is_active: bool
    last_tested_at: datetime | None


def mask_api_key(api_key: str) -> str:
    """Only the last 4 characters stay visible"""
    return "***" + api_key[-4:]


def _build_config(odoo_url: str, username: str, database: str, api_key: str, timeout=None) -> OdooConfig:
    for field, value in (
        ("odoo_url", odoo_url), ("username", username),
        ("database", database), ("api_key", api_key),
    ):
        if not (value or "").strip():
            raise ValidationError(f"{field} must not be empty")
    if not odoo_url.startswith(("http://", "https://")):
        raise ValidationError("odoo_url must be an http(s) URL")
    return OdooConfig(
        url=odoo_url.strip(), username=username.strip(),
        database=database.strip(), api_key=api_key.strip(), timeout=timeout,
    )


class OdooSettingsService:
    def __init__(
        self,
        db: Session,
        client_factory: Callable[[OdooConfig], OdooClient] = OdooClient,
        timeout: int | None = None,
    ):
        self.db = db
        self.client_factory = client_factory
        self.timeout = timeout

    def _row(self, user_id: int) -> OdooConfiguration | None:
        return self.db.query(OdooConfiguration).filter(
            OdooConfiguration.user_id == user_id,
        ).first()

    def get(self, user_id: int) -> MaskedOdooConfig | None:
        row = self._row(user_id)
        if not row:
            return None
        return MaskedOdooConfig(
            odoo_url=row.odoo_url,
            username=row.username,
            database=row.database,
            api_key=mask_api_key(row.api_key),
            is_active=row.is_active,
            last_tested_at=row.last_tested_at,
        )

    def test(self, odoo_url: str, username: str, database: str, api_key: str) -> ConnectionTestResult:
        config = _build_config(odoo_url, username, database, api_key, self.timeout)
        return self.client_factory(config).test_connection()

    def save(
        self, user_id: int, odoo_url: str, username: str, database: str, api_key: str,
        is_active: bool = True,
    ) -> None:
        """
        Test the connection first; nothing is stored when it fails.

        Raises:
            ExternalServiceError: connection test failed
        """
        config = _build_config(odoo_url, username, database, api_key, self.timeout)
        result = self.client_factory(config).test_connection()
        if not result.success:
            raise ExternalServiceError(f"Connection test failed: {result.message}")

        row = self._row(user_id)
        if row is None:
            row = OdooConfiguration(user_id=user_id)
            self.db.add(row)
        row.odoo_url = config.url
        row.username = config.username
        row.database = config.database
        row.api_key = config.api_key
        row.is_active = is_active
        row.last_tested_at = datetime.now(timezone.utc)
        self.db.commit()

    def delete(self, user_id: int) -> bool:
        deleted = self.db.query(OdooConfiguration).filter(
            OdooConfiguration.user_id == user_id,
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted > 0
