"""Tests for pushing invoices to Odoo and the per-user connection settings"""
from datetime import date
from unittest.mock import Mock

import pytest

from hourbook.application.invoices import InvoiceGenerator
from hourbook.application.odoo_settings import OdooSettingsService, mask_api_key
from hourbook.application.odoo_sync import OdooInvoiceSync
from hourbook.errors import ExternalServiceError, ValidationError
from hourbook.infrastructure.db.models import Invoice, OdooConfiguration, AuditLog
from hourbook.infrastructure.odoo.client import ConnectionTestResult


@pytest.fixture
def invoice(db_session, alice, project, category, make_entry):
    make_entry(db_session, alice, project, category, hours=100)
    created = InvoiceGenerator(db_session).generate(alice.id, 11, 2025, "Acme AG")
    return db_session.get(Invoice, created.id)


@pytest.fixture
def odoo_config(db_session, alice):
    row = OdooConfiguration(
        user_id=alice.id, odoo_url="https://odoo.example.com",
        username="alice@example.com", database="prod", api_key="key-1234",
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def client():
    client = Mock()
    client.find_company.return_value = 1
    client.find_partner.return_value = 7
    client.create_invoice.return_value = 42
    return client


def _sync(db, client, **kwargs):
    return OdooInvoiceSync(db, client_factory=lambda config: client, today=lambda: date(2025, 12, 1), **kwargs)


class TestPush:
    def test_success(self, db_session, invoice, odoo_config, client):
        result = _sync(db_session, client).push(invoice.id)

        assert result.success is True
        assert result.odoo_invoice_id == 42
        db_session.refresh(invoice)
        assert invoice.odoo_invoice_id == 42
        assert db_session.query(AuditLog).filter(AuditLog.action == "invoice.synced").count() == 1

    def test_move_values(self, db_session, invoice, odoo_config, client):
        _sync(db_session, client).push(invoice.id)

        client.find_company.assert_called_once_with("Schwyz Next")
        client.find_partner.assert_called_once_with("Acme AG")
        values = client.create_invoice.call_args[0][0]
        assert values["partner_id"] == 7
        assert values["company_id"] == 1
        assert values["move_type"] == "out_invoice"
        assert values["invoice_date"] == "2025-12-01"
        assert values["ref"] == "2025-11-001"
        assert values["invoice_line_ids"] == [
            (0, 0, {"name": "Alpha - 1.00h @ CHF 150.00/h", "quantity": 1.0, "price_unit": 150.0}),
        ]

    def test_not_configured(self, db_session, invoice, client):
        result = _sync(db_session, client).push(invoice.id)
        assert result.success is False
        assert "not configured" in result.message
        client.find_company.assert_not_called()

    def test_inactive(self, db_session, invoice, odoo_config, client):
        odoo_config.is_active = False
        db_session.commit()
        assert _sync(db_session, client).push(invoice.id).success is False

    def test_company_missing(self, db_session, invoice, odoo_config, client):
        client.find_company.return_value = None
        result = _sync(db_session, client, company_name="Other AG").push(invoice.id)
        assert result.message == "Company 'Other AG' not found in Odoo"

    def test_customer_missing(self, db_session, invoice, odoo_config, client):
        client.find_partner.return_value = None
        result = _sync(db_session, client).push(invoice.id)
        assert result.success is False
        assert "Customer 'Acme AG' not found" in result.message
        client.create_invoice.assert_not_called()

    def test_remote_failure_leaves_invoice_alone(self, db_session, invoice, odoo_config, client):
        client.create_invoice.side_effect = ExternalServiceError("Failed to create invoice: boom")

        result = _sync(db_session, client).push(invoice.id)

        assert result.success is False
        assert "boom" in result.message
        db_session.refresh(invoice)
        assert invoice.odoo_invoice_id is None
        assert invoice.status == "draft"

    def test_missing_invoice(self, db_session, client):
        assert _sync(db_session, client).push(999).success is False


class TestSettings:
    def _service(self, db, result):
        client = Mock()
        client.test_connection.return_value = result
        return OdooSettingsService(db, client_factory=lambda config: client)

    def test_mask(self):
        assert mask_api_key("abcdef1234") == "***1234"

    def test_save_and_get_masked(self, db_session, alice):
        service = self._service(db_session, ConnectionTestResult(True, "Connection successful", uid=3))
        service.save(alice.id, "https://odoo.example.com", "alice", "prod", "secret-9876")

        masked = service.get(alice.id)
        assert masked.api_key == "***9876"
        assert masked.is_active is True
        assert masked.last_tested_at is not None

    def test_save_replaces_existing(self, db_session, alice):
        service = self._service(db_session, ConnectionTestResult(True, "Connection successful", uid=3))
        service.save(alice.id, "https://odoo.example.com", "alice", "prod", "secret-9876")
        service.save(alice.id, "https://odoo.example.com", "alice", "staging", "secret-5555")

        assert db_session.query(OdooConfiguration).count() == 1
        assert service.get(alice.id).database == "staging"

    def test_failed_test_stores_nothing(self, db_session, alice):
        service = self._service(db_session, ConnectionTestResult(False, "Authentication failed: Invalid credentials"))
        with pytest.raises(ExternalServiceError, match="Connection test failed"):
            service.save(alice.id, "https://odoo.example.com", "alice", "prod", "bad")
        assert service.get(alice.id) is None

    @pytest.mark.parametrize("url,username", [("odoo.example.com", "alice"), ("https://odoo.example.com", " ")])
    def test_invalid_input(self, db_session, url, username):
        service = self._service(db_session, ConnectionTestResult(True, "ok"))
        with pytest.raises(ValidationError):
            service.test(url, username, "prod", "key")

    def test_delete(self, db_session, alice, odoo_config):
        service = OdooSettingsService(db_session)
        assert service.delete(alice.id) is True
        assert service.delete(alice.id) is False
