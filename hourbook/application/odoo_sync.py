"""
Push of generated invoices to Odoo (customer invoice, ``account.move``).

The push runs after the local invoice is committed. Its outcome is reported
as a SyncResult; a failed push never raises and never changes local data
other than the stored Odoo reference on success.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

from sqlalchemy.orm import Session, selectinload

from hourbook.domain.scaled import from_scaled
from hourbook.errors import ExternalServiceError
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import Invoice, InvoiceItem, OdooConfiguration
from hourbook.infrastructure.odoo.client import OdooClient, OdooConfig

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = "Schwyz Next"


@dataclass(frozen=True)
class SyncResult:
    success: bool
    message: str
    odoo_invoice_id: int | None = None


def config_from_row(row: OdooConfiguration, timeout: int | None = None) -> OdooConfig:
    return OdooConfig(
        url=row.odoo_url,
        username=row.username,
        database=row.database,
        api_key=row.api_key,
        timeout=timeout,
    )


def build_move_values(
    invoice: Invoice, partner_id: int, company_id: int,
    invoice_date: date, currency: str = "CHF",
) -> dict:
    """account.move values with one line per invoice item"""
    lines = []
    for item in invoice.items:
        hours = from_scaled(item.hours)
        rate = from_scaled(item.rate)
        lines.append((0, 0, {
            "name": f"{item.project.name} - {hours}h @ {currency} {rate}/h",
            "quantity": float(hours),
            "price_unit": float(rate),
        }))

    return {
        "partner_id": partner_id,
        "move_type": "out_invoice",
        "invoice_date": invoice_date.isoformat(),
        "invoice_line_ids": lines,
        "ref": invoice.invoice_number,
        "company_id": company_id,
    }


class OdooInvoiceSync:
    def __init__(
        self,
        db: Session,
        client_factory: Callable[[OdooConfig], OdooClient] = OdooClient,
        company_name: str = DEFAULT_COMPANY_NAME,
        timeout: int | None = None,
        currency: str = "CHF",
        audit: AuditRecorder | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.client_factory = client_factory
        self.company_name = company_name
        self.timeout = timeout
        self.currency = currency
        self.audit = audit or AuditRecorder(db)
        self.today = today

    def push(self, invoice_id: int) -> SyncResult:
        invoice = self.db.query(Invoice).options(
            selectinload(Invoice.items).joinedload(InvoiceItem.project),
        ).filter(Invoice.id == invoice_id).first()
        if not invoice:
            return SyncResult(success=False, message=f"Invoice {invoice_id} not found")

        row = self.db.query(OdooConfiguration).filter(
            OdooConfiguration.user_id == invoice.user_id,
        ).first()
        if not row or not row.is_active:
            return SyncResult(success=False, message="Odoo integration not configured or inactive")

        client = self.client_factory(config_from_row(row, self.timeout))

        try:
            company_id = client.find_company(self.company_name)
            if not company_id:
                return SyncResult(
                    success=False,
                    message=f"Company '{self.company_name}' not found in Odoo",
                )

            partner_id = client.find_partner(invoice.recipient_name)
            if not partner_id:
                return SyncResult(
                    success=False,
                    message=(
                        f"Customer '{invoice.recipient_name}' not found in Odoo. "
                        "Please create the customer first."
                    ),
                )

            odoo_id = client.create_invoice(build_move_values(
                invoice, partner_id, company_id, self.today(), self.currency,
            ))
        except ExternalServiceError as e:
            logger.warning("Odoo push of invoice %s failed: %s", invoice.invoice_number, e)
            return SyncResult(success=False, message=str(e))

        invoice.odoo_invoice_id = odoo_id
        self.db.commit()
        logger.info("Invoice %s pushed to Odoo as %s", invoice.invoice_number, odoo_id)

        self.audit.record(
            "invoice.synced", actor_id=invoice.user_id,
            entity_type="invoice", entity_id=invoice.id,
            new_value={"odoo_invoice_id": odoo_id},
        )
        return SyncResult(
            success=True,
            message=f"Invoice created in Odoo with ID: {odoo_id}",
            odoo_invoice_id=odoo_id,
        )
