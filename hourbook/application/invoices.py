"""
Invoice generation, numbering and lifecycle.

Numbering: one ``invoice_sequences`` row per (year, month), incremented with
a single UPDATE inside the transaction that inserts the invoice. The unique
constraint on ``invoice_number`` is the last line of defence; a collision
rolls the attempt back and it is retried after re-syncing the counter.
"""
from __future__ import annotations

import logging

from sqlalchemy import update, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from hourbook.application.odoo_sync import OdooInvoiceSync, SyncResult
from hourbook.domain.invoice import (
    INVOICE_STATUSES, EntryRow, InvoicePreview, GeneratedInvoice,
    aggregate_invoice_lines, format_invoice_number,
)
from hourbook.domain.period import validate_period, month_bounds
from hourbook.errors import (
    ValidationError, NotFoundError, ConflictError, AuthorizationError,
)
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import (
    Invoice, InvoiceItem, InvoiceSequence, Project, TimeEntry, User,
)

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 3


def _dialect_insert(db: Session):
    """INSERT construct with ON CONFLICT support for the bound dialect"""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Unsupported database dialect for invoice numbering: {name}")
    return insert


def _ensure_access(actor: User, invoice: Invoice) -> None:
    if not actor.is_admin and invoice.user_id != actor.id:
        raise AuthorizationError("Access denied")


def _get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return invoice


class InvoiceGenerator:
    """
    Aggregates one user's time entries for a month into an invoice.

    Usage:
        generator = InvoiceGenerator(db, audit)
        preview = generator.preview(user_id=1, month=11, year=2025)
        created = generator.generate(user_id=1, month=11, year=2025,
                                     recipient_name="Acme AG")
    """

    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def _collect(self, user_id: int, month: int, year: int) -> list[EntryRow]:
        start, end = month_bounds(year, month)
        rows = self.db.query(
            TimeEntry.project_id,
            Project.name,
            Project.hourly_rate,
            Project.vat_type,
            TimeEntry.duration_hours,
        ).join(
            Project, Project.id == TimeEntry.project_id,
        ).filter(
            TimeEntry.user_id == user_id,
            TimeEntry.date >= start,
            TimeEntry.date < end,
        ).order_by(TimeEntry.date, TimeEntry.id).all()

        return [EntryRow(*row) for row in rows]

    def preview(self, user_id: int, month: int, year: int) -> InvoicePreview:
        """Same aggregation as generate(), without any writes"""
        validate_period(month, year)
        rows = self._collect(user_id, month, year)
        lines, total = aggregate_invoice_lines(rows)
        return InvoicePreview(
            month=month, year=year,
            items=lines, total_amount=total, entry_count=len(rows),
        )

    def generate(
        self,
        user_id: int,
        month: int,
        year: int,
        recipient_name: str,
        recipient_address: str | None = None,
    ) -> GeneratedInvoice:
        """
        Raises:
            ValidationError: bad period or blank recipient
            NotFoundError: no time entries in the period (nothing is written)
            ConflictError: no free invoice number after retries
        """
        validate_period(month, year)
        recipient_name = (recipient_name or "").strip()
        if not recipient_name:
            raise ValidationError("Recipient name must not be empty")

        rows = self._collect(user_id, month, year)
        if not rows:
            raise NotFoundError("No time entries found for the specified period")

        lines, total = aggregate_invoice_lines(rows)

        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            if attempt > 1:
                self._resync_sequence(year, month)
            number = format_invoice_number(year, month, self._next_sequence(year, month))

            invoice = Invoice(
                invoice_number=number,
                user_id=user_id,
                month=month,
                year=year,
                recipient_name=recipient_name,
                recipient_address=(recipient_address or "").strip() or None,
                total_amount=total,
                status="draft",
                items=[
                    InvoiceItem(
                        project_id=line.project_id,
                        hours=line.hours,
                        rate=line.rate,
                        amount=line.amount,
                    )
                    for line in lines
                ],
            )
            self.db.add(invoice)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    "Invoice number %s already taken (attempt %d/%d)",
                    number, attempt, MAX_NUMBER_ATTEMPTS,
                )
                continue

            logger.info(
                "Generated invoice %s for user %s, total=%s", number, user_id, total,
            )
            self.audit.record(
                "invoice.created", actor_id=user_id,
                entity_type="invoice", entity_id=invoice.id,
                new_value={
                    "invoice_number": number,
                    "month": month,
                    "year": year,
                    "recipient_name": recipient_name,
                    "total_amount": total,
                },
            )
            return GeneratedInvoice(id=invoice.id, invoice_number=number)

        raise ConflictError("Could not allocate a unique invoice number, please retry")

    # ── numbering ──

    def _highest_issued(self, year: int, month: int) -> int:
        """Largest sequence already used in invoice numbers of the month"""
        prefix = format_invoice_number(year, month, 0)[:-3]
        highest = 0
        numbers = self.db.execute(
            select(Invoice.invoice_number).where(
                Invoice.year == year, Invoice.month == month,
            )
        ).scalars()
        for number in numbers:
            suffix = number[len(prefix):] if number.startswith(prefix) else ""
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest

    def _next_sequence(self, year: int, month: int) -> int:
        insert = _dialect_insert(self.db)
        self.db.execute(
            insert(InvoiceSequence)
            .values(year=year, month=month, last_value=self._highest_issued(year, month))
            .on_conflict_do_nothing(index_elements=["year", "month"])
        )
        self.db.execute(
            update(InvoiceSequence)
            .where(InvoiceSequence.year == year, InvoiceSequence.month == month)
            .values(last_value=InvoiceSequence.last_value + 1)
        )
        return self.db.execute(
            select(InvoiceSequence.last_value).where(
                InvoiceSequence.year == year, InvoiceSequence.month == month,
            )
        ).scalar_one()

    def _resync_sequence(self, year: int, month: int) -> None:
        """Move the counter past every number already present in invoices"""
        highest = self._highest_issued(year, month)
        self.db.execute(
            update(InvoiceSequence)
            .where(
                InvoiceSequence.year == year,
                InvoiceSequence.month == month,
                InvoiceSequence.last_value < highest,
            )
            .values(last_value=highest)
        )


class UpdateInvoiceStatusUseCase:
    """
    Status changes are the only mutation allowed on a generated invoice.

    Setting ``draft`` with ``sync_external=True`` also pushes the invoice to
    Odoo; the push outcome is returned and never undoes the status change.
    """

    def __init__(
        self,
        db: Session,
        audit: AuditRecorder | None = None,
        sync: OdooInvoiceSync | None = None,
    ):
        self.db = db
        self.audit = audit or AuditRecorder(db)
        self.sync = sync or OdooInvoiceSync(db)

    def execute(
        self, invoice_id: int, actor: User, status: str, sync_external: bool = False,
    ) -> SyncResult | None:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Invalid invoice status: {status}")

        invoice = _get_invoice(self.db, invoice_id)
        _ensure_access(actor, invoice)

        old_status = invoice.status
        invoice.status = status
        self.db.commit()

        self.audit.record(
            "invoice.status_changed", actor_id=actor.id,
            entity_type="invoice", entity_id=invoice_id,
            old_value={"status": old_status}, new_value={"status": status},
        )

        if status == "draft" and sync_external:
            return self.sync.push(invoice_id)
        return None


class SyncInvoiceUseCase:
    """Explicit push of an invoice to Odoo"""

    def __init__(self, db: Session, sync: OdooInvoiceSync | None = None):
        self.db = db
        self.sync = sync or OdooInvoiceSync(db)

    def execute(self, invoice_id: int, actor: User) -> SyncResult:
        invoice = _get_invoice(self.db, invoice_id)
        _ensure_access(actor, invoice)
        return self.sync.push(invoice_id)


class DeleteInvoiceUseCase:
    def __init__(self, db: Session, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def execute(self, invoice_id: int, actor: User) -> None:
        invoice = _get_invoice(self.db, invoice_id)
        _ensure_access(actor, invoice)
        if invoice.status == "paid":
            raise ConflictError("Paid invoices cannot be deleted")

        old = {
            "invoice_number": invoice.invoice_number,
            "status": invoice.status,
            "total_amount": invoice.total_amount,
        }
        # items go with the invoice (delete-orphan cascade)
        self.db.delete(invoice)
        self.db.commit()

        self.audit.record(
            "invoice.deleted", actor_id=actor.id,
            entity_type="invoice", entity_id=invoice_id,
            old_value=old,
        )


class InvoiceReadService:
    def __init__(self, db: Session):
        self.db = db

    def list(
        self, actor: User, year: int | None = None, status: str | None = None,
    ) -> list[Invoice]:
        q = self.db.query(Invoice)
        if not actor.is_admin:
            q = q.filter(Invoice.user_id == actor.id)
        if year is not None:
            q = q.filter(Invoice.year == year)
        if status is not None:
            q = q.filter(Invoice.status == status)
        return q.order_by(Invoice.year.desc(), Invoice.month.desc(), Invoice.invoice_number.desc()).all()

    def get(self, invoice_id: int, actor: User) -> Invoice:
        """Invoice with its items and their projects loaded"""
        invoice = self.db.query(Invoice).options(
            selectinload(Invoice.items).joinedload(InvoiceItem.project),
        ).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        _ensure_access(actor, invoice)
        return invoice
