"""
Invoice API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hourbook.api.deps import get_db, get_current_user, get_audit, get_odoo_sync
from hourbook.application.invoices import (
    InvoiceGenerator, UpdateInvoiceStatusUseCase, SyncInvoiceUseCase,
    DeleteInvoiceUseCase, InvoiceReadService,
)
from hourbook.application.odoo_sync import OdooInvoiceSync, SyncResult
from hourbook.domain.scaled import from_scaled
from hourbook.infrastructure.audit.recorder import AuditRecorder
from hourbook.infrastructure.db.models import User, Invoice


router = APIRouter(prefix="/api/v1/invoices", tags=["invoices"])


# === Request/Response models ===

class GenerateInvoiceRequest(BaseModel):
    month: int
    year: int
    recipient_name: str
    recipient_address: str | None = None


class UpdateStatusRequest(BaseModel):
    status: str  # draft, sent, paid
    sync_external: bool = False


class PreviewItemResponse(BaseModel):
    project_id: int
    project_name: str
    hours: str
    rate: str
    amount: str
    vat_type: str


class PreviewResponse(BaseModel):
    month: int
    year: int
    items: list[PreviewItemResponse]
    total_amount: str
    entry_count: int


class InvoiceItemResponse(BaseModel):
    id: int
    project_id: int
    project_name: str
    hours: str
    rate: str
    amount: str


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    user_id: int
    month: int
    year: int
    recipient_name: str
    recipient_address: str | None
    total_amount: str
    status: str
    odoo_invoice_id: int | None
    created_at: datetime | None


class InvoiceDetailResponse(InvoiceResponse):
    items: list[InvoiceItemResponse]


class SyncResponse(BaseModel):
    success: bool
    message: str
    odoo_invoice_id: int | None = None


def _money(value: int) -> str:
    return str(from_scaled(value))


def _to_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        user_id=invoice.user_id,
        month=invoice.month,
        year=invoice.year,
        recipient_name=invoice.recipient_name,
        recipient_address=invoice.recipient_address,
        total_amount=_money(invoice.total_amount),
        status=invoice.status,
        odoo_invoice_id=invoice.odoo_invoice_id,
        created_at=invoice.created_at,
    )


def _sync_response(result: SyncResult | None) -> SyncResponse | None:
    if result is None:
        return None
    return SyncResponse(
        success=result.success,
        message=result.message,
        odoo_invoice_id=result.odoo_invoice_id,
    )


# === Endpoints ===

@router.get("/", response_model=list[InvoiceResponse])
def list_invoices(
    year: int | None = None,
    status: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [_to_response(i) for i in InvoiceReadService(db).list(user, year=year, status=status)]


@router.get("/preview", response_model=PreviewResponse)
def preview_invoice(
    month: int = Query(ge=1, le=12),
    year: int = Query(),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """What generate would produce for the caller's month, without writing anything"""
    preview = InvoiceGenerator(db).preview(user_id=user.id, month=month, year=year)
    return PreviewResponse(
        month=preview.month,
        year=preview.year,
        items=[
            PreviewItemResponse(
                project_id=line.project_id,
                project_name=line.project_name,
                hours=_money(line.hours),
                rate=_money(line.rate),
                amount=_money(line.amount),
                vat_type=line.vat_type,
            )
            for line in preview.items
        ],
        total_amount=_money(preview.total_amount),
        entry_count=preview.entry_count,
    )


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
def get_invoice(
    invoice_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invoice = InvoiceReadService(db).get(invoice_id, actor=user)
    return InvoiceDetailResponse(
        **_to_response(invoice).model_dump(),
        items=[
            InvoiceItemResponse(
                id=item.id,
                project_id=item.project_id,
                project_name=item.project.name,
                hours=_money(item.hours),
                rate=_money(item.rate),
                amount=_money(item.amount),
            )
            for item in invoice.items
        ],
    )


@router.post("/generate")
def generate_invoice(
    req: GenerateInvoiceRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    created = InvoiceGenerator(db, audit).generate(
        user_id=user.id,
        month=req.month,
        year=req.year,
        recipient_name=req.recipient_name,
        recipient_address=req.recipient_address,
    )
    return {"id": created.id, "invoice_number": created.invoice_number}


@router.patch("/{invoice_id}/status")
def update_invoice_status(
    invoice_id: int,
    req: UpdateStatusRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    sync: OdooInvoiceSync = Depends(get_odoo_sync),
):
    """The Odoo push outcome (if requested) is reported, never raised"""
    result = UpdateInvoiceStatusUseCase(db, audit, sync).execute(
        invoice_id=invoice_id, actor=user,
        status=req.status, sync_external=req.sync_external,
    )
    return {"success": True, "sync": _sync_response(result)}


@router.post("/{invoice_id}/sync", response_model=SyncResponse)
def sync_invoice(
    invoice_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    sync: OdooInvoiceSync = Depends(get_odoo_sync),
):
    return _sync_response(SyncInvoiceUseCase(db, sync).execute(invoice_id, actor=user))


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
):
    DeleteInvoiceUseCase(db, audit).execute(invoice_id, actor=user)
    return {"success": True}
