"""
Router for invoice endpoints.

Handles:
- Uploading an invoice PDF for extraction
- Invoice history and detail
- Reviewer edits and approval
- Extraction runs and audit trail of an invoice
"""

import logging
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import (
    Actor,
    AuditLogResponse,
    ExtractionRunResponse,
    InvoiceActionResponse,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceSummary,
    InvoiceUpdate,
    LineItemResponse,
    ProcessInvoiceResponse,
)
from ..models_db import AuditLog, ExtractionRun, Invoice
from ..services.invoice_workflow import InvoiceWorkflow, get_invoice_workflow
from .dependencies import get_current_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _invoice_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=str(invoice.id),
        owner_id=invoice.owner_id,
        vendor_id=str(invoice.vendor_id) if invoice.vendor_id else None,
        vendor_name_raw=invoice.vendor_name_raw,
        invoice_number=invoice.invoice_number,
        invoice_date=invoice.invoice_date.isoformat() if invoice.invoice_date else None,
        due_date=invoice.due_date.isoformat() if invoice.due_date else None,
        payment_terms=invoice.payment_terms,
        mobile=invoice.mobile,
        email=invoice.email,
        subtotal=float(invoice.subtotal),
        tax_total=float(invoice.tax_total),
        gst=_float(invoice.gst),
        hst=_float(invoice.hst),
        qst=_float(invoice.qst),
        pst=_float(invoice.pst),
        total=float(invoice.total),
        status=invoice.status.value,
        file_url=invoice.file_url,
        file_hash=invoice.file_hash,
        processed_at=invoice.processed_at.isoformat() if invoice.processed_at else None,
        created_at=invoice.created_at.isoformat(),
        updated_at=invoice.updated_at.isoformat(),
        line_items=[
            LineItemResponse(
                id=str(item.id),
                description=item.description,
                quantity=_float(item.quantity),
                rate=_float(item.rate),
                amount=_float(item.amount),
                sort_order=item.sort_order,
            )
            for item in invoice.line_items
        ],
    )


@router.post("", response_model=ProcessInvoiceResponse, status_code=status.HTTP_201_CREATED)
async def upload_invoice(
    file: Annotated[UploadFile | None, File(description="Invoice PDF")] = None,
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
) -> ProcessInvoiceResponse:
    """
    Upload an invoice PDF and extract its fields.

    The invoice is created in PROCESSING and ends in NEEDS_REVIEW on success
    or FAILED if extraction fails.
    """
    content: bytes | None = None
    filename: str | None = None
    if file is not None:
        try:
            content = await file.read()
            filename = file.filename
        finally:
            await file.close()

    if content:
        logger.info("Received invoice upload: %s (%d bytes)", filename, len(content))

    return await workflow.process_invoice(db, content, filename, actor)


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
    limit: int = 50,
    offset: int = 0,
) -> InvoiceListResponse:
    """
    Invoice history, newest first.

    Administrators see every invoice; other users see their own.
    """
    invoices, total = workflow.list_invoices(db, actor, limit=limit, offset=offset)
    return InvoiceListResponse(
        invoices=[
            InvoiceSummary(
                id=str(invoice.id),
                vendor_name_raw=invoice.vendor_name_raw,
                invoice_number=invoice.invoice_number,
                invoice_date=invoice.invoice_date.isoformat() if invoice.invoice_date else None,
                total=float(invoice.total),
                status=invoice.status.value,
                created_at=invoice.created_at.isoformat(),
            )
            for invoice in invoices
        ],
        total=total,
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
) -> InvoiceResponse:
    """Invoice detail with line items."""
    return _invoice_response(workflow.get_invoice(db, invoice_id, actor))


@router.put("/{invoice_id}", response_model=InvoiceActionResponse)
async def update_invoice(
    invoice_id: str,
    request: InvoiceUpdate,
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
) -> InvoiceActionResponse:
    """Save reviewer corrections to an invoice."""
    invoice = await workflow.update_invoice(db, invoice_id, request, actor)
    return InvoiceActionResponse(success=True, invoice=_invoice_response(invoice))


@router.post("/{invoice_id}/approve", response_model=InvoiceActionResponse)
async def approve_invoice(
    invoice_id: str,
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
) -> InvoiceActionResponse:
    """Approve an invoice."""
    invoice = await workflow.approve_invoice(db, invoice_id, actor)
    return InvoiceActionResponse(success=True, invoice=_invoice_response(invoice))


@router.get("/{invoice_id}/runs", response_model=list[ExtractionRunResponse])
async def get_extraction_runs(
    invoice_id: str,
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
) -> list[ExtractionRunResponse]:
    """Extraction attempts for an invoice, oldest first."""
    invoice = workflow.get_invoice(db, invoice_id, actor)
    runs = (
        db.query(ExtractionRun)
        .filter(ExtractionRun.invoice_id == invoice.id)
        .order_by(ExtractionRun.started_at.asc())
        .all()
    )
    return [
        ExtractionRunResponse(
            id=str(run.id),
            model=run.model,
            started_at=run.started_at.isoformat(),
            completed_at=run.completed_at.isoformat() if run.completed_at else None,
            success=run.success,
            tokens_in=run.tokens_in,
            tokens_out=run.tokens_out,
            error=run.error,
        )
        for run in runs
    ]


@router.get("/{invoice_id}/audit", response_model=list[AuditLogResponse])
async def get_audit_trail(
    invoice_id: str,
    actor: Actor | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
    workflow: InvoiceWorkflow = Depends(get_invoice_workflow),
) -> list[AuditLogResponse]:
    """Audit entries for an invoice, oldest first."""
    invoice = workflow.get_invoice(db, invoice_id, actor)
    entries = (
        db.query(AuditLog)
        .filter(AuditLog.entity_id == invoice.id)
        .order_by(AuditLog.created_at.asc())
        .all()
    )
    return [
        AuditLogResponse(
            id=str(entry.id),
            action=entry.action.value,
            actor_user_id=entry.actor_user_id,
            diff=entry.diff_json,
            created_at=entry.created_at.isoformat(),
        )
        for entry in entries
    ]
