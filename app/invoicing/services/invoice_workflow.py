"""
Invoice workflow: upload, extraction, review edits and approval.

process_invoice runs the ingestion pipeline:

    validate -> store file -> anchor invoice (PROCESSING) -> PDF text
    -> extraction run -> LLM extraction -> vendor -> finalize -> audit

Once the anchor row is committed, any failure marks it FAILED and closes the
extraction run with the error before the exception reaches the caller.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Actor, InvoiceUpdate, ProcessInvoiceResponse
from ..models_db import (
    AuditAction,
    AuditLog,
    ExtractionRun,
    Invoice,
    InvoiceStatus,
    LineItem,
)
from .ai import AIService, InvoiceExtraction, get_ai_service
from .events import (
    DASHBOARD_PATH,
    HISTORY_PATH,
    ViewRefreshNotifier,
    get_view_notifier,
    invoice_path,
)
from .exceptions import (
    ExtractionFailed,
    Forbidden,
    InvalidFormat,
    InvalidInput,
    NotFound,
    PersistenceError,
    Unauthorized,
)
from .pdf_service import PDFService, get_pdf_service
from .storage_service import FileSystemStorage, get_storage
from .vendors import get_or_create_vendor

logger = logging.getLogger(__name__)

ENTITY_INVOICE = "INVOICE"
PLACEHOLDER_VENDOR_NAME = "Processing..."
PLACEHOLDER_INVOICE_NUMBER = "TBD"

# Scalar columns a reviewer may overwrite
EDITABLE_FIELDS = (
    "vendor_name_raw",
    "invoice_number",
    "invoice_date",
    "due_date",
    "payment_terms",
    "mobile",
    "email",
    "subtotal",
    "tax_total",
    "gst",
    "hst",
    "qst",
    "pst",
    "total",
)


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, InvoiceStatus):
        return value.value
    return value


def invoice_snapshot(invoice: Invoice) -> dict[str, Any]:
    """JSON-safe copy of an invoice's reviewable state for the audit trail."""
    snapshot = {field: _json_value(getattr(invoice, field)) for field in EDITABLE_FIELDS}
    snapshot["id"] = str(invoice.id)
    snapshot["status"] = invoice.status.value
    snapshot["vendor_id"] = _json_value(invoice.vendor_id)
    return snapshot


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _coerce_uuid(invoice_id: uuid.UUID | str) -> uuid.UUID:
    if isinstance(invoice_id, uuid.UUID):
        return invoice_id
    try:
        return uuid.UUID(str(invoice_id))
    except ValueError as e:
        raise NotFound() from e


class InvoiceWorkflow:
    """
    Orchestrates invoice ingestion and review.

    Collaborators default to the application singletons and can be replaced
    for tests or alternative backends.
    """

    def __init__(
        self,
        storage: FileSystemStorage | None = None,
        pdf_service: PDFService | None = None,
        ai_service: AIService | None = None,
        notifier: ViewRefreshNotifier | None = None,
    ):
        self.storage = storage or get_storage()
        self.pdf_service = pdf_service or get_pdf_service()
        self.ai_service = ai_service or get_ai_service()
        self.notifier = notifier or get_view_notifier()

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def process_invoice(
        self,
        db: Session,
        file_bytes: bytes | None,
        filename: str | None,
        actor: Actor | None,
    ) -> ProcessInvoiceResponse:
        """
        Store an uploaded PDF and extract its invoice fields.

        Args:
            db: Database session.
            file_bytes: Uploaded PDF content.
            filename: Original filename.
            actor: Authenticated user; becomes the invoice owner.

        Returns:
            ProcessInvoiceResponse with the new invoice ID.

        Raises:
            Unauthorized: No actor.
            InvalidInput: No file content.
            InvalidFormat: Content is not a PDF.
            StorageError: Upload failed (no invoice is created).
            ExtractionFailed: Extraction failed; the invoice is now FAILED.
            PersistenceError: A database write failed.
        """
        if actor is None:
            raise Unauthorized()
        if not file_bytes:
            raise InvalidInput("No file provided")
        if not self.pdf_service.is_valid_pdf(file_bytes):
            raise InvalidFormat("Invalid PDF file")

        stored = self.storage.upload(file_bytes, filename)

        invoice = Invoice(
            owner_id=actor.user_id,
            vendor_name_raw=PLACEHOLDER_VENDOR_NAME,
            invoice_number=PLACEHOLDER_INVOICE_NUMBER,
            subtotal=0,
            tax_total=0,
            total=0,
            status=InvoiceStatus.PROCESSING,
            file_key=stored.key,
            file_url=stored.url,
            file_hash=stored.hash,
        )
        try:
            db.add(invoice)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not create invoice record for %s", filename)
            raise PersistenceError(_error_message(e)) from e

        invoice_id = invoice.id
        run_id: uuid.UUID | None = None
        logger.info("Created invoice %s for %s (%s)", invoice_id, filename, stored.key)

        try:
            text = self.pdf_service.extract_text(file_bytes)

            run = ExtractionRun(
                invoice_id=invoice_id,
                model=self.ai_service.model,
                started_at=datetime.utcnow(),
            )
            db.add(run)
            db.commit()
            run_id = run.id

            extraction = await self.ai_service.extract_invoice(text)
            self._finalize(db, invoice, run, extraction, actor)
            db.commit()

        except Exception as e:
            db.rollback()
            logger.exception("Invoice processing failed for %s", invoice_id)
            self._mark_failed(db, invoice_id, run_id, e)
            if isinstance(e, SQLAlchemyError):
                raise PersistenceError(_error_message(e)) from e
            raise ExtractionFailed(_error_message(e)) from e

        logger.info("Invoice %s extracted and awaiting review", invoice_id)
        self.notifier.invalidate(DASHBOARD_PATH, HISTORY_PATH)
        return ProcessInvoiceResponse(success=True, invoice_id=str(invoice_id))

    def _finalize(
        self,
        db: Session,
        invoice: Invoice,
        run: ExtractionRun,
        extraction: InvoiceExtraction,
        actor: Actor,
    ) -> None:
        """Apply an extraction to the invoice, its line items, run and audit trail."""
        data = extraction.data
        payload = data.model_dump(mode="json")
        now = datetime.utcnow()

        vendor = get_or_create_vendor(db, data.vendor_name)

        invoice.vendor_id = vendor.id
        invoice.vendor_name_raw = data.vendor_name
        invoice.invoice_number = data.invoice_number
        invoice.invoice_date = data.invoice_date
        invoice.due_date = data.due_date
        invoice.payment_terms = data.payment_terms
        invoice.mobile = data.mobile
        invoice.email = data.email
        invoice.subtotal = data.subtotal
        invoice.tax_total = data.taxes.total
        invoice.gst = data.taxes.gst
        invoice.hst = data.taxes.hst
        invoice.qst = data.taxes.qst
        invoice.pst = data.taxes.pst
        invoice.total = data.total_amount
        invoice.status = InvoiceStatus.NEEDS_REVIEW
        invoice.extracted_json = payload
        invoice.processed_at = now

        db.add_all(
            LineItem(
                invoice_id=invoice.id,
                description=item.description,
                quantity=item.quantity,
                rate=item.rate,
                amount=item.amount,
                sort_order=index,
            )
            for index, item in enumerate(data.line_items)
        )

        run.completed_at = now
        run.success = True
        run.raw_response = extraction.raw_response
        run.tokens_in = extraction.usage.input_tokens
        run.tokens_out = extraction.usage.output_tokens

        db.add(
            AuditLog(
                entity_type=ENTITY_INVOICE,
                entity_id=invoice.id,
                actor_user_id=actor.user_id,
                action=AuditAction.EXTRACTED,
                diff_json={"data": payload},
            )
        )
        db.flush()

    def _mark_failed(
        self,
        db: Session,
        invoice_id: uuid.UUID,
        run_id: uuid.UUID | None,
        error: BaseException,
    ) -> None:
        """Move the invoice to FAILED and close its extraction run with the error."""
        try:
            invoice = db.get(Invoice, invoice_id)
            if invoice is not None:
                invoice.status = InvoiceStatus.FAILED
            if run_id is not None:
                run = db.get(ExtractionRun, run_id)
                if run is not None:
                    run.completed_at = datetime.utcnow()
                    run.success = False
                    run.error = _error_message(error)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not mark invoice %s as failed", invoice_id)

    # =========================================================================
    # Review
    # =========================================================================

    def get_invoice(
        self,
        db: Session,
        invoice_id: uuid.UUID | str,
        actor: Actor | None,
    ) -> Invoice:
        """
        Load an invoice the actor may act on.

        Raises:
            Unauthorized: No actor.
            NotFound: No such invoice.
            Forbidden: Actor is neither admin nor owner.
        """
        if actor is None:
            raise Unauthorized()

        invoice = db.get(Invoice, _coerce_uuid(invoice_id))
        if invoice is None:
            raise NotFound()

        if not actor.is_admin and invoice.owner_id != actor.user_id:
            raise Forbidden()
        return invoice

    def list_invoices(
        self,
        db: Session,
        actor: Actor | None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Invoice], int]:
        """Invoices visible to the actor, newest first, with the total count."""
        if actor is None:
            raise Unauthorized()

        query = db.query(Invoice)
        if not actor.is_admin:
            query = query.filter(Invoice.owner_id == actor.user_id)

        total = query.count()
        invoices = (
            query.order_by(Invoice.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return invoices, total

    async def update_invoice(
        self,
        db: Session,
        invoice_id: uuid.UUID | str,
        fields: InvoiceUpdate,
        actor: Actor | None,
    ) -> Invoice:
        """
        Overwrite the reviewable fields of an invoice.

        Status is left unchanged. The audit entry stores before/after snapshots.
        """
        invoice = self.get_invoice(db, invoice_id, actor)
        before = invoice_snapshot(invoice)

        try:
            for field in EDITABLE_FIELDS:
                setattr(invoice, field, getattr(fields, field))
            after = invoice_snapshot(invoice)

            db.add(
                AuditLog(
                    entity_type=ENTITY_INVOICE,
                    entity_id=invoice.id,
                    actor_user_id=actor.user_id,
                    action=AuditAction.UPDATED,
                    diff_json={"before": before, "after": after},
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not update invoice %s", invoice_id)
            raise PersistenceError(_error_message(e)) from e

        db.refresh(invoice)
        logger.info("Invoice %s updated by %s", invoice.id, actor.user_id)
        self.notifier.invalidate(invoice_path(invoice.id), HISTORY_PATH, DASHBOARD_PATH)
        return invoice

    async def approve_invoice(
        self,
        db: Session,
        invoice_id: uuid.UUID | str,
        actor: Actor | None,
    ) -> Invoice:
        """
        Mark an invoice APPROVED.

        Approval does not depend on the prior status; approving again writes
        another audit entry.
        """
        invoice = self.get_invoice(db, invoice_id, actor)
        if invoice.status not in (InvoiceStatus.NEEDS_REVIEW, InvoiceStatus.APPROVED):
            logger.warning(
                "Approving invoice %s from status %s",
                invoice.id,
                invoice.status.value,
            )

        try:
            invoice.status = InvoiceStatus.APPROVED
            db.add(
                AuditLog(
                    entity_type=ENTITY_INVOICE,
                    entity_id=invoice.id,
                    actor_user_id=actor.user_id,
                    action=AuditAction.APPROVED,
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not approve invoice %s", invoice_id)
            raise PersistenceError(_error_message(e)) from e

        db.refresh(invoice)
        logger.info("Invoice %s approved by %s", invoice.id, actor.user_id)
        self.notifier.invalidate(invoice_path(invoice.id), HISTORY_PATH, DASHBOARD_PATH)
        return invoice


_workflow: InvoiceWorkflow | None = None


def get_invoice_workflow() -> InvoiceWorkflow:
    """Get or create the workflow singleton."""
    global _workflow
    if _workflow is None:
        _workflow = InvoiceWorkflow()
    return _workflow
