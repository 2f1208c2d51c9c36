"""
SQLAlchemy database models for the invoice ingestion application.

This module defines the ORM models for persisting invoices, vendors,
line items, extraction runs, and the audit trail.
"""

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class InvoiceStatus(enum.Enum):
    """Status of an invoice in the review workflow."""

    PROCESSING = "PROCESSING"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    APPROVED = "APPROVED"
    FAILED = "FAILED"


class AuditAction(enum.Enum):
    """Entity-level actions recorded in the audit trail."""

    EXTRACTED = "EXTRACTED"
    UPDATED = "UPDATED"
    APPROVED = "APPROVED"


class Vendor(Base):
    """
    A supplier seen on at least one invoice.

    Created lazily the first time a normalized name is encountered.
    """

    __tablename__ = "vendors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    normalized_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Lookup key used to deduplicate vendors",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice",
        back_populates="vendor",
    )

    __table_args__ = (
        UniqueConstraint("normalized_name", name="uq_vendor_normalized_name"),
    )

    def __repr__(self) -> str:
        return f"<Vendor(id={self.id}, normalized_name='{self.normalized_name}')>"


class Invoice(Base):
    """
    An uploaded invoice and its extracted fields.

    The row is created in PROCESSING before extraction starts, so a failed
    extraction always has a record to mark as FAILED.
    """

    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    vendor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("vendors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    vendor_name_raw: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    invoice_number: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mobile: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    gst: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hst: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    qst: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    pst: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tax_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus),
        default=InvoiceStatus.PROCESSING,
        nullable=False,
        index=True,
    )
    file_key: Mapped[str] = mapped_column(String(512), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 hash of the uploaded PDF",
    )
    extracted_json: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Structured fields exactly as extracted",
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    # Relationships
    vendor: Mapped[Vendor | None] = relationship(
        "Vendor",
        back_populates="invoices",
    )
    line_items: Mapped[list["LineItem"]] = relationship(
        "LineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="LineItem.sort_order",
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status={self.status.value})>"


class LineItem(Base):
    """A single billed line of an invoice, ordered by sort_order."""

    __tablename__ = "line_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)

    invoice: Mapped[Invoice] = relationship(
        "Invoice",
        back_populates="line_items",
    )

    def __repr__(self) -> str:
        return f"<LineItem(id={self.id}, sort_order={self.sort_order})>"


class ExtractionRun(Base):
    """
    One attempt to extract structured fields from an invoice.

    Stores model usage and the raw response on success, the error otherwise.
    """

    __tablename__ = "extraction_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    raw_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    tokens_in: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tokens_out: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ExtractionRun(id={self.id}, model='{self.model}', success={self.success})>"


class AuditLog(Base):
    """Append-only record of an action taken on an entity."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    actor_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction),
        nullable=False,
    )
    diff_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action.value}, entity_id={self.entity_id})>"
