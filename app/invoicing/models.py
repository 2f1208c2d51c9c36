"""
Pydantic models for the invoice ingestion API.

Defines the acting user, the review edit payload, and response shapes.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class UserRole(str, Enum):
    """Roles recognised by the authorization checks."""

    USER = "USER"
    ADMIN = "ADMIN"


class Actor(BaseModel):
    """The authenticated user performing an operation."""

    user_id: str = Field(..., min_length=1, description="Identifier of the user")
    role: UserRole = Field(default=UserRole.USER)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class InvoiceUpdate(BaseModel):
    """
    Reviewer edits to an invoice.

    Every field is written as given; omitted optional fields are cleared.
    """

    vendor_name_raw: str = Field(..., min_length=1, max_length=255)
    invoice_number: str = Field(..., min_length=1, max_length=100)
    invoice_date: date | None = None
    due_date: date | None = None
    payment_terms: str | None = None
    mobile: str | None = None
    email: str | None = None
    subtotal: float = Field(..., description="Subtotal before taxes")
    tax_total: float = Field(..., description="Sum of all taxes")
    gst: float | None = None
    hst: float | None = None
    qst: float | None = None
    pst: float | None = None
    total: float = Field(..., description="Amount due")

    @field_validator("vendor_name_raw", "invoice_number")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value must not be blank")
        return v


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
    message: str | None = None


class ProcessInvoiceResponse(BaseModel):
    """Response of a successful upload and extraction."""

    success: bool = True
    invoice_id: str = Field(..., description="Invoice ID (UUID)")


class LineItemResponse(BaseModel):
    """A single invoice line."""

    id: str
    description: str
    quantity: float | None = None
    rate: float | None = None
    amount: float | None = None
    sort_order: int


class InvoiceResponse(BaseModel):
    """Full invoice detail."""

    id: str = Field(..., description="Invoice ID (UUID)")
    owner_id: str
    vendor_id: str | None = None
    vendor_name_raw: str
    invoice_number: str
    invoice_date: str | None = None
    due_date: str | None = None
    payment_terms: str | None = None
    mobile: str | None = None
    email: str | None = None
    subtotal: float
    tax_total: float
    gst: float | None = None
    hst: float | None = None
    qst: float | None = None
    pst: float | None = None
    total: float
    status: str
    file_url: str
    file_hash: str
    processed_at: str | None = None
    created_at: str
    updated_at: str
    line_items: list[LineItemResponse] = Field(default_factory=list)


class InvoiceActionResponse(BaseModel):
    """Response of update and approve."""

    success: bool = True
    invoice: InvoiceResponse


class InvoiceSummary(BaseModel):
    """Row of the invoice history list."""

    id: str
    vendor_name_raw: str
    invoice_number: str
    invoice_date: str | None = None
    total: float
    status: str
    created_at: str


class InvoiceListResponse(BaseModel):
    """Paginated invoice history."""

    invoices: list[InvoiceSummary] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Total number of invoices visible to the user")


class ExtractionRunResponse(BaseModel):
    """One extraction attempt."""

    id: str
    model: str
    started_at: str
    completed_at: str | None = None
    success: bool
    tokens_in: int | None = None
    tokens_out: int | None = None
    error: str | None = None


class AuditLogResponse(BaseModel):
    """One audit trail entry."""

    id: str
    action: str
    actor_user_id: str
    diff: dict | None = None
    created_at: str
