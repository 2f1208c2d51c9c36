"""
Errors raised by the invoice workflow.

Each error carries the HTTP status the API layer answers with.
"""


class InvoiceWorkflowError(Exception):
    """Base class for invoice workflow failures."""

    status_code = 500
    default_message = "Invoice workflow error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class Unauthorized(InvoiceWorkflowError):
    """No authenticated actor."""

    status_code = 401
    default_message = "Unauthorized"


class Forbidden(InvoiceWorkflowError):
    """Actor lacks rights on the target invoice."""

    status_code = 403
    default_message = "Forbidden"


class NotFound(InvoiceWorkflowError):
    """Referenced invoice does not exist."""

    status_code = 404
    default_message = "Invoice not found"


class InvalidInput(InvoiceWorkflowError):
    """Required input is missing."""

    status_code = 400
    default_message = "No file provided"


class InvalidFormat(InvoiceWorkflowError):
    """Uploaded bytes are not a PDF."""

    status_code = 422
    default_message = "Invalid PDF file"


class ExtractionFailed(InvoiceWorkflowError):
    """Extraction failed after the invoice record was created."""

    status_code = 502
    default_message = "Failed to process invoice"


class PersistenceError(InvoiceWorkflowError):
    """The database rejected a write."""

    status_code = 500
    default_message = "Failed to save invoice"
