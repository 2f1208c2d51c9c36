"""Pytest configuration and fixtures."""

import json
import os

# Point the application at an in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"

from collections.abc import Callable
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.invoicing.database import Base, SessionLocal, engine
from app.invoicing.main import app
from app.invoicing.models import Actor, UserRole
from app.invoicing.services.ai import InvoiceExtraction, TokenUsage, parse_extraction_response
from app.invoicing.services.events import ViewRefreshNotifier
from app.invoicing.services.invoice_workflow import InvoiceWorkflow, get_invoice_workflow
from app.invoicing.services.pdf_service import PDFService
from app.invoicing.services.storage_service import FileSystemStorage


class FakePDFService(PDFService):
    """PDF service that returns fixed text instead of parsing the document."""

    def __init__(self, text: str = "INVOICE\nAcme Inc.\nTotal 105.00"):
        super().__init__()
        self.text = text

    def extract_text(self, file_bytes: bytes) -> str:
        return self.text


class FakeAIService:
    """Extraction client returning a prepared result or raising a prepared error."""

    def __init__(self, extraction: InvoiceExtraction | None = None, error: Exception | None = None):
        self.model = "test-model"
        self.extraction = extraction
        self.error = error
        self.calls: list[str] = []

    async def extract_invoice(self, text: str) -> InvoiceExtraction:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.extraction


class RecordingNotifier(ViewRefreshNotifier):
    """Notifier that remembers every invalidated path."""

    def __init__(self):
        super().__init__()
        self.paths: list[str] = []
        self.subscribe(self.paths.append)


def build_payload(**overrides: Any) -> dict[str, Any]:
    """Model reply for a small invoice: subtotal 100.00, GST 5.00, total 105.00."""
    payload: dict[str, Any] = {
        "vendor_name": "Acme Inc.",
        "invoice_number": "INV-1001",
        "invoice_date": "2024-03-01",
        "due_date": "2024-03-31",
        "payment_terms": "Net 30",
        "mobile": "+1-514-555-0100",
        "email": "billing@acme.example",
        "subtotal": 100.00,
        "taxes": {"total": 5.00, "gst": 5.00, "hst": None, "qst": None, "pst": None},
        "total_amount": 105.00,
        "line_items": [
            {"description": "Widgets", "quantity": 2, "rate": 25.00, "amount": 50.00},
            {"description": "Gadgets", "quantity": 1, "rate": 30.00, "amount": 30.00},
            {"description": "Shipping", "quantity": 1, "rate": 20.00, "amount": 20.00},
        ],
    }
    payload.update(overrides)
    return payload


def build_extraction(**overrides: Any) -> InvoiceExtraction:
    """InvoiceExtraction as the AI service would return it."""
    raw_response = json.dumps(build_payload(**overrides))
    return InvoiceExtraction(
        data=parse_extraction_response(raw_response),
        raw_response=raw_response,
        usage=TokenUsage(input_tokens=1200, output_tokens=350),
    )


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    pdf_content = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(Test) Tj
ET
endstream
endobj
xref
0 5
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
0000000214 00000 n
trailer
<< /Size 5 /Root 1 0 R >>
startxref
306
%%EOF"""
    return pdf_content


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"


@pytest.fixture
def owner() -> Actor:
    return Actor(user_id="user-1", role=UserRole.USER)


@pytest.fixture
def other_user() -> Actor:
    return Actor(user_id="user-2", role=UserRole.USER)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin-1", role=UserRole.ADMIN)


@pytest.fixture
def storage(tmp_path) -> FileSystemStorage:
    return FileSystemStorage(tmp_path / "storage", base_url="/files")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_extraction() -> Callable[..., InvoiceExtraction]:
    return build_extraction


@pytest.fixture
def make_ai_service() -> Callable[..., FakeAIService]:
    return FakeAIService


@pytest.fixture
def ai_service() -> FakeAIService:
    return FakeAIService(extraction=build_extraction())


@pytest.fixture
def make_workflow(storage, notifier) -> Callable[..., InvoiceWorkflow]:
    """Build a workflow around fake PDF/AI collaborators."""

    def _make(ai, pdf_service: PDFService | None = None, store=None) -> InvoiceWorkflow:
        return InvoiceWorkflow(
            storage=store or storage,
            pdf_service=pdf_service or FakePDFService(),
            ai_service=ai,
            notifier=notifier,
        )

    return _make


@pytest.fixture
def workflow(make_workflow, ai_service) -> InvoiceWorkflow:
    return make_workflow(ai_service)


@pytest.fixture
def client(workflow) -> Generator[TestClient, None, None]:
    """Test client whose invoice workflow uses the fake collaborators."""
    app.dependency_overrides[get_invoice_workflow] = lambda: workflow
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)
