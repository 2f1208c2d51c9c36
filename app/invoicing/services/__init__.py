"""
Services package for the invoice ingestion application.

Contains:
- pdf_service: PDF validation and text extraction
- storage_service: file storage for uploaded PDFs
- ai: OpenAI integration for invoice field extraction
- vendors: vendor normalization and lookup-or-create
- events: post-commit view invalidation
- invoice_workflow: the ingestion and review workflow
"""

from .ai import AIService
from .invoice_workflow import InvoiceWorkflow
from .pdf_service import PDFService
from .storage_service import FileSystemStorage

__all__ = ["AIService", "FileSystemStorage", "InvoiceWorkflow", "PDFService"]
