"""
PDF processing service using pdfminer.six.

Validates uploaded bytes as PDF and extracts their text for the AI service.
"""

import io
import logging

from pdfminer.high_level import extract_text
from pdfminer.pdfparser import PDFSyntaxError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


class PDFTextExtractionError(Exception):
    """Raised when text cannot be extracted from a PDF."""

    pass


class PDFService:
    """
    Service for PDF processing operations.

    Text extraction is delegated to pdfminer.six.
    """

    def __init__(self, max_pages: int = 0):
        """
        Initialize the PDF service.

        Args:
            max_pages: Maximum number of pages to read. 0 reads every page.
        """
        self.max_pages = max_pages

    def is_valid_pdf(self, file_bytes: bytes | None) -> bool:
        """
        Check that the bytes look like a PDF document.

        Args:
            file_bytes: Uploaded file content.

        Returns:
            True if the content starts with the PDF header.
        """
        if not file_bytes:
            return False
        return file_bytes[:4] == PDF_MAGIC

    def extract_text(self, file_bytes: bytes) -> str:
        """
        Extract plain text from a PDF.

        Args:
            file_bytes: PDF file as bytes.

        Returns:
            Text content of the document.

        Raises:
            PDFTextExtractionError: If the PDF is corrupted, encrypted or empty.
        """
        if not file_bytes:
            raise PDFTextExtractionError("Empty PDF file provided")

        try:
            text = extract_text(io.BytesIO(file_bytes), maxpages=self.max_pages)
        except PDFSyntaxError as e:
            logger.error("PDF syntax error: %s", e)
            raise PDFTextExtractionError(f"Invalid or corrupted PDF file: {e}") from e
        except Exception as e:
            logger.exception("Unexpected error during PDF text extraction")
            raise PDFTextExtractionError(f"PDF text extraction failed: {e}") from e

        logger.info("Extracted %d characters of text from PDF", len(text))
        return text


# Singleton instance for convenience
_pdf_service: PDFService | None = None


def get_pdf_service() -> PDFService:
    """Get or create the PDF service singleton."""
    global _pdf_service
    if _pdf_service is None:
        _pdf_service = PDFService()
    return _pdf_service
