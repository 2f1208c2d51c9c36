"""
AI service package for invoice field extraction.

This package provides:
- extraction: prompt, response models and the OpenAI call
- validation: currency and date normalization of model output

The AIService class wires configuration and the OpenAI client to these modules.
"""

import json
import logging
from typing import Any

from ...config import get_settings
from .exceptions import AIServiceError, ExtractionResponseError
from .extraction import (
    ExtractedInvoice,
    ExtractedLineItem,
    ExtractedTaxes,
    InvoiceExtraction,
    TokenUsage,
    extract_invoice_data as _extract_invoice_data,
    parse_extraction_response,
)
from .validation import parse_currency, parse_date

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "ExtractedInvoice",
    "ExtractedLineItem",
    "ExtractedTaxes",
    "ExtractionResponseError",
    "InvoiceExtraction",
    "TokenUsage",
    "extract_invoice_data",
    "get_ai_service",
    "parse_currency",
    "parse_date",
    "parse_extraction_response",
]


class AIService:
    """
    Service for LLM-powered invoice extraction.

    Uses OpenAI chat completions in JSON mode. Without an API key the service
    runs in mock mode and returns a fixed invoice for development.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        use_mock: bool = False,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key. If None, reads from settings.
            model: OpenAI model to use. If None, reads from settings.
            use_mock: If True, return mock data instead of calling OpenAI.
        """
        settings = get_settings()
        if api_key is None:
            api_key = settings.openai_api_key

        self.api_key = api_key
        self.model = model or settings.openai_model
        self.use_mock = use_mock or not self.api_key
        self._client = None

        if self.use_mock:
            logger.warning(
                "AI Service running in MOCK MODE. Set OPENAI_API_KEY in .env for real extraction."
            )

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import OpenAI

            # No retries
            self._client = OpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def extract_invoice(self, text: str) -> InvoiceExtraction:
        """
        Extract structured invoice fields from PDF text.

        Args:
            text: Plain text of the invoice.

        Returns:
            InvoiceExtraction with validated fields, raw reply and token usage.
        """
        if self.use_mock:
            logger.info("Extracting invoice (MOCK MODE)")
            return self._get_mock_extraction()

        return await _extract_invoice_data(text, client=self.client, model=self.model)

    def _get_mock_extraction(self) -> InvoiceExtraction:
        """Return a mock invoice extraction for development."""
        payload: dict[str, Any] = {
            "vendor_name": "Mock Supplies Inc.",
            "invoice_number": "MOCK-INV-001",
            "invoice_date": "2024-01-15",
            "due_date": "2024-02-14",
            "payment_terms": "Net 30",
            "mobile": "+1-555-123-4567",
            "email": "billing@mock-supplies.example",
            "subtotal": 100.00,
            "taxes": {"total": 5.00, "gst": 5.00, "hst": None, "qst": None, "pst": None},
            "total_amount": 105.00,
            "line_items": [
                {"description": "Mock widget", "quantity": 2, "rate": 25.00, "amount": 50.00},
                {"description": "Mock service", "quantity": 1, "rate": 50.00, "amount": 50.00},
            ],
        }
        raw_response = json.dumps(payload)
        return InvoiceExtraction(
            data=parse_extraction_response(raw_response),
            raw_response=raw_response,
            usage=TokenUsage(),
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service


# Re-export module function for direct use without AIService
extract_invoice_data = _extract_invoice_data
