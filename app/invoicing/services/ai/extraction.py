"""
Invoice field extraction from PDF text.

Uses OpenAI chat completions in JSON mode and validates the reply into
strict Pydantic models.
"""

import json
import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import AIServiceError, ExtractionResponseError
from .validation import parse_currency, parse_date

logger = logging.getLogger(__name__)


# =============================================================================
# AI Response Models
# =============================================================================


class ExtractedLineItem(BaseModel):
    """A single line of the invoice table."""

    description: str = Field(default="", description="What was billed")
    quantity: float | None = Field(default=None, description="Units billed")
    rate: float | None = Field(default=None, description="Price per unit")
    amount: float | None = Field(default=None, description="Line total")

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("quantity", "rate", "amount", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> float | None:
        return parse_currency(v)


class ExtractedTaxes(BaseModel):
    """Canadian sales tax breakdown as printed on the invoice."""

    total: float = Field(default=0.0, description="Sum of all taxes")
    gst: float | None = None
    hst: float | None = None
    qst: float | None = None
    pst: float | None = None

    @field_validator("total", mode="before")
    @classmethod
    def coerce_total(cls, v: Any) -> float:
        parsed = parse_currency(v)
        return 0.0 if parsed is None else parsed

    @field_validator("gst", "hst", "qst", "pst", mode="before")
    @classmethod
    def coerce_component(cls, v: Any) -> float | None:
        return parse_currency(v)


class ExtractedInvoice(BaseModel):
    """Structured invoice fields returned by the extraction model."""

    vendor_name: str = Field(..., min_length=1, description="Issuing company")
    invoice_number: str = Field(..., min_length=1, description="Invoice identifier")
    invoice_date: date | None = None
    due_date: date | None = None
    payment_terms: str | None = None
    mobile: str | None = None
    email: str | None = None
    subtotal: float = 0.0
    taxes: ExtractedTaxes = Field(default_factory=ExtractedTaxes)
    total_amount: float = 0.0
    line_items: list[ExtractedLineItem] = Field(default_factory=list)

    @field_validator("vendor_name", "invoice_number", mode="before")
    @classmethod
    def strip_required_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("invoice_date", "due_date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> str | None:
        return parse_date(v)

    @field_validator("subtotal", "total_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        parsed = parse_currency(v)
        return 0.0 if parsed is None else parsed

    @field_validator("taxes", mode="before")
    @classmethod
    def default_taxes(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("line_items", mode="before")
    @classmethod
    def drop_null_items(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [item for item in v if item is not None]
        return v


class TokenUsage(BaseModel):
    """Token accounting reported by the model provider."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)


class InvoiceExtraction(BaseModel):
    """Result of one extraction call."""

    data: ExtractedInvoice
    raw_response: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


# =============================================================================
# Extraction Prompt
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You are a precise accounts-payable clerk.
Your task is to read the text of a supplier invoice and return its fields as JSON.

## Extraction Rules:

1. **Accuracy Over Guessing**: If a value is not present, return null. DO NOT HALLUCINATE.
2. **Amounts**: Return plain numbers without currency symbols (e.g., 1234.56).
3. **Dates**: Return dates as YYYY-MM-DD.
4. **Taxes**: Split Canadian sales taxes into gst, hst, qst and pst when printed separately.
   `taxes.total` is the sum of all taxes on the invoice.
5. **Line Items**: Extract EVERY row of the item table, in the order printed.

Return ONLY the JSON object described in the user prompt."""

EXTRACTION_USER_PROMPT = """Extract the invoice fields from the text below.

## Response Format (MUST follow this exact structure):
{{
  "vendor_name": "string",
  "invoice_number": "string",
  "invoice_date": "YYYY-MM-DD or null",
  "due_date": "YYYY-MM-DD or null",
  "payment_terms": "string or null",
  "mobile": "string or null",
  "email": "string or null",
  "subtotal": number,
  "taxes": {{"total": number, "gst": number or null, "hst": number or null, "qst": number or null, "pst": number or null}},
  "total_amount": number,
  "line_items": [
    {{"description": "string", "quantity": number, "rate": number, "amount": number}}
  ]
}}

## Invoice Text:
{text}"""


def build_extraction_prompt(text: str) -> str:
    """Build the user prompt for a single invoice."""
    return EXTRACTION_USER_PROMPT.format(text=text.strip())


def parse_extraction_response(content: str | None) -> ExtractedInvoice:
    """
    Parse and validate the model's JSON reply.

    Raises:
        ExtractionResponseError: If the reply is empty, not JSON, or misses required fields.
    """
    if not content:
        raise ExtractionResponseError("Empty response from OpenAI")

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction response: %s", content[:500])
        raise ExtractionResponseError(f"Invalid JSON in extraction response: {e}", content) from e

    if not isinstance(payload, dict):
        raise ExtractionResponseError("Extraction response is not a JSON object", content)

    try:
        return ExtractedInvoice.model_validate(payload)
    except ValidationError as e:
        logger.error("Extraction response failed validation: %s", e)
        raise ExtractionResponseError(f"Extraction response failed validation: {e}", content) from e


# =============================================================================
# Main Extraction Function
# =============================================================================


async def extract_invoice_data(
    text: str,
    client: Any,  # OpenAI client
    model: str = "gpt-4.1",
) -> InvoiceExtraction:
    """
    Extract structured invoice fields from plain text.

    Args:
        text: Text content of the invoice PDF.
        client: OpenAI client instance.
        model: Model name to use.

    Returns:
        InvoiceExtraction with validated data, the raw reply and token usage.

    Raises:
        AIServiceError: If the call fails or the reply cannot be validated.
    """
    if not text or not text.strip():
        raise AIServiceError("No text could be extracted from the PDF")

    logger.info("Extracting invoice fields (%d characters) with %s", len(text), model)

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": build_extraction_prompt(text)},
            ],
            response_format={"type": "json_object"},
            temperature=0,
        )

        content = response.choices[0].message.content
        data = parse_extraction_response(content)

        usage = TokenUsage()
        if getattr(response, "usage", None) is not None:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )

        logger.info(
            "Extracted invoice %s from %s (%d line items, %d/%d tokens)",
            data.invoice_number,
            data.vendor_name,
            len(data.line_items),
            usage.input_tokens,
            usage.output_tokens,
        )
        return InvoiceExtraction(data=data, raw_response=content, usage=usage)

    except AIServiceError:
        raise
    except Exception as e:
        logger.exception("Invoice extraction failed")
        raise AIServiceError(f"Invoice extraction failed: {e}") from e
