"""
Normalization utilities for values returned by the extraction model.

Handles:
- Currency strings ("$1,234.56", "1.234,56 €") to floats
- Free-form dates to ISO YYYY-MM-DD
"""

import logging
import re
from datetime import datetime
from typing import Any

from dateutil import parser as date_parser
from price_parser import Price

logger = logging.getLogger(__name__)


def parse_currency(value: Any) -> float | None:
    """
    Coerce a model-reported amount to float.

    JSON numbers pass through. Strings such as "$1,234.56", "1.234,56 €" or
    "1000 USD" are read with price-parser. Returns None when no amount is present.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str) or not value.strip():
        return None
    return Price.fromstring(value).amount_float


def parse_date(value: Any) -> str | None:
    """
    Parse various date formats to YYYY-MM-DD.

    Slash dates are read as MM/DD/YYYY first, then DD/MM/YYYY.
    Returns None if parsing fails.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)

    value = value.strip()
    if not value:
        return None

    # ISO format (YYYY-MM-DD)
    if re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        try:
            return datetime.strptime(value, "%Y-%m-%d").strftime("%Y-%m-%d")
        except ValueError:
            return None

    match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", value)
    if match:
        first, second, year = (int(part) for part in match.groups())
        # US (MM/DD/YYYY), then European (DD/MM/YYYY)
        for month, day in ((first, second), (second, first)):
            try:
                return datetime(year, month, day).strftime("%Y-%m-%d")
            except ValueError:
                continue
        return None

    # Written formats ("January 15, 2024", "15 Jan 2024")
    try:
        return date_parser.parse(value).strftime("%Y-%m-%d")
    except (ValueError, OverflowError):
        logger.debug("Could not parse date value: %r", value)
        return None
