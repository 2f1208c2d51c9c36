"""
Vendor normalization and lookup-or-create.

Vendors are keyed on a normalized form of their name so that spellings such as
"Acme Inc." and "ACME INC" resolve to the same row.
"""

import logging
import re
import unicodedata

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models_db import Vendor

logger = logging.getLogger(__name__)


def normalize_vendor_name(name: str) -> str:
    """
    Canonicalize a free-text vendor name to a lookup key.

    Casefolds, strips accents and punctuation, and joins words with hyphens:
    "Acme Inc." -> "acme-inc", "ООО Ромашка" -> "ооо-ромашка". Letters of any
    script are kept.

    Raises:
        ValueError: If the name has no letters or digits.
    """
    decomposed = unicodedata.normalize("NFKD", name or "")
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    folded = folded.replace("&", " and ").replace("'", "").replace("’", "")
    words = re.findall(r"[^\W_]+", folded)
    if not words:
        raise ValueError(f"Vendor name has no usable characters: {name!r}")
    return "-".join(words)


def find_vendor(db: Session, normalized_name: str) -> Vendor | None:
    """Look up a vendor by its normalized key."""
    return db.query(Vendor).filter(Vendor.normalized_name == normalized_name).first()


def get_or_create_vendor(db: Session, name: str) -> Vendor:
    """
    Return the vendor for a name, creating it on first sighting.

    The insert runs in a savepoint. If a concurrent request created the same
    normalized name first, the unique constraint rejects ours and the existing
    row is returned instead.
    """
    normalized_name = normalize_vendor_name(name)

    vendor = find_vendor(db, normalized_name)
    if vendor is not None:
        return vendor

    vendor = Vendor(name=name.strip(), normalized_name=normalized_name)
    try:
        with db.begin_nested():
            db.add(vendor)
            db.flush()
    except IntegrityError:
        logger.info("Vendor '%s' created concurrently, re-fetching", normalized_name)
        vendor = find_vendor(db, normalized_name)
        if vendor is None:
            raise
        return vendor

    logger.info("Created vendor '%s' (%s)", vendor.name, normalized_name)
    return vendor
