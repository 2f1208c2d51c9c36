"""
File storage for uploaded invoice PDFs.

Stores content on the local filesystem under a content-addressed prefix and
returns the storage key, a retrieval URL and the SHA-256 hash.
"""

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path

from ..config import get_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a file cannot be written to storage."""

    pass


@dataclass(slots=True)
class StoredFile:
    key: str
    url: str
    hash: str


def _safe_filename(filename: str | None) -> str:
    """Reduce an uploaded filename to a safe path component."""
    name = Path(filename or "").name
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "invoice.pdf"


class FileSystemStorage:
    """
    File system implementation of the storage backend.

    Keys look like ``invoices/<hash prefix>/<uuid>-<filename>``.
    """

    def __init__(self, base_path: str | Path, base_url: str = "/files"):
        """
        Initialize filesystem storage.

        Args:
            base_path: Directory where files are written.
            base_url: URL prefix used to build retrieval URLs.
        """
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")

    def get_path(self, key: str) -> Path:
        """Get full path for a storage key."""
        return self.base_path / key

    def upload(self, content: bytes, filename: str | None) -> StoredFile:
        """
        Persist content and return its storage metadata.

        Args:
            content: File bytes.
            filename: Original filename, used as a readable key suffix.

        Returns:
            StoredFile with key, url and SHA-256 hash.

        Raises:
            StorageError: If the file cannot be written.
        """
        file_hash = hashlib.sha256(content).hexdigest()
        key = f"invoices/{file_hash[:2]}/{uuid.uuid4().hex}-{_safe_filename(filename)}"
        path = self.get_path(key)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            logger.error("Could not write %s to storage: %s", key, e)
            raise StorageError(f"Could not store file: {e}") from e

        logger.info("Stored %s (%d bytes, sha256=%s)", key, len(content), file_hash)
        return StoredFile(key=key, url=f"{self.base_url}/{key}", hash=file_hash)

    def load(self, key: str) -> bytes:
        """
        Load content from storage.

        Raises:
            StorageError: If the key does not exist.
        """
        path = self.get_path(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {key}: {e}") from e


_storage: FileSystemStorage | None = None


def get_storage() -> FileSystemStorage:
    """Get or create the storage singleton from settings."""
    global _storage
    if _storage is None:
        settings = get_settings()
        _storage = FileSystemStorage(settings.storage_path, settings.storage_base_url)
    return _storage
