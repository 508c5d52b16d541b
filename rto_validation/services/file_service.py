"""
Document Storage — byte-level access to uploaded assessment documents.
Local filesystem backend for dev; storage paths are relative keys.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rto_validation.config import Settings, get_settings
from rto_validation.errors import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)


class DocumentStorage:
    """Swappable document storage keyed by storage path."""

    def __init__(self, settings: Settings | None = None, base_path: str | Path | None = None):
        self.settings = settings or get_settings()
        self.backend = self.settings.storage_backend

        if self.backend != "local":
            raise ConfigurationError(f"Storage backend '{self.backend}' is not supported")
        self.base_path = Path(base_path or self.settings.local_storage_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, storage_path: str) -> Path:
        path = (self.base_path / storage_path.lstrip("/")).resolve()
        if self.base_path.resolve() not in path.parents:
            raise NotFoundError(f"Invalid storage path: {storage_path}")
        return path

    def save(self, data: bytes, storage_path: str) -> str:
        """Save bytes under a storage path and return the path."""
        path = self._resolve(storage_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Saved document to {path}")
        return storage_path

    def download(self, storage_path: str) -> bytes:
        path = self._resolve(storage_path)
        if not path.is_file():
            raise NotFoundError(f"Failed to download document: {storage_path}")
        data = path.read_bytes()
        logger.debug(f"[Storage] Downloaded {storage_path} ({len(data) / 1024:.2f} KB)")
        return data
