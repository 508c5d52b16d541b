"""
Mongo Client — raw database connection management.
With the in-memory persistence backend no connection is created.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo import MongoClient as PyMongoClient

from rto_validation.config import Settings, get_settings

logger = logging.getLogger(__name__)


class MongoClient:
    """Thin wrapper around pymongo, connected lazily."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._client: Any = None
        self._db: Any = None

    @property
    def enabled(self) -> bool:
        return self.settings.persistence_backend.lower() == "mongo"

    def connect(self) -> None:
        """Establish the MongoDB connection (no-op for the memory backend)."""
        if not self.enabled:
            logger.info("[Mongo] Persistence backend is 'memory' — no connection made")
            return

        self._client = PyMongoClient(self.settings.mongodb_uri)
        self._db = self._client[self.settings.mongodb_database]
        logger.info(f"Connected to MongoDB: {self.settings.mongodb_database}")

    def get_database(self) -> Any:
        """Return the database handle."""
        if self._db is None and self.enabled:
            self.connect()
        return self._db

    def close(self) -> None:
        """Close the connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")
