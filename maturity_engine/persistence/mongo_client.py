"""
Mongo Client — connection to the maturity framework database.
In mock mode, no actual connection is created.

The program join collections hold one row per (program, control) and per
(program, measure); unique indexes on those pairs are created on connect so
response upserts can never produce a second row.
"""

from __future__ import annotations

import logging
from typing import Any

from maturity_engine.config import get_settings

logger = logging.getLogger(__name__)

# collection → key pairs that must be unique
JOIN_INDEXES: dict[str, list[str]] = {
    "programa_controle": ["programa", "controle"],
    "programa_medida": ["programa", "medida"],
}

# collection → columns queried by the data source
LOOKUP_INDEXES: dict[str, list[str]] = {
    "diagnostico": ["id"],
    "controle": ["id"],
    "medida": ["id", "id_controle"],
}


class MongoClient:
    """
    Thin wrapper around pymongo.
    In mock mode this is a no-op placeholder.
    """

    def __init__(self):
        self.settings = get_settings()
        self._client: Any = None
        self._db: Any = None

    def connect(self) -> None:
        """Establish the MongoDB connection (no-op in mock mode)."""
        if self.settings.mock_mode:
            logger.info("[MOCK] MongoDB connection simulated")
            return

        from pymongo import MongoClient as PyMongoClient

        self._client = PyMongoClient(self.settings.mongodb_uri)
        self._db = self._client[self.settings.mongodb_database]
        logger.info(f"Connected to MongoDB: {self.settings.mongodb_database}")
        self.ensure_indexes(self._db)

    @staticmethod
    def ensure_indexes(db: Any) -> None:
        """Create the join and lookup indexes; existing ones are left as they are."""
        for collection, keys in JOIN_INDEXES.items():
            db[collection].create_index([(k, 1) for k in keys], unique=True)
        for collection, columns in LOOKUP_INDEXES.items():
            for column in columns:
                db[collection].create_index(column)
        logger.debug(f"Indexes ensured on {len(JOIN_INDEXES) + len(LOOKUP_INDEXES)} collections")

    def get_database(self) -> Any:
        """Return the database handle."""
        if self._db is None and not self.settings.mock_mode:
            self.connect()
        return self._db

    def collection(self, name: str) -> Any:
        """Return a collection handle, or raise if no database is available."""
        db = self.get_database()
        if db is None:
            raise RuntimeError("MongoDB is not available (mock_mode is on?)")
        return db[name]

    def close(self) -> None:
        """Close the connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")
