"""Database layer: engine, schema indexes and the persistent store."""

from codescope.index._internal.db.database import Database
from codescope.index._internal.db.indexes import create_additional_indexes
from codescope.index._internal.db.store import (
    FileSnapshot,
    FileUpsert,
    IndexStore,
    PendingEmbedding,
)

__all__ = [
    "Database",
    "FileSnapshot",
    "FileUpsert",
    "IndexStore",
    "PendingEmbedding",
    "create_additional_indexes",
]
