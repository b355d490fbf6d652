"""Additional index creation for query performance.

These indexes complement the basic indexes defined in SQLModel Field()
declarations. They are composite or unique indexes for query patterns that
cannot be expressed via Field(index=True).

Call create_additional_indexes() after Database.create_all().
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Engine


ADDITIONAL_INDEXES = [
    # chunk_index is unique per file
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_embeddings_file_chunk ON embeddings(file_id, chunk_index)",
    # find_symbol with kind filter
    "CREATE INDEX IF NOT EXISTS idx_symbols_name_kind ON symbols(name, kind)",
    # Dangling dependency re-linking
    "CREATE INDEX IF NOT EXISTS idx_dependencies_unresolved ON dependencies(target_file_id, is_external)",
]


def create_additional_indexes(engine: Engine) -> None:
    """Create additional composite indexes."""
    with engine.connect() as conn:
        for sql in ADDITIONAL_INDEXES:
            conn.execute(text(sql))
        conn.commit()

