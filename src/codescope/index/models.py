"""SQLModel definitions for the code index.

Single source of truth for all table schemas.

Architecture:
- File is the root aggregate, keyed by repo-relative path
- Symbol, Embedding and Dependency rows are owned by exactly one File and
  are deleted with it (ON DELETE CASCADE)
- Cross-file references (Dependency.target_file_id, Embedding.symbol_id)
  are nulled rather than cascaded when their target disappears

JSON-shaped attributes (modifiers, imported symbols, chunk metadata) are
stored as JSON text columns and decoded through the get_* helpers.
"""

import json
from enum import Enum
from typing import Any

import numpy as np
from sqlalchemy import Column, ForeignKey, Integer, LargeBinary, Text
from sqlmodel import Field, SQLModel

# ============================================================================
# ENUMS
# ============================================================================


class SymbolKind(str, Enum):
    """Kind of extracted structural element."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    VARIABLE = "variable"
    INTERFACE = "interface"
    TYPE = "type"
    PROPERTY = "property"


class ImportType(str, Enum):
    """Mechanism that introduced a dependency."""

    IMPORT = "import"  # declarative import / use
    REQUIRE = "require"  # dynamic require() or import()
    INCLUDE = "include"  # textual #include


class ChunkKind(str, Enum):
    """Whether a chunk is plain code or lies inside a single symbol."""

    CODE = "code"
    SYMBOL = "symbol"


# ============================================================================
# TABLES
# ============================================================================


class File(SQLModel, table=True):
    """Indexed file in the repository."""

    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    path: str = Field(unique=True, index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    hash: str = Field(index=True)
    size: int
    language: str
    last_modified: float
    indexed_at: float


class Symbol(SQLModel, table=True):
    """Declaration site extracted from a file."""

    __tablename__ = "symbols"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    name: str = Field(index=True)
    kind: str = Field(index=True)  # SymbolKind value
    start_line: int
    end_line: int
    start_column: int
    end_column: int
    definition: str = ""
    doc: str | None = None
    modifiers: str = "[]"  # JSON array

    def get_modifiers(self) -> list[str]:
        """Parse modifiers JSON."""
        return json.loads(self.modifiers) if self.modifiers else []


class Embedding(SQLModel, table=True):
    """Vector for one chunk of a file."""

    __tablename__ = "embeddings"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    symbol_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("symbols.id", ondelete="SET NULL"), nullable=True, index=True
        ),
    )
    chunk_index: int
    content: str = Field(sa_column=Column(Text, nullable=False))
    vector: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    chunk_metadata: str = "{}"  # JSON object

    def get_vector(self) -> np.ndarray:
        """Decode the stored float32 vector."""
        return np.frombuffer(self.vector, dtype=np.float32)

    def get_metadata(self) -> dict[str, Any]:
        """Parse metadata JSON."""
        return json.loads(self.chunk_metadata) if self.chunk_metadata else {}


class Dependency(SQLModel, table=True):
    """Import/include relationship found in a source file."""

    __tablename__ = "dependencies"

    id: int | None = Field(default=None, primary_key=True)
    source_file_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    target_file_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True, index=True
        ),
    )
    import_path: str
    import_type: str  # ImportType value
    is_external: bool = False
    symbols: str = "[]"  # JSON array, may contain "*"

    def get_symbols(self) -> list[str]:
        """Parse imported symbol names JSON."""
        return json.loads(self.symbols) if self.symbols else []


def encode_vector(vector: np.ndarray | list[float]) -> bytes:
    """Encode a vector as float32 little-endian bytes."""
    return np.asarray(vector, dtype="<f4").tobytes()
