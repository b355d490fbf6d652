"""Index module - local code indexing and retrieval engine.

Public API is in `codescope.index.ops`:
- CodeIndex: High-level facade (initialize, index, query, watch)

Internal implementations are in `codescope.index._internal/`:
- db: SQLite store
- extraction: pattern-based symbols and dependencies
- embedding: remote provider with local fallback
- indexing: chunking, resolution, pipeline
- retrieval: search, symbols, references, dependencies, context
- watcher: change events driving incremental updates
"""

from codescope.index._internal.db import Database, IndexStore, create_additional_indexes
from codescope.index._internal.indexing import IndexingPipeline, ScanSummary
from codescope.index._internal.retrieval import (
    CodeContext,
    DependencyGraph,
    ReferenceKind,
    ReferenceResult,
    RetrievalEngine,
    SearchResult,
    SymbolResult,
)
from codescope.index._internal.watcher import ChangeEvent, ChangeKind, ChangeWatcher
from codescope.index.models import (
    ChunkKind,
    Dependency,
    Embedding,
    File,
    ImportType,
    Symbol,
    SymbolKind,
)
from codescope.index.ops import CodeIndex

__all__ = [
    # Public API (ops.py)
    "CodeIndex",
    # Components
    "IndexStore",
    "IndexingPipeline",
    "RetrievalEngine",
    "ChangeWatcher",
    # Database
    "Database",
    "create_additional_indexes",
    # Results
    "ScanSummary",
    "SearchResult",
    "SymbolResult",
    "ReferenceResult",
    "ReferenceKind",
    "DependencyGraph",
    "CodeContext",
    "ChangeEvent",
    "ChangeKind",
    # Enums
    "SymbolKind",
    "ImportType",
    "ChunkKind",
    # Models
    "File",
    "Symbol",
    "Embedding",
    "Dependency",
]
