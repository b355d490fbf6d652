"""Retrieval engine and its result types."""

from codescope.index._internal.retrieval.engine import RetrievalEngine, find_matches
from codescope.index._internal.retrieval.results import (
    CodeChunk,
    CodeContext,
    DependencyGraph,
    DependencyInfo,
    DependentInfo,
    ReferenceKind,
    ReferenceResult,
    SearchResult,
    SymbolResult,
    TextMatch,
)

__all__ = [
    "CodeChunk",
    "CodeContext",
    "DependencyGraph",
    "DependencyInfo",
    "DependentInfo",
    "ReferenceKind",
    "ReferenceResult",
    "RetrievalEngine",
    "SearchResult",
    "SymbolResult",
    "TextMatch",
    "find_matches",
]
