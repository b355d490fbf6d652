"""Chunking, dependency resolution and the indexing pipeline."""

from codescope.index._internal.indexing.chunking import Chunk, enclosing_symbol, split_into_chunks
from codescope.index._internal.indexing.pipeline import IndexingPipeline, ScanSummary, relative_path
from codescope.index._internal.indexing.resolver import DependencyResolver

__all__ = [
    "Chunk",
    "DependencyResolver",
    "IndexingPipeline",
    "ScanSummary",
    "enclosing_symbol",
    "relative_path",
    "split_into_chunks",
]
