"""Core utilities: errors, logging, language and exclude tables."""

from codescope.core.errors import (
    CodeScopeError,
    ConfigError,
    EmbeddingError,
    ErrorCode,
    ExtractionError,
    InternalError,
    NotFoundError,
    QueryError,
    StorageError,
    UninitializedStoreError,
)

__all__ = [
    "CodeScopeError",
    "ConfigError",
    "EmbeddingError",
    "ErrorCode",
    "ExtractionError",
    "InternalError",
    "NotFoundError",
    "QueryError",
    "StorageError",
    "UninitializedStoreError",
]
