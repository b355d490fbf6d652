"""Config module exports."""

from codescope.config.loader import get_index_path, load_config
from codescope.config.models import (
    CodeScopeConfig,
    DatabaseConfig,
    EmbeddingConfig,
    IndexConfig,
    LoggingConfig,
    SearchConfig,
    WatcherConfig,
)

__all__ = [
    "load_config",
    "get_index_path",
    "CodeScopeConfig",
    "DatabaseConfig",
    "EmbeddingConfig",
    "IndexConfig",
    "LoggingConfig",
    "SearchConfig",
    "WatcherConfig",
]
