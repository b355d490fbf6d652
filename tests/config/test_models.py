"""Tests for config models: defaults and field validation."""

from __future__ import annotations

import pytest
from pydantic import SecretStr, ValidationError

from codescope.config.models import (
    CodeScopeConfig,
    DatabaseConfig,
    EmbeddingConfig,
    IndexConfig,
    LoggingConfig,
    SearchConfig,
    WatcherConfig,
)


class TestDefaults:
    """Built-in defaults with no config sources."""

    def test_index_defaults(self) -> None:
        config = IndexConfig()
        assert config.max_file_size_bytes == 1024 * 1024
        assert config.chunk_max_chars == 500
        assert config.ignore_patterns == []
        assert config.index_path is None

    def test_embedding_defaults(self) -> None:
        config = EmbeddingConfig()
        assert config.model == "text-embedding-3-small"
        assert config.dimensions == 1536
        assert config.batch_size == 100
        assert config.max_input_chars == 8000
        assert config.timeout_sec == 30.0
        assert config.base_url == "https://api.openai.com/v1"

    def test_watcher_and_search_defaults(self) -> None:
        assert WatcherConfig().debounce_sec == 1.0
        search = SearchConfig()
        assert search.default_limit == 10
        assert search.default_threshold == 0.7
        assert search.context_size == 5

    def test_root_holds_every_section(self) -> None:
        config = CodeScopeConfig()
        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(config.index, IndexConfig)
        assert isinstance(config.embedding, EmbeddingConfig)
        assert isinstance(config.watcher, WatcherConfig)
        assert isinstance(config.search, SearchConfig)
        assert isinstance(config.database, DatabaseConfig)


class TestValidation:
    """Field validators reject out-of-range values."""

    @pytest.mark.parametrize("field", ["max_file_size_bytes", "chunk_max_chars"])
    def test_index_sizes_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            IndexConfig(**{field: 0})

    @pytest.mark.parametrize("field", ["dimensions", "batch_size", "max_input_chars"])
    def test_embedding_sizes_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            EmbeddingConfig(**{field: -1})

    @pytest.mark.parametrize("threshold", [-1.5, 1.01])
    def test_threshold_range(self, threshold: float) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(default_threshold=threshold)

    def test_threshold_bounds_inclusive(self) -> None:
        assert SearchConfig(default_threshold=-1.0).default_threshold == -1.0
        assert SearchConfig(default_threshold=1.0).default_threshold == 1.0

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")  # type: ignore[arg-type]


class TestSecrets:
    def test_key_not_in_repr(self) -> None:
        config = EmbeddingConfig(api_key=SecretStr("sk-secret"))
        assert "sk-secret" not in repr(config)
