"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CODESCOPE__SECTION__KEY)
3. Repo YAML (.codescope/config.yaml)
4. Global YAML (~/.config/codescope/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CODESCOPE__<SECTION>__<KEY>=<VALUE>

Examples:
    CODESCOPE__LOGGING__LEVEL=DEBUG
    CODESCOPE__INDEX__MAX_FILE_SIZE_BYTES=2097152
    CODESCOPE__EMBEDDING__DIMENSIONS=512
    CODESCOPE__WATCHER__DEBOUNCE_SEC=0.5
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator

from codescope.config.constants import (
    DEFAULT_CHUNK_MAX_CHARS,
    DEFAULT_CONTEXT_SIZE,
    DEFAULT_EMBEDDING_BATCH_SIZE,
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_MAX_INPUT_CHARS,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_MAX_FILE_SIZE_BYTES,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_THRESHOLD,
    OPENAI_API_KEY_ENV,
    OPENAI_BASE_URL,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CODESCOPE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every skipped file during scans.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        CODESCOPE__INDEX__MAX_FILE_SIZE_BYTES: Skip files larger than this
        CODESCOPE__INDEX__CHUNK_MAX_CHARS: Maximum characters per embedded chunk
        CODESCOPE__INDEX__INDEX_PATH: Override index storage location
    """

    max_file_size_bytes: int = Field(
        default=DEFAULT_MAX_FILE_SIZE_BYTES,
        description="Skip files larger than this during non-forced scans.",
    )
    chunk_max_chars: int = Field(
        default=DEFAULT_CHUNK_MAX_CHARS,
        description="Chunks are cut at whole lines once they would exceed this length.",
    )
    ignore_patterns: list[str] = Field(
        default_factory=list,
        description="Extra gitignore-style patterns layered over the built-in defaults.",
    )
    index_path: str | None = Field(
        default=None,
        description="Directory holding index.db. Default: .codescope/ in the repo.",
    )

    @field_validator("max_file_size_bytes", "chunk_max_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration.

    The remote provider is used only when an API key is available, either
    here or in OPENAI_API_KEY. Otherwise every vector is computed locally.

    Env vars:
        CODESCOPE__EMBEDDING__API_KEY: Remote service key
        CODESCOPE__EMBEDDING__BASE_URL: OpenAI-compatible API root
        CODESCOPE__EMBEDDING__MODEL: Remote model name
        CODESCOPE__EMBEDDING__DIMENSIONS: Vector length (remote and local)
        CODESCOPE__EMBEDDING__TIMEOUT_SEC: Per-request timeout
    """

    api_key: SecretStr | None = Field(
        default=None,
        description="Remote embedding key. Falls back to the OPENAI_API_KEY env var.",
    )
    base_url: str = Field(default=OPENAI_BASE_URL)
    model: str = Field(default=DEFAULT_EMBEDDING_MODEL)
    dimensions: int = Field(
        default=DEFAULT_EMBEDDING_DIMENSIONS,
        description="Vector length. Changing it invalidates similarity against stored vectors.",
    )
    batch_size: int = Field(
        default=DEFAULT_EMBEDDING_BATCH_SIZE,
        description="Texts per remote request.",
    )
    max_input_chars: int = Field(
        default=DEFAULT_EMBEDDING_MAX_INPUT_CHARS,
        description="Inputs are truncated to this many characters before a remote call.",
    )
    timeout_sec: float = Field(
        default=30.0,
        description="Remote call timeout. On expiry the batch is embedded locally.",
    )
    remote_enabled: bool = Field(
        default=True,
        description="Set false to force local embeddings even when a key is present.",
    )

    @field_validator("dimensions", "batch_size", "max_input_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    def resolved_api_key(self) -> str | None:
        if self.api_key is not None:
            return self.api_key.get_secret_value() or None
        return os.environ.get(OPENAI_API_KEY_ENV) or None


class WatcherConfig(BaseModel):
    """Change watcher configuration.

    Env vars:
        CODESCOPE__WATCHER__DEBOUNCE_SEC: Quiet time before a path is re-indexed
    """

    debounce_sec: float = Field(
        default=1.0,
        description="Stability window. Rapid successive writes to a path collapse into one update.",
    )
    ignore_patterns: list[str] = Field(
        default_factory=list,
        description="Extra patterns ignored only by the watcher.",
    )
    max_queue_size: int = Field(
        default=10000,
        description="Raw events buffered before new ones are dropped.",
    )


class SearchConfig(BaseModel):
    """Retrieval defaults.

    Env vars:
        CODESCOPE__SEARCH__DEFAULT_LIMIT
        CODESCOPE__SEARCH__DEFAULT_THRESHOLD
        CODESCOPE__SEARCH__CONTEXT_SIZE
    """

    default_limit: int = Field(default=DEFAULT_SEARCH_LIMIT)
    default_threshold: float = Field(
        default=DEFAULT_SEARCH_THRESHOLD,
        description="Minimum cosine similarity. Local embeddings score lower than remote ones.",
    )
    context_size: int = Field(default=DEFAULT_CONTEXT_SIZE)

    @field_validator("default_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not (-1.0 <= v <= 1.0):
            raise ValueError(f"Threshold must be within [-1, 1], got {v}")
        return v


class DatabaseConfig(BaseModel):
    """SQLite configuration.

    Env vars:
        CODESCOPE__DATABASE__BUSY_TIMEOUT_MS
        CODESCOPE__DATABASE__MAX_RETRIES
    """

    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout. Writers wait this long for a lock.",
    )
    max_retries: int = Field(
        default=3,
        description="Retries for BEGIN IMMEDIATE on 'database is locked'.",
    )
    retry_base_delay_sec: float = Field(default=0.1)


class CodeScopeConfig(BaseModel):
    """Root configuration for codescope.

    All settings can be configured via:
    1. Environment variables: CODESCOPE__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
