"""codescope error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index (store, extraction, embedding, retrieval)
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Index (3xxx)
    STORE_UNINITIALIZED = 3001
    STORAGE_ERROR = 3002
    EXTRACTION_FAILED = 3003
    EMBEDDING_FAILED = 3004
    FILE_NOT_FOUND = 3005
    INVALID_QUERY = 3006

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002


@dataclass(frozen=True, slots=True)
class CodeScopeError(Exception):
    """Base error with structured context for collaborator responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'STORAGE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CodeScopeError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class UninitializedStoreError(CodeScopeError):
    """Store operation attempted before open()."""

    @classmethod
    def for_operation(cls, operation: str) -> "UninitializedStoreError":
        return cls(
            code=ErrorCode.STORE_UNINITIALIZED,
            message=f"Store is not open (operation: {operation})",
            details={"operation": operation},
        )


class StorageError(CodeScopeError):
    """I/O or constraint failure inside the store."""

    @classmethod
    def operation_failed(
        cls, operation: str, reason: str, path: str | None = None
    ) -> "StorageError":
        return cls(
            code=ErrorCode.STORAGE_ERROR,
            message=f"Storage operation '{operation}' failed: {reason}",
            retryable="locked" in reason.lower(),
            details={"operation": operation, "path": path, "reason": reason},
        )


class ExtractionError(CodeScopeError):
    """Extractor raised while parsing a supported language."""

    @classmethod
    def failed(cls, language: str, reason: str, path: str | None = None) -> "ExtractionError":
        return cls(
            code=ErrorCode.EXTRACTION_FAILED,
            message=f"Extraction failed for {language}: {reason}",
            details={"language": language, "path": path, "reason": reason},
        )


class EmbeddingError(CodeScopeError):
    """Embedding failed on both the remote and the local path."""

    @classmethod
    def failed(cls, reason: str, **details: Any) -> "EmbeddingError":
        return cls(
            code=ErrorCode.EMBEDDING_FAILED,
            message=f"Embedding failed: {reason}",
            details=details,
        )


class NotFoundError(CodeScopeError):
    """Query or indexing target file is absent."""

    @classmethod
    def file(cls, path: str) -> "NotFoundError":
        return cls(
            code=ErrorCode.FILE_NOT_FOUND,
            message=f"File not found: {path}",
            details={"path": path},
        )


class QueryError(CodeScopeError):
    """Invalid retrieval input (e.g., an empty query)."""

    @classmethod
    def missing_argument(cls, argument: str) -> "QueryError":
        return cls(
            code=ErrorCode.INVALID_QUERY,
            message=f"Missing required argument: {argument}",
            details={"argument": argument},
        )

    @classmethod
    def invalid_argument(cls, argument: str, value: Any, reason: str) -> "QueryError":
        return cls(
            code=ErrorCode.INVALID_QUERY,
            message=f"Invalid value for '{argument}': {reason}",
            details={"argument": argument, "value": str(value), "reason": reason},
        )


class InternalError(CodeScopeError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
