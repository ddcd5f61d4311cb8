"""ultravec error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Scan
- 4xxx: Store
- 5xxx: Search
- 6xxx: Embedding
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

    # Scan (3xxx)
    SCAN_READ_FAILED = 3001

    # Store (4xxx)
    STORE_INIT_FAILED = 4001
    STORE_CLEAR_FAILED = 4002
    STORE_WRITE_FAILED = 4003
    STORE_DIMENSION_MISMATCH = 4004
    STORE_READ_FAILED = 4005
    STORE_ACCELERATED_UNAVAILABLE = 4010
    STORE_ACCELERATED_QUERY_FAILED = 4011
    STORE_ACCELERATED_ZERO_NORM = 4012

    # Search (5xxx)
    SEARCH_FAILED = 5001
    SEARCH_DIMENSION_MISMATCH = 5002

    # Embedding (6xxx)
    EMBEDDING_REQUEST_FAILED = 6001
    EMBEDDING_NOT_CONFIGURED = 6002
    EMBEDDING_BATCH_MISMATCH = 6003
    EMBEDDING_UNSUPPORTED_PROVIDER = 6004


@dataclass(frozen=True, slots=True)
class UltravecError(Exception):
    """Base error with structured context for CLI and JSON output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'STORE_CLEAR_FAILED')."""
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


class ConfigError(UltravecError):
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


class ScanError(UltravecError):
    """A single source file could not be read. Recovered per file."""

    @classmethod
    def read_failed(cls, path: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_READ_FAILED,
            message=f"Failed to read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class StoreError(UltravecError):
    """Vector store errors."""

    @classmethod
    def init_failed(cls, path: str, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_INIT_FAILED,
            message=f"Failed to initialize vector store at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def clear_failed(cls, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_CLEAR_FAILED,
            message=f"Failed to clear vector store: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def write_failed(cls, reason: str, count: int = 0) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_WRITE_FAILED,
            message=f"Failed to write vectors: {reason}",
            retryable=True,
            details={"reason": reason, "count": count},
        )

    @classmethod
    def read_failed(cls, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_READ_FAILED,
            message=f"Failed to read vector store: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def dimension_mismatch(cls, expected: int, actual: int, **details: Any) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_DIMENSION_MISMATCH,
            message=f"Embedding dimension {actual} does not match store dimension {expected}",
            details={"expected": expected, "actual": actual, **details},
        )


class AcceleratedIndexUnavailable(UltravecError):
    """The native vector index cannot serve a query. Callers fall back to a full scan."""

    @classmethod
    def unavailable(cls) -> "AcceleratedIndexUnavailable":
        return cls(
            code=ErrorCode.STORE_ACCELERATED_UNAVAILABLE,
            message="Accelerated vector index is not available for this store",
        )

    @classmethod
    def query_failed(cls, reason: str) -> "AcceleratedIndexUnavailable":
        return cls(
            code=ErrorCode.STORE_ACCELERATED_QUERY_FAILED,
            message=f"Accelerated vector query failed: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def zero_norm(cls, source: str) -> "AcceleratedIndexUnavailable":
        return cls(
            code=ErrorCode.STORE_ACCELERATED_ZERO_NORM,
            message=f"Cosine distance is undefined for a zero-norm {source} vector",
            details={"source": source},
        )


class SearchError(UltravecError):
    """Search-time errors."""

    @classmethod
    def failed(cls, reason: str) -> "SearchError":
        return cls(
            code=ErrorCode.SEARCH_FAILED,
            message=f"Vector search failed: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def dimension_mismatch(cls, expected: int, actual: int) -> "SearchError":
        return cls(
            code=ErrorCode.SEARCH_DIMENSION_MISMATCH,
            message=(
                f"Query embedding has {actual} dimensions but the index was built "
                f"with {expected}; clear and re-index with the current provider"
            ),
            details={"expected": expected, "actual": actual},
        )


class EmbeddingProviderError(UltravecError):
    """Errors raised by embedding clients."""

    @classmethod
    def request_failed(
        cls, provider: str, reason: str, *, retryable: bool = False, status: int | None = None
    ) -> "EmbeddingProviderError":
        details: dict[str, Any] = {"provider": provider, "reason": reason}
        if status is not None:
            details["status"] = status
        return cls(
            code=ErrorCode.EMBEDDING_REQUEST_FAILED,
            message=f"{provider} embedding request failed: {reason}",
            retryable=retryable,
            details=details,
        )

    @classmethod
    def not_configured(cls, provider: str | None = None) -> "EmbeddingProviderError":
        if provider:
            message = f"Embedding provider '{provider}' is not configured"
        else:
            message = (
                "No embedding provider configured. Set an API key for "
                "OpenAI, Azure OpenAI or Google Gemini, or select the 'local' provider"
            )
        return cls(
            code=ErrorCode.EMBEDDING_NOT_CONFIGURED,
            message=message,
            details={"provider": provider},
        )

    @classmethod
    def batch_mismatch(cls, provider: str, expected: int, actual: int) -> "EmbeddingProviderError":
        return cls(
            code=ErrorCode.EMBEDDING_BATCH_MISMATCH,
            message=f"{provider} returned {actual} embeddings for {expected} inputs",
            details={"provider": provider, "expected": expected, "actual": actual},
        )

    @classmethod
    def unsupported_provider(cls, provider: str) -> "EmbeddingProviderError":
        return cls(
            code=ErrorCode.EMBEDDING_UNSUPPORTED_PROVIDER,
            message=f"Unsupported embedding provider: {provider}",
            details={"provider": provider},
        )
