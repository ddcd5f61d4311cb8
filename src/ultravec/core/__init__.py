"""Core module exports."""

from ultravec.core.errors import (
    AcceleratedIndexUnavailable,
    ConfigError,
    EmbeddingProviderError,
    ErrorCode,
    ScanError,
    SearchError,
    StoreError,
    UltravecError,
)
from ultravec.core.logging import (
    bind_run_id,
    configure_logging,
    current_run_id,
    get_logger,
    unbind_run_id,
)
from ultravec.core.progress import FileProgress, pluralize, spinner, status

__all__ = [
    # Errors
    "AcceleratedIndexUnavailable",
    "ConfigError",
    "EmbeddingProviderError",
    "ErrorCode",
    "ScanError",
    "SearchError",
    "StoreError",
    "UltravecError",
    # Logging
    "bind_run_id",
    "configure_logging",
    "current_run_id",
    "get_logger",
    "unbind_run_id",
    # Progress
    "FileProgress",
    "pluralize",
    "spinner",
    "status",
]
