"""Config module exports."""

from ultravec.config.loader import load_config, project_config_path
from ultravec.config.models import (
    LoggingConfig,
    ProvidersConfig,
    UltravecConfig,
    VectorConfig,
)

__all__ = [
    "load_config",
    "project_config_path",
    "LoggingConfig",
    "ProvidersConfig",
    "UltravecConfig",
    "VectorConfig",
]
