"""Layered configuration loading.

Sources, lowest to highest precedence:

    built-in defaults
    ~/.config/ultravec/config.yaml
    <project>/.ultra-mcp/config.yaml
    ULTRAVEC__SECTION__KEY environment variables
    keyword arguments to load_config()

The two YAML files are deep-merged first and handed to pydantic-settings as
one source, so environment variables override individual keys rather than
whole sections.
"""

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ultravec.config.models import UltravecConfig
from ultravec.core.errors import ConfigError
from ultravec.core.excludes import STORE_DIRNAME

GLOBAL_CONFIG_PATH = Path("~/.config/ultravec/config.yaml").expanduser()
PROJECT_CONFIG_NAME = "config.yaml"

# Merged YAML for the load_config() call in progress
_yaml_layer: ContextVar[dict[str, Any]] = ContextVar("ultravec_yaml_layer", default={})


def _load_yaml(path: Path) -> dict[str, Any]:
    """Parse one YAML file; a missing or empty file is an empty mapping.

    Raises:
        ConfigError: The file is not valid YAML or its top level is not a mapping.
    """
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top-level value must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """New dict with override applied on top of base, merging nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class _YamlLayer(PydanticBaseSettingsSource):
    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = _yaml_layer.get().get(field_name)
        return value, field_name, isinstance(value, dict)

    def __call__(self) -> dict[str, Any]:
        return dict(_yaml_layer.get())


class _UltravecSettings(UltravecConfig, BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ULTRAVEC__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # First wins
        return (init_settings, env_settings, _YamlLayer(settings_cls))


def project_config_path(project_root: Path) -> Path:
    return project_root / STORE_DIRNAME / PROJECT_CONFIG_NAME


def load_config(project_root: Path | None = None, **kwargs: Any) -> UltravecConfig:
    """Resolve configuration for a project.

    Args:
        project_root: Directory whose .ultra-mcp/config.yaml is read.
            Defaults to the current working directory.
        **kwargs: Section overrides, e.g. ``vector={"chunk_size": 800}``.

    Raises:
        ConfigError: A YAML file is malformed or a value fails validation.
    """
    root = project_root or Path.cwd()
    layer = _deep_merge(_load_yaml(GLOBAL_CONFIG_PATH), _load_yaml(project_config_path(root)))

    token = _yaml_layer.set(layer)
    try:
        return _UltravecSettings(**kwargs)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ConfigError.invalid_value(location, first.get("input"), first["msg"]) from e
    finally:
        _yaml_layer.reset(token)
