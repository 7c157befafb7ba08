"""
Configuration for footprints.

Manifesto:
    The adapter reads exactly one configuration subtree,
    ``footprints.models.options``, and treats it as read-only defaults for
    every call. Where the values come from (environment, ``.env`` file, a
    host application's own config tree) is the caller's choice, so the
    facade only depends on the :class:`~footprints.protocols.ConfigSource`
    shape.

Features:
    - **FootprintSettings:** pydantic-settings model, ``FOOTPRINTS_*`` env vars
    - **DictConfig:** ConfigSource over a plain nested mapping
    - **load_model_options():** validated ``QueryOptions`` from any source
    - **get_settings():** cached settings instance
    - **setup_logging():** structlog configured from ``log_level`` / ``log_format``

Examples:
    Environment-driven::

        FOOTPRINTS_MODELS__OPTIONS__DEFAULT_LIMIT=100
        FOOTPRINTS_MODELS__OPTIONS__POPULATE='[{"attribute": "profile"}]'

    Host application config tree:

    >>> config = DictConfig({"footprints": {"models": {"options": {"defaultLimit": 25}}}})
    >>> load_model_options(config).default_limit
    25

Tags:
    configuration, settings, pydantic, environment, footprints
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from footprints.errors import ConfigError
from footprints.logging import configure_logging
from footprints.options import QueryOptions
from footprints.protocols import ConfigSource

MODEL_OPTIONS_PATH = "footprints.models.options"


class PopulateSetting(BaseModel):
    attribute: str
    criteria: dict[str, Any] = Field(default_factory=dict)


class ModelOptionsSettings(BaseModel):
    """Defaults applied to every facade call."""

    default_limit: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("default_limit", "defaultLimit"),
        serialization_alias="defaultLimit",
    )
    populate: list[PopulateSetting] = Field(default_factory=list)


class ModelsSettings(BaseModel):
    options: ModelOptionsSettings = Field(default_factory=ModelOptionsSettings)


class FootprintSettings(BaseSettings):
    """Footprints configuration.

    All fields can be set via ``FOOTPRINTS_*`` environment variables, using
    ``__`` to reach nested fields (``FOOTPRINTS_MODELS__OPTIONS__DEFAULT_LIMIT``).
    """

    model_config = SettingsConfigDict(
        env_prefix="FOOTPRINTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── Model options ────────────────────────────────────────────
    models: ModelsSettings = Field(default_factory=ModelsSettings)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    def as_tree(self) -> dict[str, Any]:
        """Settings as the nested ``{"footprints": {...}}`` tree read by :meth:`get`."""
        return {"footprints": self.model_dump(by_alias=True, exclude_none=True)}

    def get(self, path: str, default: Any = None) -> Any:
        """Dotted key-path lookup (ConfigSource)."""
        return DictConfig(self.as_tree()).get(path, default)


class DictConfig:
    """ConfigSource over a nested mapping.

    Example:
        >>> DictConfig({"a": {"b": 1}}).get("a.b")
        1
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data = data or {}

    def get(self, path: str, default: Any = None) -> Any:
        node: Any = self._data
        for key in path.split("."):
            if not isinstance(node, Mapping) or key not in node:
                return default
            node = node[key]
        return node


def as_config_source(config: ConfigSource | Mapping[str, Any] | None) -> ConfigSource:
    """Wrap plain mappings (and ``None``) so callers can always call ``get(path)``."""
    if config is None:
        return DictConfig()
    if isinstance(config, Mapping):
        return DictConfig(config)
    return config


def load_model_options(config: ConfigSource | Mapping[str, Any] | None) -> QueryOptions:
    """Read ``footprints.models.options`` as :class:`QueryOptions` defaults.

    Only ``defaultLimit`` and ``populate`` are recognized; other keys are
    ignored.

    Raises:
        ConfigError: The subtree is present but malformed.
    """
    raw = as_config_source(config).get(MODEL_OPTIONS_PATH)
    if raw is None:
        return QueryOptions()
    if not isinstance(raw, Mapping):
        raise ConfigError(
            f"{MODEL_OPTIONS_PATH} must be a mapping, not {type(raw).__name__}"
        ).with_context(operation="load_model_options")

    try:
        options = ModelOptionsSettings.model_validate(dict(raw))
    except ValueError as e:
        raise ConfigError(
            f"Invalid {MODEL_OPTIONS_PATH}: {e}", cause=e
        ).with_context(operation="load_model_options") from e

    return QueryOptions.coerce(
        {
            "default_limit": options.default_limit,
            "populate": [p.model_dump() for p in options.populate],
        }
    )


def setup_logging(settings: FootprintSettings | None = None) -> FootprintSettings:
    """Configure structlog from ``log_level`` / ``log_format``.

    Uses :func:`get_settings` when no settings are given.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")
    return settings


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, FootprintSettings] = {}


def get_settings(*, _force_reload: bool = False) -> FootprintSettings:
    """Load, validate and cache a :class:`FootprintSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = FootprintSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "DictConfig",
    "FootprintSettings",
    "MODEL_OPTIONS_PATH",
    "ModelOptionsSettings",
    "as_config_source",
    "clear_settings_cache",
    "get_settings",
    "load_model_options",
    "setup_logging",
]
