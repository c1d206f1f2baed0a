# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.PackageResolvers.settings",
#   "purpose": "Configuration models and loaders for package resolvers",
#   "sections": [
#     {"id": "models", "name": "Configuration Models", "anchor": "MOD", "kind": "api"},
#     {"id": "settings", "name": "UpdateSettings", "anchor": "SET", "kind": "api"},
#     {"id": "loaders", "name": "load_raw_yaml / load_settings", "anchor": "LOD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Configuration models, parsing, and validation helpers.

Settings come from three places, highest priority first: ``UPDATEKIT_*``
environment variables (nested fields use ``__``, e.g.
``UPDATEKIT_HTTP__TIMEOUT_SEC``), an optional YAML file, and the defaults
declared on the models below.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .errors import ConfigError

__all__ = [
    "CommonResolverSettings",
    "GameBananaConfiguration",
    "HttpConfiguration",
    "LoggingConfiguration",
    "UpdateSettings",
    "load_raw_yaml",
    "load_settings",
]

DEFAULT_METADATA_FILE_NAME = "Sewer56.Update.Metadata.json"
_SOURCE_PATTERN = re.compile(r"^(?:(?P<type>[A-Za-z]+):)?(?P<id>\d+)$")


class CommonResolverSettings(BaseModel):
    """Settings shared by every source resolver."""

    metadata_file_name: str = Field(
        default=DEFAULT_METADATA_FILE_NAME,
        min_length=1,
        description="Name of the release metadata file published next to each package",
    )
    allow_prereleases: bool = Field(default=False, description="Report prerelease versions")

    model_config = {"validate_assignment": True}


class GameBananaConfiguration(BaseModel):
    """Identifies one GameBanana item hosting the package."""

    item_type: str = Field(default="Mod", min_length=1)
    item_id: int = Field(gt=0)

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, value: str) -> "GameBananaConfiguration":
        """Parse ``TYPE:ID`` (or a bare ``ID``, defaulting to ``Mod``)."""

        match = _SOURCE_PATTERN.match(value.strip())
        if match is None:
            raise ConfigError(f"Invalid GameBanana source '{value}'. Expected TYPE:ID, e.g. Mod:12345")
        try:
            return cls(item_type=match.group("type") or "Mod", item_id=int(match.group("id")))
        except ValidationError as exc:
            raise ConfigError(f"Invalid GameBanana source '{value}': {exc}") from exc


class HttpConfiguration(BaseModel):
    api_base_url: str = Field(default="https://api.gamebanana.com")
    timeout_sec: float = Field(default=30.0, gt=0, le=300)
    max_retry_seconds: int = Field(default=60, ge=0, le=3600)
    chunk_size: int = Field(default=262144, ge=1024)
    user_agent: str = Field(default="UpdateKit-PackageResolvers/1.0")

    model_config = {"validate_assignment": True}

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an http(s) URL")
        return value.rstrip("/")


class LoggingConfiguration(BaseModel):
    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=10, gt=0, description="Maximum size of rotated log files")
    retention_days: int = Field(default=30, ge=1, description="Retention period for log files")
    log_dir: Optional[Path] = Field(default=None, description="Directory for JSONL log files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class UpdateSettings(BaseSettings):
    """Top-level settings for resolver construction, HTTP and logging."""

    common: CommonResolverSettings = Field(default_factory=CommonResolverSettings)
    http: HttpConfiguration = Field(default_factory=HttpConfiguration)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)
    gamebanana: List[GameBananaConfiguration] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_prefix="UPDATEKIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values loaded from the YAML file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_raw_yaml(config_path: Path) -> Mapping[str, Any]:
    """Read ``config_path`` and return its root mapping."""

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file '{config_path}' contains invalid YAML") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration file must contain a mapping at the root")
    return data


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> UpdateSettings:
    """Build :class:`UpdateSettings` from an optional YAML file plus the environment.

    Args:
        config_path: YAML file to read; defaults only when ``None``.
        overrides: Values merged over the file's top-level keys (used by the CLI).

    Raises:
        ConfigError: If the file is missing, malformed or fails validation.
    """
    raw = dict(load_raw_yaml(config_path)) if config_path is not None else {}
    if overrides:
        raw.update(overrides)
    try:
        return UpdateSettings(**raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
