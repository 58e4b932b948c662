"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (MODCATALOG__REGISTRY__COMMUNITY=lethal-company)
  2. modcatalog.yaml        (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; every field has a default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


def _find_config_file() -> str | None:
    """Return the path of the first modcatalog.yaml found, or None."""
    candidates = [
        Path("modcatalog.yaml"),
        Path(platformdirs.user_config_dir("modcatalog")) / "modcatalog.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class RegistrySettings(BaseModel):
    base_url: str = "https://thunderstore.io"
    # Community whose catalog is mirrored into the snapshot
    community: str = "valheim"
    refresh_interval_hours: float = Field(default=1.0, gt=0)
    request_timeout_seconds: float = 300.0
    connect_timeout_seconds: float = 5.0


class ProfileSettings(BaseModel):
    default_community: str = "valheim"
    import_timeout_seconds: float = 20.0
    max_attempts: int = Field(default=5, ge=1)
    initial_backoff_seconds: float = 0.75
    backoff_multiplier: float = 1.8
    max_backoff_seconds: float = 5.0
    max_retry_after_seconds: float = 30.0


class ResolverSettings(BaseModel):
    metadata_ttl_seconds: int = 300


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: MODCATALOG__PROFILES__MAX_ATTEMPTS=3
        env_prefix="MODCATALOG__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    registry: RegistrySettings = RegistrySettings()
    profiles: ProfileSettings = ProfileSettings()
    resolver: ResolverSettings = ResolverSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
