"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (API_KEY, CACHE_TTL_SECONDS, UPDOWN__PROBER__TIMEOUT_SECONDS=3)
  2. updown.yaml            (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Only ``api_key`` is required; every other field has a sensible default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import AliasChoices, BaseModel, Field, SecretStr, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("updown")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")

DEFAULT_CACHE_TTL_SECONDS = 600


def _find_config_file() -> str | None:
    """Return the path of the first updown.yaml found, or None."""
    candidates = [
        Path("updown.yaml"),
        Path(platformdirs.user_config_dir("updown")) / "updown.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class ProberSettings(BaseModel):
    timeout_seconds: float = Field(default=5.0, gt=0)
    follow_redirects: bool = True
    user_agent: str = "updown/1.0"
    success_status_min: int = Field(default=200, ge=100, le=599)
    success_status_max: int = Field(default=399, ge=100, le=599)
    max_connections: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _check_success_range(self) -> ProberSettings:
        if self.success_status_min > self.success_status_max:
            raise ValueError("success_status_min must not exceed success_status_max")
        return self


class CacheSettings(BaseModel):
    backend: Literal["memory", "sqlite"] = "memory"
    db_path: str = _DEFAULT_DB_PATH
    cleanup_interval_seconds: int = Field(default=3600, gt=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: UPDOWN__SERVER__PORT=9090
        env_prefix="UPDOWN__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    # Top-level secrets keep their bare, unprefixed env names.
    api_key: SecretStr = Field(validation_alias=AliasChoices("api_key", "API_KEY"))
    cache_ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        ge=0,
        validation_alias=AliasChoices("cache_ttl_seconds", "CACHE_TTL_SECONDS"),
    )

    server: ServerSettings = ServerSettings()
    prober: ProberSettings = ProberSettings()
    cache: CacheSettings = CacheSettings()
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
