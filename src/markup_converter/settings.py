"""Environment overrides layered on top of ``config.toml``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import CONFIG_FILE, AppConfig, load_config
from .models import ConversionMode

ENV_PREFIX = "MUC_"


class Settings(BaseSettings):
    """Application runtime settings sourced from environment variables."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=".env", extra="ignore")

    config_path: Path = CONFIG_FILE
    enable_local_api: bool | None = None
    server_url: str | None = None
    mode: ConversionMode | None = None


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


def reload_settings() -> None:
    get_settings.cache_clear()


def apply_settings(config: AppConfig, settings: Settings) -> AppConfig:
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    if settings.server_url:
        config.remote.base_url = settings.server_url
    if settings.mode is not None:
        config.runtime.mode = settings.mode
    return config


def load_effective_config(path: Path | None = None, settings: Settings | None = None) -> AppConfig:
    settings = settings or get_settings()
    return apply_settings(load_config(path or settings.config_path), settings)


__all__ = ["ENV_PREFIX", "Settings", "apply_settings", "get_settings", "load_effective_config", "reload_settings"]
