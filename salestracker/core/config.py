"""Configuration management for Sales Tracker."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".sales-tracker"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_dir = get_config_dir() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    """Get the SQLite database file path."""
    return get_data_dir() / "sales.db"


class SettlementPolicy(BaseModel):
    """Rules the settlement engine applies to every cell."""

    # Shipping fee is charged per unit sold; False charges it once per line.
    shipping_per_unit: bool = True
    # Use the platform's payment-method defaults when no item override exists.
    payment_method_fallback: bool = False


class WebConfig(BaseModel):
    """Web API configuration."""

    host: str = "127.0.0.1"
    port: int = 5050


class LoaderConfig(BaseModel):
    """Snapshot loader configuration."""

    max_workers: int = 3


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str(get_config_dir() / ".env"),
        env_file_encoding="utf-8",
        env_prefix="SALES_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    settlement: SettlementPolicy = Field(default_factory=SettlementPolicy)
    web: WebConfig = Field(default_factory=WebConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)

    # Earliest year offered by the month picker
    first_selectable_year: int = 2020

    # Empty means the SQLite file in the data directory
    database_url: str = ""

    log_level: str = "INFO"
    debug_mode: bool = False

    def get_database_url(self) -> str:
        """Get the SQLAlchemy URL for the configured database."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{get_db_path()}"

    def save(self) -> None:
        """Save settings to the config file."""
        config_path = get_config_dir() / "settings.json"
        data = self.model_dump(mode="json")
        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from the config file or create defaults."""
        config_path = get_config_dir() / "settings.json"

        settings = cls()

        if config_path.exists():
            try:
                with open(config_path) as f:
                    data: dict[str, Any] = json.load(f)
                settings = cls.model_validate(data)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable settings file {config_path}: {e}")

        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from disk."""
    global _settings
    _settings = Settings.load()
    return _settings
