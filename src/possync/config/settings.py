"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteSettings(BaseSettings):
    """Remote store (REST backend) configuration."""

    model_config = SettingsConfigDict(env_prefix="REMOTE_")

    base_url: str = "http://localhost:8000/api"
    timeout: float = 10.0

    # Retry settings (transport errors only)
    max_retries: int = 3
    retry_delay: float = 0.5
    retry_multiplier: float = 2.0


class StorageSettings(BaseSettings):
    """Local durable storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "pos.db"

    # SQLite settings
    pool_size: int = 2
    busy_timeout: int = 30000  # ms
    synchronous: Literal["NORMAL", "FULL"] = "FULL"

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class ConnectivitySettings(BaseSettings):
    """Connectivity monitor configuration."""

    model_config = SettingsConfigDict(env_prefix="CONNECTIVITY_")

    debounce_seconds: float = 1.0
    probe_interval: float = 5.0
    probe_timeout: float = 2.0
    assume_online: bool = False  # Initial state before the first probe


class PosSettings(BaseSettings):
    """Point-of-sale behaviour."""

    model_config = SettingsConfigDict(env_prefix="POS_")

    tax_rate: float = 0.10
    cashier_id: int = 1
    cashier_name: str = "Admin"


class APISettings(BaseSettings):
    """Reference backend server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "POS Sync"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    connectivity: ConnectivitySettings = Field(default_factory=ConnectivitySettings)
    pos: PosSettings = Field(default_factory=PosSettings)
    api: APISettings = Field(default_factory=APISettings)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
