# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class StoreSettings(BaseSettings):
    """Event store settings (in-memory SQLite, persisted to a file)."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    data_file: Path = Field(
        default=Path("data/analytics.db"), description="SQLite file the store persists to"
    )
    persist_interval_seconds: float = Field(
        default=10.0, gt=0, description="Seconds between background persists"
    )
    table_name: str = Field(
        default="visits", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$", description="Events table name"
    )

    @property
    def data_file_path(self) -> Path:
        """Resolve data file to absolute path from project root."""
        if self.data_file.is_absolute():
            return self.data_file
        # Import here to avoid circular imports
        from sitepulse.utils.paths import get_project_root

        return get_project_root() / self.data_file


class ServerSettings(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=5055, description="Bind port")


class AnalyticsSettings(BaseSettings):
    """Query-side settings for reports, flow graphs and data management."""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    purge_token: str = Field(
        default="DELETE_ALL_DATA",
        min_length=1,
        description="Literal value required to erase all events",
    )
    flow_edge_limit: int = Field(
        default=80, ge=1, le=100, description="Maximum number of edges in the flow graph"
    )
    flow_default_layers: int = Field(
        default=5, ge=1, le=10, description="Default flow graph depth"
    )
    visitors_default_limit: int = Field(
        default=20, ge=1, le=100, description="Default size of the recent visitors listing"
    )
    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone for day/hour buckets (defaults to server local time)",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    store: StoreSettings = Field(default_factory=StoreSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
