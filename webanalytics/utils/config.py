# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(default="analytics", description="Database name")
    schema_name: str = Field(default="analytics", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class ValkeySettings(BaseSettings):
    """Valkey (Redis-compatible) connection settings for the geo lookup cache."""

    model_config = SettingsConfigDict(env_prefix="VALKEY_")

    host: str = Field(default="localhost", description="Valkey host")
    port: int = Field(default=6379, description="Valkey port")
    password: Optional[str] = Field(default=None, description="Valkey password")
    db: int = Field(default=0, description="Valkey database number")
    ssl: bool = Field(default=False, description="Use SSL/TLS connection")

    @property
    def url(self) -> str:
        """Build Valkey connection URL."""
        scheme = "rediss" if self.ssl else "redis"
        if self.password:
            return f"{scheme}://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"{scheme}://{self.host}:{self.port}/{self.db}"


class GeoSettings(BaseSettings):
    """IP geolocation lookup settings.

    Lookups only happen when a new session is opened. The timeout is kept
    short because the lookup sits on the ingestion path.
    """

    model_config = SettingsConfigDict(env_prefix="GEO_")

    enabled: bool = Field(default=True, description="Enable IP geolocation lookups")
    base_url: str = Field(default="https://ipapi.co", description="Geolocation API base URL")
    timeout_seconds: float = Field(default=2.0, description="Lookup timeout in seconds")
    cache_enabled: bool = Field(
        default=False, description="Cache lookup results in Valkey (requires VALKEY_*)"
    )
    cache_ttl_hours: int = Field(default=24, description="TTL for cached lookups in hours")


class AnalyticsSettings(BaseSettings):
    """Ingestion and aggregation settings."""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    store: Literal["postgresql", "memory"] = Field(
        default="postgresql",
        description="Event store implementation (postgresql, memory)",
    )
    timezone: str = Field(
        default="UTC",
        description="Reference timezone for 'today' and time-series buckets",
    )
    query_timeout_seconds: float = Field(
        default=30.0,
        description="Default statement timeout for aggregation queries",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    valkey: ValkeySettings = Field(default_factory=ValkeySettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)
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
