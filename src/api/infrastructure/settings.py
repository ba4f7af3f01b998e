"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        IDENTITY_DB_HOST: Database host (default: localhost)
        IDENTITY_DB_PORT: Database port (default: 5432)
        IDENTITY_DB_DATABASE: Database name (default: identity)
        IDENTITY_DB_USERNAME: Database user (default: identity)
        IDENTITY_DB_PASSWORD: Database password (required in production)
        IDENTITY_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        IDENTITY_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
        IDENTITY_DB_ECHO: Log every SQL statement (default: false)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="identity", description="Database name")
    username: str = Field(default="identity", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )
    echo: bool = Field(default=False, description="Echo SQL statements")

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class IdentitySettings(BaseSettings):
    """Behavior switches for the identity stores.

    Environment variables:
        IDENTITY_PERSIST_NORMALIZED_USER_NAME: Write the normalized user name
            to the database in set_normalized_user_name (default: false, the
            value is only set on the in-memory user)
        IDENTITY_LOG_LEVEL: Minimum structlog level, applied when the shared
            engine is first created (default: INFO)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    persist_normalized_user_name: bool = Field(
        default=False,
        description="Persist normalized user names set through the user store",
    )
    log_level: str = Field(default="INFO", description="Minimum log level")


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_identity_settings() -> IdentitySettings:
    """Get cached identity store settings."""
    return IdentitySettings()
