"""Configuration models for credsync."""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator


class StoreBackend(str, Enum):
    """Supported database backends."""
    MYSQL = "mysql"
    SQLITE = "sqlite"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output formats."""
    JSON = "json"
    TEXT = "text"


class DatabaseConfig(BaseModel):
    """Connection settings for one identity store."""

    backend: StoreBackend = Field(
        ...,
        description="Database backend of the store"
    )
    host: Optional[str] = Field(
        None,
        description="MySQL server host name"
    )
    port: Optional[int] = Field(
        None,
        description="MySQL server port (driver default if not set)",
        ge=1,
        le=65535
    )
    database: Optional[str] = Field(
        None,
        description="MySQL database name"
    )
    user: Optional[str] = Field(
        None,
        description="MySQL user name"
    )
    password: SecretStr = Field(
        SecretStr(""),
        description="MySQL password"
    )
    path: Optional[Path] = Field(
        None,
        description="SQLite database file"
    )
    table_prefix: str = Field(
        "",
        description="Prefix of the user table (Joomla dbprefix, MediaWiki $wgDBprefix)"
    )
    odbc_driver: str = Field(
        "MySQL ODBC 8.0 Unicode Driver",
        description="ODBC driver name used for MySQL connections"
    )
    connect_timeout_seconds: int = Field(
        30,
        description="Timeout for opening the connection in seconds",
        ge=1
    )
    max_retries: int = Field(
        3,
        description="Maximum number of retry attempts when opening the connection",
        ge=0
    )
    retry_delay_seconds: float = Field(
        1.0,
        description="Initial delay between connection retries in seconds",
        ge=0.0
    )

    @field_validator("table_prefix")
    @classmethod
    def validate_table_prefix(cls, v: str) -> str:
        """Table prefixes end up in SQL text, so only identifier characters are allowed."""
        if v and not v.replace("_", "").isalnum():
            raise ValueError("Table prefix may only contain letters, digits and underscores")
        return v

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "DatabaseConfig":
        """Check that the settings required by the backend are present."""
        if self.backend == StoreBackend.SQLITE and self.path is None:
            raise ValueError("SQLite stores require 'path'")
        if self.backend == StoreBackend.MYSQL and (not self.host or not self.database):
            raise ValueError("MySQL stores require 'host' and 'database'")
        return self


class ProvisioningConfig(BaseModel):
    """Settings for creating new MediaWiki accounts."""

    php_binary: str = Field(
        "php",
        description="PHP interpreter used to run MediaWiki maintenance scripts"
    )
    mediawiki_path: Optional[Path] = Field(
        None,
        description="MediaWiki installation directory (contains LocalSettings.php)"
    )
    timeout_seconds: int = Field(
        120,
        description="Timeout for one account creation command in seconds",
        ge=1
    )
    initial_password_bytes: int = Field(
        8,
        description="Random bytes in the throwaway password of a new account",
        ge=5,
        le=64
    )


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: LogLevel = Field(
        LogLevel.WARNING,
        description="Logging level"
    )
    format: LogFormat = Field(
        LogFormat.TEXT,
        description="Log output format"
    )


class SyncConfig(BaseModel):
    """Main synchronization configuration."""

    source: DatabaseConfig = Field(
        ...,
        description="Joomla database"
    )
    target: DatabaseConfig = Field(
        ...,
        description="MediaWiki database"
    )
    provisioning: ProvisioningConfig = Field(
        default_factory=ProvisioningConfig,
        description="Account creation settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration"
    )
    exclude_users: List[str] = Field(
        default_factory=list,
        description="Joomla user names that are never synchronized (exact match)"
    )
    dry_run: bool = Field(
        False,
        description="Compute and report actions without writing"
    )

    @property
    def exclusions(self) -> frozenset:
        """Exclusion set used by the reconciler."""
        return frozenset(self.exclude_users)
