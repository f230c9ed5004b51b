"""Configuration package for credsync."""

from .models import (
    DatabaseConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ProvisioningConfig,
    StoreBackend,
    SyncConfig,
)
from .loader import ConfigLoader, build_config, find_config_file
from .php import load_joomla_database, load_mediawiki_database

__all__ = [
    "ConfigLoader",
    "DatabaseConfig",
    "LogFormat",
    "LoggingConfig",
    "LogLevel",
    "ProvisioningConfig",
    "StoreBackend",
    "SyncConfig",
    "build_config",
    "find_config_file",
    "load_joomla_database",
    "load_mediawiki_database",
]
