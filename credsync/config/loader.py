"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import yaml
from pydantic import ValidationError

from credsync.config.models import SyncConfig
from credsync.config.php import load_joomla_database, load_mediawiki_database
from credsync.exceptions import (
    ConfigurationError,
    EnvironmentVariableError,
    SecurityError,
)
from credsync.security.validation import (
    sanitize_log_input,
    validate_environment_variable_name,
    validate_file_path,
)

DEFAULT_CONFIG_FILES = ("credsync.yaml", "credsync.yml", "config.yaml")

# Security: Allowlist of permitted environment variables
ALLOWED_ENV_VARS: Set[str] = {
    # Database credentials
    "JOOMLA_DB_HOST",
    "JOOMLA_DB_NAME",
    "JOOMLA_DB_USER",
    "JOOMLA_DB_PASSWORD",
    "MEDIAWIKI_DB_HOST",
    "MEDIAWIKI_DB_NAME",
    "MEDIAWIKI_DB_USER",
    "MEDIAWIKI_DB_PASSWORD",

    # Installation paths
    "JOOMLA_PATH",
    "MEDIAWIKI_PATH",
    "PHP_BINARY",

    # Logging
    "LOG_LEVEL",
    "LOG_FORMAT",

    # Sync behavior
    "DRY_RUN",

    # Common environment variables
    "HOME",
    "USER",
    "TMPDIR",
}


def _validate_env_var_name(var_name: str) -> None:
    """Validate that an environment variable is allowed.

    Raises:
        SecurityError: If the name is malformed or not in the allowlist
    """
    if not validate_environment_variable_name(var_name):
        raise SecurityError(
            f"Invalid environment variable name format: '{sanitize_log_input(var_name)}'"
        )

    if var_name not in ALLOWED_ENV_VARS:
        raise SecurityError(
            f"Unauthorized environment variable '{sanitize_log_input(var_name)}' is not in allowlist. "
            f"Allowed variables: {sorted(ALLOWED_ENV_VARS)}"
        )


class ConfigLoader:
    """Configuration loader with environment variable substitution."""

    # ${VAR_NAME} or ${VAR_NAME:default_value}
    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*?)(?::([^}]*))?\}')

    def __init__(self, require_env_vars: bool = True) -> None:
        """Initialize the configuration loader.

        Args:
            require_env_vars: Whether to require all environment variables to exist
                (if False, missing vars without defaults are left as-is)
        """
        self.require_env_vars = require_env_vars

    def load_raw(self, config_path: Path) -> Dict[str, Any]:
        """Read a YAML configuration file into a dictionary.

        Placeholders are substituted after parsing and only inside string
        values, so an environment value is never parsed as YAML.

        Raises:
            ConfigurationError: If the file is missing or not a YAML mapping
        """
        config_path = Path(config_path).expanduser().resolve()
        if not validate_file_path(str(config_path), allow_relative=False):
            raise SecurityError(
                f"Invalid or unsafe configuration file path: {sanitize_log_input(str(config_path))}"
            )
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            config_data = yaml.safe_load(config_path.read_text(encoding='utf-8'))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if config_data is None:
            return {}
        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration file must contain a YAML object")
        return self._substitute_env_vars(config_data)

    def load_config(self, config_path: Path) -> SyncConfig:
        """Load and validate configuration from a YAML file.

        Raises:
            ConfigurationError: If loading or validation fails
        """
        return self.validate(self.load_raw(config_path))

    def validate(self, config_data: Dict[str, Any]) -> SyncConfig:
        """Validate a configuration dictionary.

        Raises:
            ConfigurationError: If validation fails
        """
        try:
            return SyncConfig.model_validate(config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _substitute_env_vars(self, config_data: Any) -> Any:
        """Substitute ``${VAR}`` and ``${VAR:default}`` placeholders in string values.

        Raises:
            SecurityError: If a placeholder names a variable outside the allowlist
            EnvironmentVariableError: If a required environment variable is missing
        """
        missing_vars: List[str] = []
        security_errors: List[str] = []

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            try:
                _validate_env_var_name(var_name)
            except SecurityError as e:
                security_errors.append(str(e))
                return match.group(0)

            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            if self.require_env_vars:
                missing_vars.append(var_name)
            return match.group(0)

        def walk(value: Any) -> Any:
            if isinstance(value, str):
                return self.ENV_VAR_PATTERN.sub(replace_env_var, value)
            if isinstance(value, dict):
                return {key: walk(item) for key, item in value.items()}
            if isinstance(value, list):
                return [walk(item) for item in value]
            return value

        result = walk(config_data)

        if security_errors:
            raise SecurityError(f"Security validation failed: {'; '.join(security_errors)}")

        if missing_vars:
            if len(missing_vars) == 1:
                raise EnvironmentVariableError(
                    f"Required environment variable '{missing_vars[0]}' is not set"
                )
            raise EnvironmentVariableError(
                f"Required environment variables are not set: {', '.join(sorted(missing_vars))}"
            )

        return result


def find_config_file(search_dir: Optional[Path] = None) -> Optional[Path]:
    """Find a default configuration file in the given (or current) directory."""
    base = Path(search_dir) if search_dir else Path.cwd()
    for name in DEFAULT_CONFIG_FILES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def build_config(
    config_file: Optional[Path] = None,
    joomla_dir: Optional[Path] = None,
    mediawiki_dir: Optional[Path] = None,
    exclude_users: Iterable[str] = (),
    dry_run: bool = False,
    verbose: bool = False,
) -> SyncConfig:
    """Assemble the run configuration from a YAML file, installation directories and CLI flags.

    Installation directories override the ``source``/``target`` sections of
    the file. Exclusions from the command line are added to those in the file.

    Args:
        config_file: Optional YAML configuration file
        joomla_dir: Joomla installation directory (containing configuration.php)
        mediawiki_dir: MediaWiki installation directory (containing LocalSettings.php)
        exclude_users: Joomla user names to leave out
        dry_run: Whether to only report actions
        verbose: Whether to log at debug level

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the source or target cannot be determined
        UnsupportedBackendError: If an installation uses an unsupported database
    """
    loader = ConfigLoader()
    data: Dict[str, Any] = loader.load_raw(Path(config_file)) if config_file else {}

    try:
        if joomla_dir is not None:
            data["source"] = load_joomla_database(Path(joomla_dir)).model_dump()
        if mediawiki_dir is not None:
            data["target"] = load_mediawiki_database(Path(mediawiki_dir)).model_dump()
            provisioning = dict(data.get("provisioning") or {})
            provisioning["mediawiki_path"] = str(mediawiki_dir)
            data["provisioning"] = provisioning
    except ValidationError as e:
        raise ConfigurationError(f"Invalid installation settings: {e}") from e

    if "source" not in data:
        raise ConfigurationError(
            "Please use option -j to give directory of joomla containing configuration.php"
        )
    if "target" not in data:
        raise ConfigurationError(
            "Please use option -m to give directory of mediawiki containing LocalSettings.php"
        )

    data["exclude_users"] = list(data.get("exclude_users") or []) + list(exclude_users)
    if dry_run:
        data["dry_run"] = True
    if verbose:
        logging_section = dict(data.get("logging") or {})
        logging_section["level"] = "DEBUG"
        data["logging"] = logging_section

    config = loader.validate(data)
    if config.provisioning.mediawiki_path is None:
        raise ConfigurationError(
            "provisioning.mediawiki_path is required to create new accounts"
        )
    return config
