"""Creation of new MediaWiki accounts.

MediaWiki cannot take a pre-hashed password when an account is created, so
new accounts are made with MediaWiki's own ``createAndPromote.php``
maintenance script and a throwaway password. The real hash is written
afterwards by the executor.
"""

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import structlog

from credsync.config.models import ProvisioningConfig
from credsync.exceptions import ConfigurationError, ProvisioningError
from credsync.security.validation import sanitize_log_input, validate_username

logger = structlog.get_logger(__name__)

CREATE_SCRIPT = Path("maintenance") / "createAndPromote.php"


class AccountProvisioner(ABC):
    """Capability to create a new account with a plaintext password."""

    @abstractmethod
    def create_user_account(self, username: str, password: str) -> None:
        """Create an account.

        Raises:
            ProvisioningError: If the account could not be created
        """
        pass


class MediaWikiAccountProvisioner(AccountProvisioner):
    """Creates accounts by running ``php maintenance/createAndPromote.php``."""

    def __init__(self, config: ProvisioningConfig) -> None:
        """Initialize provisioner.

        Args:
            config: Provisioning configuration with the MediaWiki directory

        Raises:
            ConfigurationError: If no MediaWiki directory is configured
        """
        if config.mediawiki_path is None:
            raise ConfigurationError("provisioning.mediawiki_path is not set")
        self.config = config
        self.mediawiki_path = Path(config.mediawiki_path)

    def build_command(self, username: str, password: str) -> List[str]:
        """Build the argument list of the account creation command."""
        return [
            self.config.php_binary,
            str(self.mediawiki_path / CREATE_SCRIPT),
            "--conf",
            str(self.mediawiki_path / "LocalSettings.php"),
            username,
            password,
        ]

    def create_user_account(self, username: str, password: str) -> None:
        if not validate_username(username):
            raise ProvisioningError(
                f"Refusing to create account with invalid name {sanitize_log_input(username)!r}",
                username=username,
            )

        cmd = self.build_command(username, password)
        logger.info("Creating mediawiki user", username=sanitize_log_input(username))

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.timeout_seconds,
                shell=False,
            )
        except FileNotFoundError as e:
            raise ProvisioningError(
                f"Unable to run {self.config.php_binary}: {e}", username=username
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ProvisioningError(
                f"Account creation timed out after {self.config.timeout_seconds}s",
                username=username,
            ) from e

        if proc.returncode != 0:
            output = "\n".join(part for part in (proc.stdout, proc.stderr) if part)
            raise ProvisioningError(
                f"createAndPromote.php failed for user {username}",
                username=username,
                exit_status=proc.returncode,
                output=output,
            )
