"""Exception classes for credential synchronization."""

from typing import Optional


class CredSyncError(Exception):
    """Base exception for every fatal sync error."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        # Filled in by the executor when the error aborts a run
        self.report = None


class ConfigurationError(CredSyncError):
    """Raised when source or target configuration is missing or invalid."""
    pass


class SecurityError(ConfigurationError):
    """Raised when configuration input fails security validation."""
    pass


class EnvironmentVariableError(ConfigurationError):
    """Raised when environment variable substitution fails."""
    pass


class StoreConnectionError(CredSyncError):
    """Raised when an identity store cannot be opened."""

    def __init__(self, message: str, store: Optional[str] = None) -> None:
        """Initialize connection error.

        Args:
            message: Error message
            store: Which store failed ("source" or "target")
        """
        super().__init__(message)
        self.store = store

    def __str__(self) -> str:
        if self.store:
            return f"{self.message} | Store: {self.store}"
        return self.message


class UnsupportedBackendError(StoreConnectionError):
    """Raised when a store uses a database type that is not supported."""
    pass


class StoreQueryError(StoreConnectionError):
    """Raised when reading from or writing to an open store fails."""
    pass


class UnsupportedHashAlgorithm(CredSyncError):
    """Raised when a source password hash is not in the expected bcrypt encoding."""

    def __init__(self, message: str, username: Optional[str] = None) -> None:
        """Initialize hash error.

        Args:
            message: Error message
            username: Source account whose hash could not be transcoded
        """
        super().__init__(message)
        self.username = username


class ProvisioningError(CredSyncError):
    """Raised when the account creation command fails."""

    def __init__(
        self,
        message: str,
        username: Optional[str] = None,
        exit_status: Optional[int] = None,
        output: Optional[str] = None,
    ) -> None:
        """Initialize provisioning error.

        Args:
            message: Error message
            username: Account that could not be created
            exit_status: Exit status of the provisioning command
            output: Captured stdout/stderr of the provisioning command
        """
        super().__init__(message)
        self.username = username
        self.exit_status = exit_status
        self.output = output

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]
        if self.exit_status is not None:
            parts.append(f"Exit status: {self.exit_status}")
        if self.output:
            parts.append(f"Output: {self.output.strip()}")
        return " | ".join(parts)


class ConsistencyError(CredSyncError):
    """Raised when a write targets an account that no longer exists."""

    def __init__(self, message: str, username: Optional[str] = None) -> None:
        super().__init__(message)
        self.username = username
