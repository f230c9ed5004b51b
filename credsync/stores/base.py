"""Credential records and repository interfaces for the two identity stores."""

from abc import ABC, abstractmethod
from typing import List

from pydantic import BaseModel, ConfigDict


class CredentialRecord(BaseModel):
    """A user name and password hash read from a store."""

    model_config = ConfigDict(frozen=True)

    username: str
    password_hash: str


class SourceCredentialRecord(CredentialRecord):
    """Joomla account; ``password_hash`` is PHP bcrypt (``$2y$...``)."""


class TargetCredentialRecord(CredentialRecord):
    """MediaWiki account; ``password_hash`` is tagged (``:bcrypt:...``)."""


class SourceUserRepository(ABC):
    """Read access to the source user table."""

    @abstractmethod
    def list_all(self) -> List[SourceCredentialRecord]:
        """Read every user name and password hash from the source store."""
        pass


class TargetUserRepository(ABC):
    """Read/write access to the target user table."""

    @abstractmethod
    def list_all(self) -> List[TargetCredentialRecord]:
        """Read every user name and password hash from the target store."""
        pass

    @abstractmethod
    def set_password_hash(self, username: str, password_hash: str) -> None:
        """Replace the password hash of exactly one user.

        Args:
            username: Exact user name as stored
            password_hash: New tagged password hash

        Raises:
            ConsistencyError: If no user with that name exists
        """
        pass

    def canonical_username(self, username: str) -> str:
        """Name under which the store saves a newly created account."""
        return username
