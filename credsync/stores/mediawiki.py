"""MediaWiki user table access."""

from typing import Any, List

import structlog

from credsync.exceptions import ConsistencyError, StoreQueryError
from credsync.stores.base import TargetCredentialRecord, TargetUserRepository
from credsync.stores.joomla import decode_column

logger = structlog.get_logger(__name__)


class MediaWikiUserRepository(TargetUserRepository):
    """Reads and updates ``user_name``/``user_password`` in ``<prefix>user``."""

    def __init__(self, connection: Any, table_prefix: str = "") -> None:
        """Initialize repository.

        Args:
            connection: Open DB-API connection to the MediaWiki database
            table_prefix: MediaWiki ``$wgDBprefix``
        """
        self.connection = connection
        self.table = f"{table_prefix}user"
        self._logger = logger.bind(table=self.table)

    def list_all(self) -> List[TargetCredentialRecord]:
        try:
            cursor = self.connection.cursor()
            try:
                cursor.execute(f"SELECT user_name, user_password FROM {self.table}")
                rows = cursor.fetchall()
            finally:
                cursor.close()
        except Exception as e:
            self._logger.error("Failed to read mediawiki users", error=str(e))
            raise StoreQueryError(
                f"Unable to read mediawiki users from {self.table}: {e}", store="target"
            ) from e

        records = [
            TargetCredentialRecord(
                username=decode_column(name),
                password_hash=decode_column(password),
            )
            for name, password in rows
        ]
        self._logger.info("Read mediawiki users", count=len(records))
        return records

    def set_password_hash(self, username: str, password_hash: str) -> None:
        # user_name is a binary column; SQLite only matches a BLOB against a
        # BLOB parameter, so bind the name both as text and as bytes.
        try:
            cursor = self.connection.cursor()
            try:
                cursor.execute(
                    f"UPDATE {self.table} SET user_password = ? WHERE user_name IN (?, ?)",
                    (password_hash, username, username.encode("utf-8")),
                )
                affected = cursor.rowcount
            finally:
                cursor.close()
        except Exception as e:
            self.connection.rollback()
            self._logger.error("Failed to update mediawiki password", error=str(e))
            raise StoreQueryError(
                f"Unable to update password of mediawiki user {username}: {e}", store="target"
            ) from e

        if affected == 0:
            self.connection.rollback()
            raise ConsistencyError(
                f"mediawiki user {username} does not exist", username=username
            )
        if affected > 1:
            self.connection.rollback()
            raise ConsistencyError(
                f"mediawiki user name {username} matched {affected} rows", username=username
            )

        try:
            self.connection.commit()
        except Exception as e:
            self.connection.rollback()
            raise StoreQueryError(
                f"Unable to commit password of mediawiki user {username}: {e}", store="target"
            ) from e
        self._logger.debug("Updated mediawiki password", username=username)

    def canonical_username(self, username: str) -> str:
        """Apply MediaWiki's title normalization to a new account name.

        Underscores become spaces, surrounding whitespace is dropped and the
        first character is upper-cased.
        """
        name = " ".join(username.replace("_", " ").split())
        if not name:
            return name
        return name[0].upper() + name[1:]
