"""Joomla user table access."""

from typing import Any, List

import structlog

from credsync.exceptions import StoreQueryError
from credsync.stores.base import SourceCredentialRecord, SourceUserRepository

logger = structlog.get_logger(__name__)


def decode_column(value: Any) -> str:
    """Return a text column value; binary columns are decoded as UTF-8."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if value is None:
        return ""
    return str(value)


class JoomlaUserRepository(SourceUserRepository):
    """Reads user names and bcrypt hashes from ``<prefix>users``."""

    def __init__(self, connection: Any, table_prefix: str = "") -> None:
        """Initialize repository.

        Args:
            connection: Open DB-API connection to the Joomla database
            table_prefix: Joomla ``dbprefix`` (e.g. ``jos_``)
        """
        self.connection = connection
        self.table = f"{table_prefix}users"
        self._logger = logger.bind(table=self.table)

    def list_all(self) -> List[SourceCredentialRecord]:
        try:
            cursor = self.connection.cursor()
            try:
                cursor.execute(f"SELECT username, password FROM {self.table}")
                rows = cursor.fetchall()
            finally:
                cursor.close()
        except Exception as e:
            self._logger.error("Failed to read Joomla users", error=str(e))
            raise StoreQueryError(
                f"Unable to read Joomla users from {self.table}: {e}", store="source"
            ) from e

        records = [
            SourceCredentialRecord(
                username=decode_column(username),
                password_hash=decode_column(password),
            )
            for username, password in rows
        ]
        self._logger.info("Read Joomla users", count=len(records))
        return records
