"""DB-API connection handling for SQLite and MySQL stores.

Both drivers use the ``?`` parameter style, so the repositories can share
their SQL. MySQL goes through ODBC (pyodbc); the import happens on first use
so SQLite-only installations don't need an ODBC driver manager.
"""

import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from tenacity import Retrying, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from credsync.config.models import DatabaseConfig, StoreBackend
from credsync.exceptions import StoreConnectionError, UnsupportedBackendError

logger = structlog.get_logger(__name__)


def connect_sqlite(config: DatabaseConfig) -> sqlite3.Connection:
    """Open an existing SQLite database file.

    The file is opened in read-write mode without ``create``, so a wrong path
    fails instead of silently creating an empty database.
    """
    uri = f"{config.path.resolve().as_uri()}?mode=rw"
    return sqlite3.connect(uri, uri=True, timeout=config.connect_timeout_seconds)


def build_odbc_connection_string(config: DatabaseConfig) -> str:
    """Build a MySQL ODBC connection string from the store configuration."""
    parts = [
        f"DRIVER={{{config.odbc_driver}}}",
        f"SERVER={config.host}",
        f"DATABASE={config.database}",
    ]
    if config.port:
        parts.append(f"PORT={config.port}")
    if config.user:
        parts.append(f"UID={config.user}")
    password = config.password.get_secret_value()
    if password:
        escaped = password.replace("}", "}}")
        parts.append(f"PWD={{{escaped}}}")
    parts.append("CHARSET=utf8mb4")
    return ";".join(parts) + ";"


def connect_mysql(config: DatabaseConfig) -> Any:
    """Open a MySQL connection through ODBC."""
    import pyodbc

    return pyodbc.connect(
        build_odbc_connection_string(config),
        autocommit=False,
        timeout=config.connect_timeout_seconds,
    )


CONNECTORS = {
    StoreBackend.SQLITE: connect_sqlite,
    StoreBackend.MYSQL: connect_mysql,
}


def _connect_with_retry(config: DatabaseConfig, store: str) -> Any:
    """Open a connection, retrying transient failures with exponential backoff."""
    connector = CONNECTORS.get(config.backend)
    if connector is None:
        raise UnsupportedBackendError(f"Unknown database type {config.backend}", store=store)

    log = logger.bind(store=store, backend=config.backend.value)

    try:
        for attempt in Retrying(
            stop=stop_after_attempt(config.max_retries + 1),
            wait=wait_exponential(multiplier=config.retry_delay_seconds, max=30.0),
            retry=retry_if_not_exception_type(ImportError),
            reraise=True,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    log.warning("Retrying database connection", attempt=attempt_number)
                return connector(config)
    except ImportError as e:
        raise StoreConnectionError(f"Database driver is not installed: {e}", store=store) from e
    except Exception as e:
        log.error("Failed to open database", error=str(e))
        raise StoreConnectionError(f"Unable to open {store} database: {e}", store=store) from e


@contextmanager
def open_connection(config: DatabaseConfig, store: str) -> Iterator[Any]:
    """Open a store connection and close it on every exit path.

    Args:
        config: Store configuration
        store: Store label used in errors and logs ("source" or "target")

    Yields:
        DB-API connection

    Raises:
        StoreConnectionError: If the connection cannot be opened
    """
    connection = _connect_with_retry(config, store)
    logger.debug("Opened database connection", store=store, backend=config.backend.value)
    try:
        yield connection
    finally:
        connection.close()
        logger.debug("Closed database connection", store=store)
