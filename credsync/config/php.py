"""Read database settings from Joomla and MediaWiki installation directories.

Both applications keep their settings in PHP files. Instead of executing
them, the scalar assignments (``public $host = 'localhost';`` in Joomla's
``configuration.php``, ``$wgDBserver = "localhost";`` in MediaWiki's
``LocalSettings.php``) are extracted with a regular expression. Anything that
is not a plain literal is ignored.
"""

import re
from pathlib import Path
from typing import Dict, Optional, Tuple

import structlog

from credsync.config.models import DatabaseConfig, StoreBackend
from credsync.exceptions import ConfigurationError, UnsupportedBackendError

logger = structlog.get_logger(__name__)

JOOMLA_CONFIG_FILE = "configuration.php"
MEDIAWIKI_CONFIG_FILE = "LocalSettings.php"

JOOMLA_BACKENDS = {
    "mysqli": StoreBackend.MYSQL,
    "mysql": StoreBackend.MYSQL,
    "pdomysql": StoreBackend.MYSQL,
}

MEDIAWIKI_BACKENDS = {
    "mysql": StoreBackend.MYSQL,
    "sqlite": StoreBackend.SQLITE,
}

ASSIGNMENT_PATTERN = re.compile(
    r"""^\s*(?:(?:public|var|static)\s+)*\$(?P<name>\w+)\s*=\s*
        (?P<value>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|[-\w.]+)\s*;""",
    re.MULTILINE | re.VERBOSE,
)
INTERPOLATION_PATTERN = re.compile(r"\{?\$(\w+)\}?")
DOUBLE_QUOTE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "$": "$", '"': '"', "\\": "\\"}


def _unquote(raw: str, variables: Dict[str, str]) -> str:
    """Turn a PHP literal into its string value."""
    if raw.startswith("'"):
        body = raw[1:-1]
        return re.sub(r"\\([\\'])", r"\1", body)

    if raw.startswith('"'):
        body = raw[1:-1]
        # Mark escaped dollars so interpolation leaves them alone
        body = body.replace("\\$", "\x00")
        body = INTERPOLATION_PATTERN.sub(
            lambda m: variables.get(m.group(1), m.group(0)), body
        )
        body = re.sub(
            r"\\(.)",
            lambda m: DOUBLE_QUOTE_ESCAPES.get(m.group(1), m.group(0)),
            body,
        )
        return body.replace("\x00", "$")

    return raw


def parse_php_assignments(
    content: str,
    variables: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Extract scalar variable assignments from PHP source.

    Args:
        content: PHP source text
        variables: Predefined variables available for string interpolation
            (e.g. MediaWiki's ``$IP``)

    Returns:
        Mapping of variable name (without ``$``) to string value. Later
        assignments win, as they would when PHP runs the file.
    """
    known = dict(variables or {})
    values: Dict[str, str] = {}
    for match in ASSIGNMENT_PATTERN.finditer(content):
        value = _unquote(match.group("value"), known)
        values[match.group("name")] = value
        known[match.group("name")] = value
    return values


def _read_config_file(base_dir: Path, filename: str, application: str) -> str:
    """Read a PHP configuration file from an installation directory.

    Raises:
        ConfigurationError: If the directory or file does not exist
    """
    config_file = Path(base_dir) / filename
    if not config_file.is_file():
        raise ConfigurationError(
            f"Unable to find {application} {filename} under {base_dir}"
        )
    try:
        return config_file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigurationError(f"Failed to read {config_file}: {e}") from e


def _split_host(host: str) -> Tuple[str, Optional[int]]:
    """Split ``host:port`` as accepted by Joomla and MediaWiki."""
    name, sep, port = host.rpartition(":")
    if sep and port.isdigit():
        return name, int(port)
    return host, None


def load_joomla_database(joomla_dir: Path) -> DatabaseConfig:
    """Build the source store configuration from a Joomla installation.

    Args:
        joomla_dir: Joomla base directory containing configuration.php

    Returns:
        Database configuration for the Joomla user table

    Raises:
        ConfigurationError: If configuration.php is missing or incomplete
        UnsupportedBackendError: If Joomla uses a database type other than MySQL
    """
    values = parse_php_assignments(
        _read_config_file(joomla_dir, JOOMLA_CONFIG_FILE, "Joomla")
    )

    dbtype = values.get("dbtype", "")
    backend = JOOMLA_BACKENDS.get(dbtype.lower())
    if backend is None:
        raise UnsupportedBackendError(f"Unknown database type {dbtype}", store="source")

    missing = [key for key in ("host", "db") if not values.get(key)]
    if missing:
        raise ConfigurationError(
            f"Joomla {JOOMLA_CONFIG_FILE} does not define: {', '.join(missing)}"
        )

    host, port = _split_host(values["host"])
    logger.debug("Read Joomla configuration", directory=str(joomla_dir), dbtype=dbtype)

    return DatabaseConfig(
        backend=backend,
        host=host,
        port=port,
        database=values["db"],
        user=values.get("user"),
        password=values.get("password", ""),
        table_prefix=values.get("dbprefix", ""),
    )


def load_mediawiki_database(mediawiki_dir: Path) -> DatabaseConfig:
    """Build the target store configuration from a MediaWiki installation.

    Args:
        mediawiki_dir: MediaWiki base directory containing LocalSettings.php

    Returns:
        Database configuration for the MediaWiki user table

    Raises:
        ConfigurationError: If LocalSettings.php is missing or incomplete
        UnsupportedBackendError: If MediaWiki uses neither MySQL nor SQLite
    """
    mediawiki_dir = Path(mediawiki_dir)
    values = parse_php_assignments(
        _read_config_file(mediawiki_dir, MEDIAWIKI_CONFIG_FILE, "mediawiki"),
        variables={"IP": str(mediawiki_dir)},
    )

    dbtype = values.get("wgDBtype", "")
    backend = MEDIAWIKI_BACKENDS.get(dbtype.lower())
    if backend is None:
        raise UnsupportedBackendError(f"Unknown database type {dbtype}", store="target")

    db_name = values.get("wgDBname")
    if not db_name:
        raise ConfigurationError(f"mediawiki {MEDIAWIKI_CONFIG_FILE} does not define $wgDBname")

    logger.debug("Read mediawiki configuration", directory=str(mediawiki_dir), dbtype=dbtype)

    if backend == StoreBackend.SQLITE:
        data_dir = values.get("wgSQLiteDataDir")
        if not data_dir:
            raise ConfigurationError(
                f"mediawiki {MEDIAWIKI_CONFIG_FILE} does not define $wgSQLiteDataDir"
            )
        return DatabaseConfig(
            backend=backend,
            path=Path(data_dir) / f"{db_name}.sqlite",
            table_prefix=values.get("wgDBprefix", ""),
        )

    host, port = _split_host(values.get("wgDBserver", "localhost"))
    return DatabaseConfig(
        backend=backend,
        host=host,
        port=port,
        database=db_name,
        user=values.get("wgDBuser"),
        password=values.get("wgDBpassword", ""),
        table_prefix=values.get("wgDBprefix", ""),
    )
