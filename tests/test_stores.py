"""Tests for the Joomla and MediaWiki repositories over SQLite."""

import sqlite3
from unittest.mock import patch

import pytest

from credsync.config.models import DatabaseConfig, StoreBackend
from credsync.exceptions import ConsistencyError, StoreConnectionError, StoreQueryError
from credsync.stores.database import build_odbc_connection_string, open_connection
from credsync.stores.joomla import JoomlaUserRepository, decode_column
from credsync.stores.mediawiki import MediaWikiUserRepository

from tests.conftest import (
    BOB_HASH,
    BOB_MW_HASH,
    create_joomla_db,
    create_mediawiki_db,
    read_mediawiki_users,
)


def sqlite_config(path, **kwargs):
    return DatabaseConfig(backend=StoreBackend.SQLITE, path=path, max_retries=0, **kwargs)


class TestOpenConnection:
    """Test scoped connection handling."""

    def test_missing_sqlite_file(self, tmp_path):
        config = sqlite_config(tmp_path / "missing.sqlite")

        with pytest.raises(StoreConnectionError) as exc_info:
            with open_connection(config, "target"):
                pass

        assert exc_info.value.store == "target"
        assert not (tmp_path / "missing.sqlite").exists()

    def test_connection_closed_on_error(self, tmp_path):
        path = create_joomla_db(tmp_path / "j.sqlite", [])

        with pytest.raises(RuntimeError):
            with open_connection(sqlite_config(path), "source") as conn:
                raise RuntimeError("abort")

        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")

    def test_retries_before_giving_up(self, tmp_path):
        config = DatabaseConfig(
            backend=StoreBackend.SQLITE,
            path=tmp_path / "missing.sqlite",
            max_retries=2,
            retry_delay_seconds=0.0,
        )

        with patch(
            "credsync.stores.database.connect_sqlite",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ) as connect:
            with patch.dict(
                "credsync.stores.database.CONNECTORS",
                {StoreBackend.SQLITE: connect},
            ):
                with pytest.raises(StoreConnectionError):
                    with open_connection(config, "source"):
                        pass

        assert connect.call_count == 3

    def test_missing_odbc_driver_module(self):
        def missing_driver(cfg):
            raise ImportError("No module named 'pyodbc'")

        config = DatabaseConfig(backend=StoreBackend.MYSQL, host="db", database="joomla", max_retries=0)

        with patch.dict(
            "credsync.stores.database.CONNECTORS",
            {StoreBackend.MYSQL: missing_driver},
        ):
            with pytest.raises(StoreConnectionError, match="driver is not installed"):
                with open_connection(config, "source"):
                    pass


class TestOdbcConnectionString:
    """Test MySQL ODBC connection strings."""

    def test_full_string(self):
        config = DatabaseConfig(
            backend=StoreBackend.MYSQL,
            host="db.example.org",
            port=3307,
            database="wiki",
            user="wikiuser",
            password="s3cret;x",
        )

        result = build_odbc_connection_string(config)

        assert result.startswith("DRIVER={MySQL ODBC 8.0 Unicode Driver};")
        assert "SERVER=db.example.org;" in result
        assert "PORT=3307;" in result
        assert "DATABASE=wiki;" in result
        assert "UID=wikiuser;" in result
        assert "PWD={s3cret;x};" in result

    def test_without_credentials(self):
        config = DatabaseConfig(backend=StoreBackend.MYSQL, host="localhost", database="wiki")

        result = build_odbc_connection_string(config)

        assert "UID=" not in result
        assert "PWD=" not in result
        assert "PORT=" not in result


class TestJoomlaUserRepository:
    """Test reading Joomla users."""

    def test_list_all(self, tmp_path):
        path = create_joomla_db(
            tmp_path / "j.sqlite", [("bob", BOB_HASH), ("admin", BOB_HASH)], prefix="abc_"
        )

        with open_connection(sqlite_config(path), "source") as conn:
            records = JoomlaUserRepository(conn, "abc_").list_all()

        assert [(r.username, r.password_hash) for r in records] == [
            ("bob", BOB_HASH),
            ("admin", BOB_HASH),
        ]

    def test_decode_column(self):
        assert decode_column(b"J\xc3\xbcrgen") == "Jürgen"
        assert decode_column(memoryview(b"bob")) == "bob"
        assert decode_column(None) == ""
        assert decode_column("bob") == "bob"


class TestMediaWikiUserRepository:
    """Test reading and updating MediaWiki users."""

    def test_list_all_decodes_binary_columns(self, tmp_path):
        path = create_mediawiki_db(tmp_path / "w.sqlite", [("Bob", BOB_MW_HASH)])

        with open_connection(sqlite_config(path), "target") as conn:
            records = MediaWikiUserRepository(conn).list_all()

        assert [(r.username, r.password_hash) for r in records] == [("Bob", BOB_MW_HASH)]

    def test_set_password_hash_on_blob_name(self, tmp_path):
        path = create_mediawiki_db(tmp_path / "w.sqlite", [("Bob", ""), ("Alice", "x")])

        with open_connection(sqlite_config(path), "target") as conn:
            MediaWikiUserRepository(conn).set_password_hash("Bob", BOB_MW_HASH)

        assert read_mediawiki_users(path) == {"Bob": BOB_MW_HASH, "Alice": "x"}

    def test_set_password_hash_on_text_name(self, tmp_path):
        path = tmp_path / "w.sqlite"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE mw_user (user_name TEXT, user_password TEXT)")
        conn.execute("INSERT INTO mw_user VALUES ('Bob', '')")
        conn.commit()
        conn.close()

        with open_connection(sqlite_config(path), "target") as conn:
            MediaWikiUserRepository(conn, "mw_").set_password_hash("Bob", BOB_MW_HASH)

        assert read_mediawiki_users(path, prefix="mw_") == {"Bob": BOB_MW_HASH}

    def test_exact_name_match(self, tmp_path):
        path = create_mediawiki_db(tmp_path / "w.sqlite", [("Bob", "")])

        with open_connection(sqlite_config(path), "target") as conn:
            with pytest.raises(ConsistencyError) as exc_info:
                MediaWikiUserRepository(conn).set_password_hash("bob", BOB_MW_HASH)

        assert exc_info.value.username == "bob"
        assert read_mediawiki_users(path) == {"Bob": ""}

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("bob", "Bob"),
            ("john_doe", "John doe"),
            ("  anna  maria ", "Anna maria"),
            ("Zoë", "Zoë"),
            ("élodie", "Élodie"),
        ],
    )
    def test_canonical_username(self, name, expected):
        assert MediaWikiUserRepository(connection=None).canonical_username(name) == expected


class TestQueryErrors:
    """Test database errors on an open connection."""

    def test_joomla_missing_table(self, tmp_path):
        path = create_joomla_db(tmp_path / "j.sqlite", [("bob", BOB_HASH)], prefix="jos_")

        with open_connection(sqlite_config(path), "source") as conn:
            with pytest.raises(StoreQueryError) as exc_info:
                JoomlaUserRepository(conn, "abc_").list_all()

        assert exc_info.value.store == "source"
        assert "abc_users" in str(exc_info.value)

    def test_mediawiki_missing_table(self, tmp_path):
        path = create_mediawiki_db(tmp_path / "w.sqlite", [("Bob", "")])

        with open_connection(sqlite_config(path), "target") as conn:
            with pytest.raises(StoreQueryError) as exc_info:
                MediaWikiUserRepository(conn, "mw_").list_all()

        assert exc_info.value.store == "target"

    def test_rejected_update_is_rolled_back(self, tmp_path):
        path = create_mediawiki_db(tmp_path / "w.sqlite", [("Bob", ""), ("Alice", "x")])
        conn = sqlite3.connect(path)
        conn.execute(
            "CREATE TRIGGER read_only BEFORE UPDATE ON user "
            "BEGIN SELECT RAISE(ABORT, 'user table is read only'); END"
        )
        conn.commit()
        conn.close()

        with open_connection(sqlite_config(path), "target") as conn:
            repo = MediaWikiUserRepository(conn)
            with pytest.raises(StoreQueryError, match="read only"):
                repo.set_password_hash("Bob", BOB_MW_HASH)
            assert not conn.in_transaction

        assert read_mediawiki_users(path) == {"Bob": "", "Alice": "x"}

    def test_update_on_missing_table(self, tmp_path):
        path = create_mediawiki_db(tmp_path / "w.sqlite", [("Bob", "")])

        with open_connection(sqlite_config(path), "target") as conn:
            with pytest.raises(StoreQueryError):
                MediaWikiUserRepository(conn, "mw_").set_password_hash("Bob", BOB_MW_HASH)
