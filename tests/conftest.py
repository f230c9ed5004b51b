"""Shared pytest fixtures for the credential sync tests."""

import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from credsync.config.models import DatabaseConfig, ProvisioningConfig, StoreBackend, SyncConfig
from credsync.exceptions import ConsistencyError
from credsync.provisioning import AccountProvisioner
from credsync.stores.base import TargetCredentialRecord, TargetUserRepository

BOB_HASH = "$2y$10$abcdefghijklmnopqrstuv1234567890123456789012345"
BOB_MW_HASH = ":bcrypt:10$abcdefghijklmnopqrstuv$1234567890123456789012345"
ALICE_HASH = "$2y$12$ABCDEFGHIJKLMNOPQRSTUVaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
ALICE_MW_HASH = ":bcrypt:12$ABCDEFGHIJKLMNOPQRSTUV$aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"


def create_joomla_db(path: Path, users: List[Tuple[str, str]], prefix: str = "jos_") -> Path:
    """Create a SQLite database with a Joomla users table."""
    conn = sqlite3.connect(path)
    conn.execute(
        f"CREATE TABLE {prefix}users (id INTEGER PRIMARY KEY, username TEXT, password TEXT)"
    )
    conn.executemany(f"INSERT INTO {prefix}users (username, password) VALUES (?, ?)", users)
    conn.commit()
    conn.close()
    return path


def create_mediawiki_db(path: Path, users: List[Tuple[str, str]], prefix: str = "") -> Path:
    """Create a SQLite database with a MediaWiki user table (binary name/password columns)."""
    conn = sqlite3.connect(path)
    conn.execute(
        f"CREATE TABLE {prefix}user ("
        "user_id INTEGER PRIMARY KEY, user_name BLOB NOT NULL UNIQUE, user_password BLOB NOT NULL)"
    )
    conn.executemany(
        f"INSERT INTO {prefix}user (user_name, user_password) VALUES (?, ?)",
        [(name.encode("utf-8"), password.encode("utf-8")) for name, password in users],
    )
    conn.commit()
    conn.close()
    return path


def read_mediawiki_users(path: Path, prefix: str = "") -> Dict[str, str]:
    conn = sqlite3.connect(path)
    rows = conn.execute(f"SELECT user_name, user_password FROM {prefix}user").fetchall()
    conn.close()
    return {
        bytes(name).decode() if isinstance(name, bytes) else name:
        bytes(password).decode() if isinstance(password, bytes) else password
        for name, password in rows
    }


class InMemoryTargetRepository(TargetUserRepository):
    """Target repository backed by a list, for executor and reconciler tests."""

    def __init__(self, records: Optional[List[TargetCredentialRecord]] = None) -> None:
        self.records = list(records or [])
        self.writes: List[Tuple[str, str]] = []

    def list_all(self) -> List[TargetCredentialRecord]:
        return list(self.records)

    def set_password_hash(self, username: str, password_hash: str) -> None:
        for index, record in enumerate(self.records):
            if record.username == username:
                self.records[index] = TargetCredentialRecord(
                    username=username, password_hash=password_hash
                )
                self.writes.append((username, password_hash))
                return
        raise ConsistencyError(f"mediawiki user {username} does not exist", username=username)


class RecordingProvisioner(AccountProvisioner):
    """Provisioner that adds the account to an in-memory target, like createAndPromote.php."""

    def __init__(self, target: Optional[InMemoryTargetRepository] = None) -> None:
        self.target = target
        self.created: List[Tuple[str, str]] = []

    def create_user_account(self, username: str, password: str) -> None:
        self.created.append((username, password))
        if self.target is not None:
            self.target.records.append(
                TargetCredentialRecord(
                    username=self.target.canonical_username(username),
                    password_hash=":pbkdf2:initial",
                )
            )


@pytest.fixture
def target_repo():
    return InMemoryTargetRepository()


@pytest.fixture
def provisioner(target_repo):
    return RecordingProvisioner(target_repo)


@pytest.fixture
def mediawiki_dir(tmp_path):
    """MediaWiki installation directory with a LocalSettings.php."""
    directory = tmp_path / "mediawiki"
    (directory / "maintenance").mkdir(parents=True)
    (directory / "LocalSettings.php").write_text("<?php\n$wgDBtype = \"sqlite\";\n")
    return directory


@pytest.fixture
def make_config(tmp_path, mediawiki_dir):
    """Build a SyncConfig over two SQLite files."""

    def _make(
        source_users: List[Tuple[str, str]],
        target_users: List[Tuple[str, str]],
        **overrides,
    ) -> SyncConfig:
        source_path = create_joomla_db(tmp_path / "joomla.sqlite", source_users)
        target_path = create_mediawiki_db(tmp_path / "wiki.sqlite", target_users)
        values = dict(
            source=DatabaseConfig(
                backend=StoreBackend.SQLITE, path=source_path, table_prefix="jos_", max_retries=0
            ),
            target=DatabaseConfig(backend=StoreBackend.SQLITE, path=target_path, max_retries=0),
            provisioning=ProvisioningConfig(mediawiki_path=mediawiki_dir),
        )
        values.update(overrides)
        return SyncConfig(**values)

    return _make
