"""Factories that build repositories and sync components from configuration."""

from contextlib import ExitStack, contextmanager
from typing import Iterator, Optional, Tuple

import structlog

from credsync.config.models import SyncConfig
from credsync.core.executor import SyncExecutor
from credsync.core.reconciler import UserReconciler
from credsync.provisioning import AccountProvisioner, MediaWikiAccountProvisioner
from credsync.stores.base import SourceUserRepository, TargetUserRepository
from credsync.stores.database import open_connection
from credsync.stores.joomla import JoomlaUserRepository
from credsync.stores.mediawiki import MediaWikiUserRepository

logger = structlog.get_logger(__name__)


class RepositoryFactory:
    """Opens the Joomla and MediaWiki stores described by a configuration."""

    @staticmethod
    @contextmanager
    def open_repositories(
        config: SyncConfig,
    ) -> Iterator[Tuple[SourceUserRepository, TargetUserRepository]]:
        """Open both stores; connections are closed when the block exits.

        Args:
            config: Sync configuration

        Yields:
            ``(source, target)`` repositories

        Raises:
            StoreConnectionError: If either store cannot be opened
        """
        with ExitStack() as stack:
            source_conn = stack.enter_context(open_connection(config.source, "source"))
            target_conn = stack.enter_context(open_connection(config.target, "target"))
            yield (
                JoomlaUserRepository(source_conn, config.source.table_prefix),
                MediaWikiUserRepository(target_conn, config.target.table_prefix),
            )


class ComponentFactory:
    """Factory for creating sync components from configuration."""

    @staticmethod
    def create_provisioner(config: SyncConfig) -> AccountProvisioner:
        return MediaWikiAccountProvisioner(config.provisioning)

    @staticmethod
    def create_reconciler(
        config: SyncConfig,
        target: Optional[TargetUserRepository] = None,
    ) -> UserReconciler:
        """Build the reconciler, matching names the way the target stores them."""
        return UserReconciler(
            password_bytes=config.provisioning.initial_password_bytes,
            canonicalize=target.canonical_username if target is not None else None,
        )

    @staticmethod
    def create_sync_executor(config: SyncConfig) -> SyncExecutor:
        return SyncExecutor(ComponentFactory.create_provisioner(config))
