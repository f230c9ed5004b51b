"""Application of sync actions to the MediaWiki store."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from credsync.core.reconciler import Action, CreateAction, NoOpAction, UpdateAction
from credsync.exceptions import CredSyncError
from credsync.provisioning import AccountProvisioner
from credsync.security.validation import mask_secret, sanitize_log_input
from credsync.stores.base import TargetUserRepository

logger = structlog.get_logger(__name__)


class SyncResult(BaseModel):
    """Outcome of one action."""

    username: str
    action: str
    success: bool
    applied: bool = False
    error_message: Optional[str] = None


class SyncReport(BaseModel):
    """Counts and per-action results of one run."""

    dry_run: bool
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0

    results: List[SyncResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated + self.unchanged + self.failed

    def record(self, action: Action, applied: bool) -> None:
        """Count a successfully handled action."""
        if isinstance(action, CreateAction):
            self.created += 1
        elif isinstance(action, UpdateAction):
            self.updated += 1
        else:
            self.unchanged += 1
        self.results.append(
            SyncResult(username=action.username, action=action.kind, success=True, applied=applied)
        )

    def record_failure(self, action: Action, error: Exception) -> None:
        """Count the action that aborted the run."""
        self.failed += 1
        self.results.append(
            SyncResult(
                username=action.username,
                action=action.kind,
                success=False,
                error_message=str(error),
            )
        )


class SyncExecutor:
    """Applies create/update actions in order, stopping at the first error."""

    def __init__(self, provisioner: AccountProvisioner) -> None:
        """Initialize sync executor.

        Args:
            provisioner: Capability used to create missing accounts
        """
        self.provisioner = provisioner
        self._logger = logger.bind(executor_type="SyncExecutor")

    def apply(
        self,
        actions: Sequence[Action],
        dry_run: bool,
        target: TargetUserRepository,
    ) -> SyncReport:
        """Apply actions to the target store.

        With ``dry_run`` nothing is written and nothing is provisioned, but
        the report is the same a live run would produce.

        Args:
            actions: Actions from the reconciler, in order
            dry_run: Whether to skip all writes
            target: Target store

        Returns:
            Report with created/updated/unchanged/failed counts

        Raises:
            CredSyncError: The first provisioning or consistency error. The
                partial report is attached as ``error.report``; actions
                applied before the error stay applied.
        """
        report = SyncReport(dry_run=dry_run)
        self._logger.info("Applying sync actions", total=len(actions), dry_run=dry_run)

        for action in actions:
            self._log_action(action, dry_run)
            try:
                if not dry_run:
                    self._apply_action(action, target)
            except CredSyncError as e:
                report.record_failure(action, e)
                report.completed_at = datetime.now(timezone.utc)
                e.report = report
                self._logger.error(
                    "Sync action failed",
                    action=action.kind,
                    username=sanitize_log_input(action.username),
                    error=sanitize_log_input(str(e)),
                )
                raise
            report.record(action, applied=not dry_run and not isinstance(action, NoOpAction))

        report.completed_at = datetime.now(timezone.utc)
        self._logger.info(
            "Sync actions applied",
            created=report.created,
            updated=report.updated,
            unchanged=report.unchanged,
            dry_run=dry_run,
        )
        return report

    def _apply_action(self, action: Action, target: TargetUserRepository) -> None:
        if isinstance(action, CreateAction):
            self.provisioner.create_user_account(action.username, action.generated_password)
            target.set_password_hash(
                target.canonical_username(action.username), action.password_hash
            )
        elif isinstance(action, UpdateAction):
            target.set_password_hash(action.username, action.password_hash)

    def _log_action(self, action: Action, dry_run: bool) -> None:
        """Log an action before it is applied (visible with --verbose)."""
        username = sanitize_log_input(action.username)
        if isinstance(action, CreateAction):
            self._logger.debug(
                "Creating mediawiki user",
                username=username,
                password=mask_secret(action.generated_password),
                password_hash=mask_secret(action.password_hash, visible=12),
                dry_run=dry_run,
            )
        elif isinstance(action, UpdateAction):
            self._logger.debug(
                "Updating mediawiki user password",
                username=username,
                password_hash=mask_secret(action.password_hash, visible=12),
                dry_run=dry_run,
            )
        else:
            self._logger.debug("mediawiki user in sync", username=username)
