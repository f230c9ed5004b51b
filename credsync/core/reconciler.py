"""Reconciliation of Joomla accounts against MediaWiki accounts."""

import secrets
from typing import Annotated, Callable, Dict, Iterable, List, Literal, Optional, Sequence, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from credsync.core.transcoder import is_tagged_hash, transcode
from credsync.exceptions import UnsupportedHashAlgorithm
from credsync.security.validation import sanitize_log_input
from credsync.stores.base import SourceCredentialRecord, TargetCredentialRecord

logger = structlog.get_logger(__name__)

DEFAULT_PASSWORD_BYTES = 8


class CreateAction(BaseModel):
    """Create a missing target account, then set its transcoded hash."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["create"] = "create"
    username: str
    generated_password: str = Field(repr=False)
    password_hash: str = Field(repr=False)


class UpdateAction(BaseModel):
    """Replace a stale target password hash."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["update"] = "update"
    username: str
    password_hash: str = Field(repr=False)


class NoOpAction(BaseModel):
    """Target account already has the right hash."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["noop"] = "noop"
    username: str


Action = Annotated[
    Union[CreateAction, UpdateAction, NoOpAction],
    Field(discriminator="kind"),
]


class SyncPlan(BaseModel):
    """Ordered actions for one run."""

    actions: List[Action] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)

    @property
    def creates(self) -> List[CreateAction]:
        return [a for a in self.actions if isinstance(a, CreateAction)]

    @property
    def updates(self) -> List[UpdateAction]:
        return [a for a in self.actions if isinstance(a, UpdateAction)]

    @property
    def has_changes(self) -> bool:
        return any(not isinstance(a, NoOpAction) for a in self.actions)

    def get_summary(self) -> Dict[str, int]:
        """Count actions by kind."""
        summary = {"create": 0, "update": 0, "noop": 0}
        for action in self.actions:
            summary[action.kind] += 1
        return summary


def generate_password(num_bytes: int = DEFAULT_PASSWORD_BYTES) -> str:
    """Random throwaway password for a new account (hex encoded)."""
    return secrets.token_hex(num_bytes)


class UserReconciler:
    """Decides, per Joomla account, whether MediaWiki needs a create, an update or nothing."""

    def __init__(
        self,
        password_generator: Optional[Callable[[], str]] = None,
        password_bytes: int = DEFAULT_PASSWORD_BYTES,
        canonicalize: Optional[Callable[[str], str]] = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            password_generator: Source of initial passwords for new accounts
            password_bytes: Random bytes per generated password when no
                generator is given
            canonicalize: Target name normalization applied when an account
                is created (e.g. MediaWiki turning ``john_doe`` into
                ``John doe``), so created accounts are found again
        """
        self.password_generator = password_generator or (
            lambda: generate_password(password_bytes)
        )
        self.canonicalize = canonicalize
        self._logger = logger.bind(reconciler="UserReconciler")

    def reconcile(
        self,
        source: Sequence[SourceCredentialRecord],
        target: Sequence[TargetCredentialRecord],
        exclusions: Iterable[str] = frozenset(),
    ) -> List[Action]:
        """Compute the actions that bring the target in line with the source.

        Actions follow the order of ``source``. Every source hash is
        transcoded before anything is returned, so a single bad hash fails
        the whole run before any action is applied.

        Args:
            source: Joomla accounts
            target: MediaWiki accounts
            exclusions: Joomla user names to skip (exact, case-sensitive)

        Returns:
            List of create, update and no-op actions

        Raises:
            UnsupportedHashAlgorithm: If a source hash is not ``$2y$`` bcrypt
        """
        excluded = frozenset(exclusions)
        actions: List[Action] = []

        for record in source:
            if record.username in excluded:
                self._logger.debug(
                    "Skipping Joomla user", username=sanitize_log_input(record.username)
                )
                continue

            try:
                new_hash = transcode(record.password_hash)
            except UnsupportedHashAlgorithm as e:
                e.username = record.username
                self._logger.error(
                    "Unsupported password hash",
                    username=sanitize_log_input(record.username),
                )
                raise

            match = self._find_target(record.username, target, self.canonicalize)

            if match is None:
                actions.append(
                    CreateAction(
                        username=record.username,
                        generated_password=self.password_generator(),
                        password_hash=new_hash,
                    )
                )
            elif new_hash != match.password_hash:
                if not is_tagged_hash(match.password_hash):
                    self._logger.debug(
                        "mediawiki user never synced", username=sanitize_log_input(match.username)
                    )
                actions.append(UpdateAction(username=match.username, password_hash=new_hash))
            else:
                self._logger.debug(
                    "Users in sync",
                    joomla_user=sanitize_log_input(record.username),
                    mediawiki_user=sanitize_log_input(match.username),
                )
                actions.append(NoOpAction(username=match.username))

        return actions

    def plan(
        self,
        source: Sequence[SourceCredentialRecord],
        target: Sequence[TargetCredentialRecord],
        exclusions: Iterable[str] = frozenset(),
    ) -> SyncPlan:
        """Reconcile and wrap the result in a :class:`SyncPlan`."""
        excluded = frozenset(exclusions)
        actions = self.reconcile(source, target, excluded)
        plan = SyncPlan(
            actions=actions,
            excluded=[r.username for r in source if r.username in excluded],
        )
        self._logger.info("Generated sync plan", **plan.get_summary())
        return plan

    @staticmethod
    def _find_target(
        username: str,
        target: Sequence[TargetCredentialRecord],
        canonicalize: Optional[Callable[[str], str]] = None,
    ) -> Optional[TargetCredentialRecord]:
        """First target record whose name matches case-insensitively.

        A record also matches when it carries the canonical form of the
        name, which is what the target stores for accounts created by a
        previous run.
        """
        names = {username.casefold()}
        if canonicalize is not None:
            names.add(canonicalize(username).casefold())
        for candidate in target:
            if candidate.username.casefold() in names:
                return candidate
        return None
