"""Identity store access for Joomla (source) and MediaWiki (target)."""

from .base import (
    SourceCredentialRecord,
    SourceUserRepository,
    TargetCredentialRecord,
    TargetUserRepository,
)
from .database import open_connection
from .joomla import JoomlaUserRepository
from .mediawiki import MediaWikiUserRepository

__all__ = [
    "JoomlaUserRepository",
    "MediaWikiUserRepository",
    "SourceCredentialRecord",
    "SourceUserRepository",
    "TargetCredentialRecord",
    "TargetUserRepository",
    "open_connection",
]
