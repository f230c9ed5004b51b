"""Joomla to MediaWiki credential synchronization.

Reads Joomla accounts and bcrypt password hashes and reconciles them into a
MediaWiki user table so users can log in to both with the same password.
"""

__version__ = "0.1.0"

from credsync.core.executor import SyncExecutor, SyncReport
from credsync.core.reconciler import UserReconciler, SyncPlan
from credsync.core.transcoder import transcode

__all__ = [
    "SyncExecutor",
    "SyncReport",
    "SyncPlan",
    "UserReconciler",
    "transcode",
    "__version__",
]
