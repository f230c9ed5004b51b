"""Command-line interface for credsync."""

from .app import app

__all__ = ["app"]
