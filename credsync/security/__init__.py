"""Security utilities for input validation and sanitization."""

from .validation import (
    mask_secret,
    sanitize_log_input,
    validate_file_path,
    validate_username,
)

__all__ = [
    "mask_secret",
    "sanitize_log_input",
    "validate_file_path",
    "validate_username",
]
