"""Input validation and sanitization utilities."""

import re
from typing import Any

ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')


def sanitize_log_input(data: Any) -> Any:
    """Sanitize data before logging to prevent log injection attacks.

    Args:
        data: Data to be logged (string, dict, list, or other types)

    Returns:
        Sanitized data safe for logging
    """
    if isinstance(data, str):
        sanitized = data.replace('\n', '\\n').replace('\r', '\\r')
        sanitized = sanitized.replace('\t', '\\t')

        # Strip ANSI escape sequences so terminal output can't be manipulated
        sanitized = ANSI_ESCAPE.sub('', sanitized)

        if len(sanitized) > 1000:
            sanitized = sanitized[:997] + "..."

        return sanitized

    elif isinstance(data, dict):
        return {key: sanitize_log_input(value) for key, value in data.items()}

    elif isinstance(data, list):
        return [sanitize_log_input(item) for item in data]

    else:
        return sanitize_log_input(str(data))


def mask_secret(secret: str, visible: int = 4) -> str:
    """Mask a password or hash for display, keeping only a short prefix.

    Args:
        secret: Value to mask
        visible: Number of leading characters to keep

    Returns:
        Masked value such as ``:bcr****``
    """
    if not secret:
        return ""
    if len(secret) <= visible:
        return "*" * len(secret)
    return secret[:visible] + "*" * 4


def validate_file_path(file_path: str, allow_relative: bool = True) -> bool:
    """Validate file path for security vulnerabilities.

    Args:
        file_path: File path to validate
        allow_relative: Whether to allow relative paths

    Returns:
        True if file path is safe, False otherwise
    """
    if not isinstance(file_path, str) or not file_path.strip():
        return False

    normalized_path = file_path.strip()

    # Check for directory traversal attacks
    dangerous_patterns = ['../', '..\\', '/./', '/..', '\\..', '${']
    for pattern in dangerous_patterns:
        if pattern in normalized_path:
            return False

    if '\x00' in normalized_path:
        return False

    if not allow_relative and not (normalized_path.startswith('/') or ':\\' in normalized_path):
        return False

    if len(normalized_path) > 4096:
        return False

    dangerous_chars = ['<', '>', '|', '*', '?', '"']
    if any(char in normalized_path for char in dangerous_chars):
        return False

    return True


def validate_username(username: str, max_length: int = 255) -> bool:
    """Validate a username before handing it to an external command.

    Args:
        username: Account name
        max_length: Maximum allowed length

    Returns:
        True if the username is safe to pass as a command argument
    """
    if not isinstance(username, str) or not username.strip():
        return False

    if len(username) > max_length:
        return False

    # Control characters, and a leading dash that would read as an option
    if any(ord(char) < 32 or ord(char) == 127 for char in username):
        return False
    if username.startswith('-'):
        return False

    return True


def validate_environment_variable_name(var_name: str) -> bool:
    """Validate environment variable name format.

    Args:
        var_name: Environment variable name to validate

    Returns:
        True if variable name is valid, False otherwise
    """
    if not isinstance(var_name, str) or not var_name:
        return False

    # Letters, digits, and underscores only, cannot start with digit
    if not re.match(r'^[A-Za-z_][A-Za-z0-9_]*$', var_name):
        return False

    if len(var_name) > 255:
        return False

    return True
