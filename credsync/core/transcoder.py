"""Conversion of Joomla bcrypt hashes into MediaWiki's tagged hash format.

Joomla stores PHP ``password_hash`` output, e.g.
``$2y$10$<22 char salt><31 char digest>``. MediaWiki supports several hash
types and needs the algorithm as a ``:bcrypt:`` prefix, with ``$`` between the
salt and the digest. The hash itself is unchanged, so the user's password
verifies on both sides without ever being known.
"""

from credsync.exceptions import UnsupportedHashAlgorithm

BCRYPT_PREFIX = "$2y$"
SALT_LENGTH = 22
TARGET_ALGORITHM = "bcrypt"


def transcode(source_hash: str) -> str:
    """Convert a Joomla password hash into a MediaWiki password hash.

    Args:
        source_hash: Joomla bcrypt hash (``$2y$<cost>$<salt><digest>``)

    Returns:
        MediaWiki hash (``:bcrypt:<cost>$<salt>$<digest>``)

    Raises:
        UnsupportedHashAlgorithm: If the hash is not a ``$2y$`` bcrypt hash
    """
    if not source_hash.startswith(BCRYPT_PREFIX):
        raise UnsupportedHashAlgorithm(
            f"Unknown password hash found: {source_hash[:len(BCRYPT_PREFIX)]}..."
        )

    parts = source_hash.split("$")
    if len(parts) != 4:
        raise UnsupportedHashAlgorithm(
            f"Malformed bcrypt hash: expected 4 '$'-separated parts, got {len(parts)}"
        )

    _, _algorithm, cost, salt_and_hash = parts
    salt = salt_and_hash[:SALT_LENGTH]
    digest = salt_and_hash[SALT_LENGTH:]

    return f":{TARGET_ALGORITHM}:{cost}${salt}${digest}"


def is_tagged_hash(password_hash: str) -> bool:
    """Check whether a target hash carries a ``:<algo>:`` tag.

    Untagged values mean the account was never synced.
    """
    if not password_hash.startswith(":"):
        return False
    return password_hash.find(":", 1) > 1
