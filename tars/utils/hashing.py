"""Content hashing for backup integrity."""

import hashlib


def sha256_hex(content: bytes) -> str:
    """Return the lowercase hex SHA256 digest of ``content``."""
    return hashlib.sha256(content).hexdigest()
