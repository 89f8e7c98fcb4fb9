"""Derive storage keys and auth secrets from a Discord user id.

Two generations exist. The legacy scheme (CRC32) is only kept so that records
and tokens issued before the switch to SHA-256 keep working until migrated.
"""

import hashlib
import zlib

KEY_PREFIX = "settings:"

# CRC32 rendered in decimal is at most 10 digits (2**32 - 1)
_LEGACY_DIGITS_MAX = 10


def _user_bytes(user_id: str) -> bytes:
    return str(user_id).encode("utf-8")


def legacy_key(user_id: str) -> str:
    """Legacy storage key: settings:<CRC32 as unsigned decimal>."""
    return f"{KEY_PREFIX}{zlib.crc32(_user_bytes(user_id))}"


def current_key(user_id: str) -> str:
    """Current storage key: settings:<hex of first 8 bytes of SHA-256>."""
    digest = hashlib.sha256(_user_bytes(user_id)).digest()
    return f"{KEY_PREFIX}{digest[:8].hex()}"


def secret(user_id: str) -> str:
    """Auth secret: hex of first 16 bytes of SHA-256("secret:" + user_id)."""
    digest = hashlib.sha256(b"secret:" + _user_bytes(user_id)).digest()
    return digest[:16].hex()


def legacy_secret(user_id: str) -> str:
    """Secret handed out before the SHA-256 switch (CRC32, 8 hex chars)."""
    return f"{zlib.crc32(_user_bytes(user_id)):08x}"


def is_legacy_key(key: str) -> bool:
    """True if key was produced by legacy_key (decimal suffix of 1-10 digits)."""
    if not key.startswith(KEY_PREFIX):
        return False
    suffix = key[len(KEY_PREFIX):]
    return 0 < len(suffix) <= _LEGACY_DIGITS_MAX and suffix.isascii() and suffix.isdigit()
