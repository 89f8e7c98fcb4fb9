"""Value compression, checksums and key validation for the v2 datastore."""

import hashlib
import re
from typing import Tuple

import zstandard

from settings_cloud.errors import InvalidDataKey

CHECKSUM_BYTES = 8
MAX_KEY_NAME_LEN = 256
DATASTORE_PREFIX = "dataStore/"

_KEY_CHARS = re.compile(r"[A-Za-z0-9_\-./]+")
_READ_CHUNK = 65536


def compute_checksum(data: bytes) -> str:
    """Hex of the first 8 bytes of SHA-256(data)."""
    return hashlib.sha256(data).digest()[:CHECKSUM_BYTES].hex()


def compress(data: bytes, level: int = 3, enabled: bool = True) -> Tuple[bytes, bool]:
    """Return (stored bytes, compressed flag). Keeps data raw unless zstd makes it smaller."""
    if not enabled or not data:
        return data, False
    packed = zstandard.ZstdCompressor(level=level).compress(data)
    if len(packed) < len(data):
        return packed, True
    return data, False


def decompress(data: bytes, max_size: int) -> bytes:
    """Inflate a zstd frame, refusing output larger than max_size."""
    out = bytearray()
    with zstandard.ZstdDecompressor().stream_reader(data) as reader:
        while True:
            chunk = reader.read(_READ_CHUNK)
            if not chunk:
                break
            out += chunk
            if len(out) > max_size:
                raise ValueError(f"Decompressed value exceeds {max_size} bytes")
    return bytes(out)


def validate_key(key: str) -> None:
    """Raise InvalidDataKey unless key is 1-256 chars of [A-Za-z0-9_-./]."""
    if not key:
        raise InvalidDataKey("Key cannot be empty")
    if len(key) > MAX_KEY_NAME_LEN:
        raise InvalidDataKey(f"Key name exceeds {MAX_KEY_NAME_LEN} characters")
    if not _KEY_CHARS.fullmatch(key):
        raise InvalidDataKey(
            "Key contains invalid characters (allowed: alphanumeric, _, -, ., /)"
        )


def is_datastore_key(key: str) -> bool:
    return key.startswith(DATASTORE_PREFIX)
