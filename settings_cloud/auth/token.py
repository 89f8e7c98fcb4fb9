"""Bearer token encoding: base64("<secret>:<user_id>").

Parsing only. Whether the secret is right is decided in authorizer.
"""

import base64
import binascii
from typing import Tuple

from settings_cloud.auth.keys import secret as derive_secret
from settings_cloud.errors import TokenDecodeError

_SEPARATOR = ":"
_USER_ID_MAX_LEN = 20  # u64 snowflake


def _valid_user_id(user_id: str) -> bool:
    return 0 < len(user_id) <= _USER_ID_MAX_LEN and user_id.isascii() and user_id.isdigit()


def encode(user_id: str, secret: str) -> str:
    """Build the bearer token for user_id and its secret."""
    if not _valid_user_id(user_id):
        raise ValueError(f"Invalid user id: {user_id!r}")
    raw = f"{secret}{_SEPARATOR}{user_id}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode(token: str) -> Tuple[str, bytes]:
    """Split a token into (user_id, provided secret bytes). Raises TokenDecodeError."""
    try:
        raw = base64.b64decode(token.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise TokenDecodeError("Invalid base64 token") from e
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TokenDecodeError("Invalid UTF-8 in token") from e
    parts = text.split(_SEPARATOR)
    if len(parts) != 2:
        raise TokenDecodeError(f"Expected 'secret:userId', got {len(parts)} parts")
    provided_secret, user_id = parts
    if not provided_secret:
        raise TokenDecodeError("Empty secret")
    if not _valid_user_id(user_id):
        raise TokenDecodeError("Invalid user id")
    return user_id, provided_secret.encode("utf-8")


def issue_token(user_id: str) -> str:
    """Token for a user id resolved by the login flow."""
    return encode(user_id, derive_secret(user_id))
