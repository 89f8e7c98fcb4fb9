"""Stateless bearer token verification."""

import hmac
import logging
from typing import AbstractSet, Optional

from settings_cloud.auth import keys
from settings_cloud.auth.token import decode
from settings_cloud.errors import TokenDecodeError, Unauthorized

log = logging.getLogger(__name__)


def authorize(
    token: Optional[str],
    allowed_user_ids: Optional[AbstractSet[str]] = None,
    accept_legacy_secrets: bool = True,
) -> str:
    """
    Return the user id proven by token, or raise Unauthorized.

    The secret is recomputed from the claimed user id and compared in constant
    time. Every failure raises the same Unauthorized so callers cannot tell a
    malformed token from a wrong secret or a user outside the allow-list.
    """
    if not token:
        log.debug("Missing token")
        raise Unauthorized()
    try:
        user_id, provided = decode(token)
    except TokenDecodeError as e:
        log.debug("Token decode failed: %s", e)
        raise Unauthorized() from None

    expected = keys.secret(user_id).encode("utf-8")
    ok = hmac.compare_digest(provided, expected)
    if not ok and accept_legacy_secrets:
        if hmac.compare_digest(provided, keys.legacy_secret(user_id).encode("utf-8")):
            log.warning(
                "User %s authenticated with legacy secret; they should re-authenticate",
                user_id,
            )
            ok = True
    if not ok:
        log.debug("Secret mismatch")
        raise Unauthorized()

    if allowed_user_ids is not None and user_id not in allowed_user_ids:
        log.debug("User not in allow-list")
        raise Unauthorized()
    return user_id
