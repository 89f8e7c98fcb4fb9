"""FastAPI dependencies for auth."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from settings_cloud.auth.authorizer import authorize
from settings_cloud.config import get_settings
from settings_cloud.errors import Unauthorized

# Clients send the raw token or "Bearer <token>", so read the header directly
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)
log = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer "


def _strip_scheme(value: str) -> str:
    if value[: len(_BEARER_PREFIX)].lower() == _BEARER_PREFIX:
        return value[len(_BEARER_PREFIX):]
    return value


async def get_current_user_id(
    authorization: Annotated[Optional[str], Depends(authorization_header)],
) -> str:
    """Resolve the Authorization header to a user id; raise 401 otherwise."""
    settings = get_settings()
    token = _strip_scheme(authorization.strip()) if authorization else None
    try:
        user_id = authorize(
            token,
            allowed_user_ids=settings.allowed_user_ids,
            accept_legacy_secrets=settings.accept_legacy_secrets,
        )
    except Unauthorized:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    log.debug("Authenticated user %s", user_id)
    return user_id
