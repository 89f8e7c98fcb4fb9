"""v1 routes: settings backup HEAD/GET/PUT/DELETE and full account deletion."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from settings_cloud.auth.dependencies import get_current_user_id
from settings_cloud.auth.keys import current_key
from settings_cloud.backups.cache import etag, should_return_not_modified
from settings_cloud.backups.migration import MigrationCoordinator
from settings_cloud.backups.models import SettingsWritten
from settings_cloud.config import get_settings
from settings_cloud.data.store import DataStore
from settings_cloud.dependencies import get_coordinator, get_data_store
from settings_cloud.errors import PayloadTooLarge, SettingsNotFound
from settings_cloud.limiter import limiter

router = APIRouter(prefix="/v1", tags=["settings"])
log = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settings not found")


def require_octet_stream(request: Request) -> None:
    """Reject bodies that are not application/octet-stream with 415."""
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != OCTET_STREAM:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Content type must be application/octet-stream",
        )


def declared_length_exceeds(request: Request, limit: int) -> bool:
    """True if Content-Length already announces a body over limit."""
    try:
        return int(request.headers.get("content-length", "0")) > limit
    except ValueError:
        return False


@router.get("")
async def service_info() -> dict:
    """Public liveness info for clients probing the v1 API."""
    return {"status": "ok", "timestamp": int(time.time()), "service": "settings-cloud"}


@router.head("/settings", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("120/minute")
async def head_settings(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    coordinator: Annotated[MigrationCoordinator, Depends(get_coordinator)],
) -> Response:
    """Return the current ETag without the blob."""
    try:
        updated_at, _ = await coordinator.fetch_updated_at(user_id)
    except SettingsNotFound:
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"ETag": etag(updated_at)})


@router.get("/settings")
@limiter.limit("120/minute")
async def download_settings(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    coordinator: Annotated[MigrationCoordinator, Depends(get_coordinator)],
) -> Response:
    """
    Return the settings blob. With If-None-Match, only the timestamp is read
    first and a matching tag answers 304 without loading the blob. A record
    still under the legacy key is always migrated before tags are compared.
    """
    if_none_match = request.headers.get("if-none-match")
    try:
        if if_none_match is not None:
            updated_at, is_legacy = await coordinator.fetch_updated_at(user_id)
            current = etag(updated_at)
            if not is_legacy and should_return_not_modified(if_none_match, current):
                log.debug("download_settings not modified user=%s", user_id)
                return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": current})
        record = await coordinator.fetch(user_id)
    except SettingsNotFound:
        raise _not_found()
    if should_return_not_modified(if_none_match, etag(record)):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag(record)})
    log.info("download_settings user=%s size=%d", user_id, len(record.blob))
    return Response(content=record.blob, media_type=OCTET_STREAM, headers={"ETag": etag(record)})


@router.put("/settings")
@limiter.limit("60/minute")
async def upload_settings(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    coordinator: Annotated[MigrationCoordinator, Depends(get_coordinator)],
) -> JSONResponse:
    """Store the raw request body as the user's settings. 201 on first upload."""
    require_octet_stream(request)
    limit = get_settings().max_backup_size_bytes
    too_large = HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail="Settings are too large",
    )
    if declared_length_exceeds(request, limit):
        raise too_large
    body = await request.body()
    try:
        record, created = await coordinator.save(user_id, body, limit)
    except PayloadTooLarge:
        log.warning("upload_settings rejected user=%s size=%d limit=%d", user_id, len(body), limit)
        raise too_large
    log.info("upload_settings user=%s size=%d created=%s", user_id, len(body), created)
    payload = SettingsWritten(
        written=record.updated_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content=payload.model_dump(),
        headers={"ETag": etag(record)},
    )


@router.delete("/settings", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_settings(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    coordinator: Annotated[MigrationCoordinator, Depends(get_coordinator)],
) -> Response:
    """Delete the settings blob (current and legacy key)."""
    try:
        await coordinator.delete(user_id)
    except SettingsNotFound:
        raise _not_found()
    log.info("delete_settings user=%s", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("10/minute")
async def delete_all_user_data(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    coordinator: Annotated[MigrationCoordinator, Depends(get_coordinator)],
    data_store: Annotated[DataStore, Depends(get_data_store)],
) -> Response:
    """Delete settings and every v2 data entry of the user."""
    try:
        await coordinator.delete(user_id)
        had_settings = True
    except SettingsNotFound:
        had_settings = False
    removed = await data_store.delete_all(current_key(user_id))
    if not had_settings and removed == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No data stored")
    log.info("delete_all_user_data user=%s settings=%s data_entries=%d", user_id, had_settings, removed)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
