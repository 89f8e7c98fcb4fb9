"""v2 routes: manifest, per-key data, delta sync."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from settings_cloud.auth.dependencies import get_current_user_id
from settings_cloud.auth.keys import current_key
from settings_cloud.backups.routes import OCTET_STREAM, declared_length_exceeds, require_octet_stream
from settings_cloud.config import get_settings
from settings_cloud.data.codec import compute_checksum, is_datastore_key, validate_key
from settings_cloud.data.models import DataWritten, ManifestResponse, SyncRequest, SyncResponse
from settings_cloud.data.store import DataStore
from settings_cloud.data.sync import delta_sync, max_value_size, visible_entries
from settings_cloud.dependencies import get_data_store
from settings_cloud.errors import InvalidDataKey
from settings_cloud.limiter import limiter

router = APIRouter(prefix="/v2", tags=["data"])
log = logging.getLogger(__name__)


def _check_key(key: str) -> None:
    """400 on invalid key, 403 on dataStore/ keys while datastore sync is disabled."""
    try:
        validate_key(key)
    except InvalidDataKey as e:
        log.warning("Rejected data key %r: %s", key, e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not get_settings().datastore_enabled and is_datastore_key(key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="DataStore sync is disabled",
        )


@router.get("/manifest", response_model=ManifestResponse)
@limiter.limit("120/minute")
async def get_manifest(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[DataStore, Depends(get_data_store)],
) -> ManifestResponse:
    """List the user's entries (metadata only) and their total size."""
    entries = visible_entries(await store.manifest(current_key(user_id)), get_settings())
    return ManifestResponse(entries=entries, total_size=sum(e.size_bytes for e in entries))


@router.get("/data/{key:path}")
@limiter.limit("600/minute")
async def get_data(
    key: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[DataStore, Depends(get_data_store)],
) -> Response:
    """Return one value; 304 when If-None-Match equals its checksum."""
    _check_key(key)
    entry = await store.get(current_key(user_id), key)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Key not found")
    if request.headers.get("if-none-match") == entry.checksum:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": entry.checksum})
    return Response(
        content=entry.value,
        media_type=OCTET_STREAM,
        headers={"ETag": entry.checksum, "X-Version": str(entry.version)},
    )


@router.put("/data/{key:path}", response_model=DataWritten)
@limiter.limit("600/minute")
async def put_data(
    key: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[DataStore, Depends(get_data_store)],
) -> DataWritten:
    """Store the raw body under key, within per-value and total limits."""
    _check_key(key)
    require_octet_stream(request)
    settings = get_settings()
    limit = max_value_size(key, settings)
    too_large = HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"Value exceeds {limit // 1024 // 1024}MB limit",
    )
    if declared_length_exceeds(request, limit):
        raise too_large
    body = await request.body()
    if len(body) > limit:
        raise too_large
    checksum = compute_checksum(body)
    saved = await store.save_with_quota_check(
        current_key(user_id), key, body, checksum, settings.max_backup_size_bytes
    )
    if saved is None:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Total storage limit exceeded",
        )
    version, updated_at = saved
    log.info("put_data user=%s key=%s size=%d version=%d", user_id, key, len(body), version)
    return DataWritten(version=version, checksum=checksum, updated_at=updated_at)


@router.delete("/data/{key:path}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("600/minute")
async def delete_data(
    key: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[DataStore, Depends(get_data_store)],
) -> Response:
    """Delete one key."""
    _check_key(key)
    if not await store.delete(current_key(user_id), key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Key not found")
    log.info("delete_data user=%s key=%s", user_id, key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sync", response_model=SyncResponse)
@limiter.limit("60/minute")
async def sync(
    request: Request,
    body: SyncRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[DataStore, Depends(get_data_store)],
) -> SyncResponse:
    """Delta sync: see settings_cloud.data.sync."""
    return await delta_sync(store, current_key(user_id), body, get_settings())
