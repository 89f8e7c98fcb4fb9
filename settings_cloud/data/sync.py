"""Delta sync between a client's manifest and the server's data entries.

Server wins on equal versions: an upload is ignored when the server already
holds the key at a version the client has seen. Everything the client lacks
or holds at an older version or different checksum is sent back.
"""

import base64
import logging
from typing import Dict, List, Tuple

from settings_cloud.config import Settings
from settings_cloud.data.codec import compute_checksum, is_datastore_key, validate_key
from settings_cloud.data.models import (
    DataManifestEntry,
    DownloadEntry,
    SyncError,
    SyncRequest,
    SyncResponse,
    UploadResult,
)
from settings_cloud.data.store import DataStore
from settings_cloud.errors import BackendUnavailable, InvalidDataKey

log = logging.getLogger(__name__)


def max_value_size(key: str, settings: Settings) -> int:
    """Per-value size limit; dataStore/ keys have their own."""
    if is_datastore_key(key):
        return settings.max_datastore_key_size_bytes
    return settings.max_key_size_bytes


def visible_entries(entries: List[DataManifestEntry], settings: Settings) -> List[DataManifestEntry]:
    """Hide dataStore/ entries when datastore sync is disabled."""
    if settings.datastore_enabled:
        return entries
    return [e for e in entries if not is_datastore_key(e.key)]


async def delta_sync(
    store: DataStore, user_key: str, request: SyncRequest, settings: Settings
) -> SyncResponse:
    """Exchange entries with the client. Manifest read failures propagate; per-key failures are reported."""
    all_entries = await store.manifest(user_key)
    server_manifest = visible_entries(all_entries, settings)
    server_map = {e.key: e for e in all_entries}
    client_map = {e.key: e for e in request.client_manifest}
    errors: List[SyncError] = []

    # Downloads: server entries the client does not hold at the same version and checksum
    to_download = []
    for entry in server_manifest:
        client = client_map.get(entry.key)
        if client is not None and client.version >= entry.version and client.checksum == entry.checksum:
            continue
        to_download.append(entry.key)
    downloads: List[DownloadEntry] = []
    if to_download:
        try:
            for found in await store.get_many(user_key, to_download):
                downloads.append(
                    DownloadEntry(
                        key=found.key,
                        value=base64.b64encode(found.value).decode("ascii"),
                        version=found.version,
                        checksum=found.checksum,
                    )
                )
        except BackendUnavailable as e:
            log.error("Sync download failed: %s", e)
            errors.extend(SyncError(key=k, error="Failed to download") for k in to_download)

    # Uploads: validate, drop those the server dominates, enforce total quota
    # Hidden dataStore/ entries still count against the quota
    running_size = sum(e.size_bytes for e in all_entries)
    accepted: List[Tuple[str, bytes, str]] = []
    for upload in request.uploads:
        try:
            validate_key(upload.key)
        except InvalidDataKey as e:
            errors.append(SyncError(key=upload.key, error=str(e)))
            continue
        if not settings.datastore_enabled and is_datastore_key(upload.key):
            errors.append(SyncError(key=upload.key, error="DataStore sync is disabled"))
            continue
        limit = max_value_size(upload.key, settings)
        if len(upload.value) > limit:
            errors.append(
                SyncError(key=upload.key, error=f"Value exceeds {limit // 1024 // 1024}MB limit")
            )
            continue
        if compute_checksum(upload.value) != upload.checksum:
            errors.append(SyncError(key=upload.key, error="Checksum mismatch"))
            continue
        server = server_map.get(upload.key)
        client = client_map.get(upload.key)
        if server is not None and (client is None or client.version <= server.version):
            continue
        existing = server.size_bytes if server is not None else 0
        new_running = running_size - existing + len(upload.value)
        if new_running > settings.max_backup_size_bytes:
            errors.append(SyncError(key=upload.key, error="Total storage limit exceeded"))
            continue
        running_size = new_running
        accepted.append((upload.key, upload.value, upload.checksum))

    uploaded: List[UploadResult] = []
    updated: Dict[str, DataManifestEntry] = {}
    if accepted:
        sizes = {key: len(value) for key, value, _ in accepted}
        checksums = {key: checksum for key, _, checksum in accepted}
        try:
            saved = await store.save_many(user_key, accepted)
        except BackendUnavailable as e:
            log.error("Sync upload failed: %s", e)
            errors.extend(SyncError(key=k, error="Failed to save") for k, _, _ in accepted)
            saved = []
        for key, version, updated_at in saved:
            uploaded.append(UploadResult(key=key, version=version, checksum=checksums[key]))
            updated[key] = DataManifestEntry(
                key=key,
                version=version,
                checksum=checksums[key],
                size_bytes=sizes[key],
                updated_at=updated_at,
            )

    final_manifest = [updated.pop(e.key, e) for e in server_manifest]
    final_manifest.extend(updated.values())
    log.info(
        "delta_sync user_key=%s downloads=%d uploaded=%d errors=%d",
        user_key,
        len(downloads),
        len(uploaded),
        len(errors),
    )
    return SyncResponse(
        server_manifest=final_manifest,
        downloads=downloads,
        uploaded=uploaded,
        errors=errors,
    )
