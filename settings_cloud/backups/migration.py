"""Transparent legacy→current key migration on the request path.

Records written before the SHA-256 switch live under the CRC32 key. They are
moved on first touch: copy to the current key, then delete the legacy row.
Copy-before-delete keeps a crash between the two steps harmless (reads prefer
the current key, and the next touch retries the delete).
"""

import logging
from typing import Optional, Tuple

from settings_cloud.auth.keys import current_key, legacy_key
from settings_cloud.backups.models import SettingsRecord
from settings_cloud.backups.store import SettingsStore
from settings_cloud.errors import BackendUnavailable, SettingsNotFound

log = logging.getLogger(__name__)


def _legacy_key_if_different(user_id: str) -> Optional[str]:
    old = legacy_key(user_id)
    return old if old != current_key(user_id) else None


class MigrationCoordinator:
    """Resolves which key holds a user's settings and migrates legacy records."""

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    async def fetch(self, user_id: str) -> SettingsRecord:
        """Return the user's record, migrating a legacy one. Raises SettingsNotFound."""
        key = current_key(user_id)
        record = await self._store.get(key)
        if record is not None:
            return record
        old_key = _legacy_key_if_different(user_id)
        if old_key is None:
            raise SettingsNotFound()
        legacy = await self._store.get(old_key)
        if legacy is None:
            raise SettingsNotFound()
        return await self._migrate(user_id, legacy, key)

    async def fetch_updated_at(self, user_id: str) -> Tuple[int, bool]:
        """
        (updated_at, is_legacy) of the user's record without loading or migrating it.
        is_legacy is True when only the legacy key holds a record.
        """
        updated_at = await self._store.get_updated_at(current_key(user_id))
        if updated_at is not None:
            return updated_at, False
        old_key = _legacy_key_if_different(user_id)
        if old_key is not None:
            updated_at = await self._store.get_updated_at(old_key)
            if updated_at is not None:
                log.debug("Legacy record present, will migrate on next read or write")
                return updated_at, True
        raise SettingsNotFound()

    async def save(
        self, user_id: str, blob: bytes, size_limit: int
    ) -> Tuple[SettingsRecord, bool]:
        """Write under the current key and drop any legacy copy. Returns (record, created)."""
        record = await self._store.put(current_key(user_id), blob, size_limit)
        old_key = _legacy_key_if_different(user_id)
        if old_key is not None:
            await self._cleanup_legacy(old_key)
        # On update updated_at is always pushed past created_at
        return record, record.created_at == record.updated_at

    async def delete(self, user_id: str) -> None:
        """Delete current and legacy records. Raises SettingsNotFound if neither existed."""
        deleted = await self._store.delete(current_key(user_id))
        old_key = _legacy_key_if_different(user_id)
        if old_key is not None:
            try:
                deleted = await self._store.delete(old_key) or deleted
            except BackendUnavailable as e:
                if not deleted:
                    raise
                log.warning("Failed to delete legacy settings: %s", e)
        if not deleted:
            raise SettingsNotFound()

    async def _migrate(
        self, user_id: str, legacy: SettingsRecord, key: str
    ) -> SettingsRecord:
        log.info("Migrating settings for user %s to current key format", user_id)
        try:
            inserted = await self._store.insert_if_absent(key, legacy.blob, legacy.created_at)
            migrated = await self._store.get(key)
        except BackendUnavailable as e:
            log.warning("Failed to migrate legacy settings, serving legacy copy: %s", e)
            return legacy
        if migrated is None:
            # Deleted between copy and re-read
            return legacy
        if not inserted:
            log.info("Current record already present for user %s, keeping it", user_id)
        await self._cleanup_legacy(legacy.storage_key)
        return migrated

    async def _cleanup_legacy(self, old_key: str) -> None:
        try:
            if await self._store.delete(old_key):
                log.info("Removed legacy settings record")
        except BackendUnavailable as e:
            log.warning("Failed to clean up legacy settings: %s", e)
