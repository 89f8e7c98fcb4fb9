"""v2 datastore: named per-user values with versions and a total quota."""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select

from settings_cloud.config import get_settings
from settings_cloud.data.codec import compress, decompress
from settings_cloud.data.models import DataEntry, DataEntryRow, DataManifestEntry
from settings_cloud.db.session import (
    SessionFactory,
    dialect_insert,
    get_session,
    guarded_session,
    now_ms,
)

log = logging.getLogger(__name__)

_table = DataEntryRow.__table__
_CHUNK = 500  # stay under SQLite parameter limit


class DataStore:
    """Data entries addressed by (user storage key, entry key)."""

    def __init__(
        self,
        session_factory: SessionFactory = get_session,
        compression_enabled: Optional[bool] = None,
        compression_level: Optional[int] = None,
        max_value_size: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory
        self._compression_enabled = (
            settings.compression_enabled if compression_enabled is None else compression_enabled
        )
        self._compression_level = (
            settings.compression_level if compression_level is None else compression_level
        )
        self._max_value_size = max_value_size or max(
            settings.max_key_size_bytes, settings.max_datastore_key_size_bytes
        )

    def _session(self):
        return guarded_session(self._session_factory)

    def _to_entry(self, row) -> DataEntry:
        value = decompress(row.value, self._max_value_size) if row.compressed else row.value
        return DataEntry(
            key=row.key,
            value=value,
            checksum=row.checksum,
            version=row.version,
            size_bytes=row.size_bytes,
            updated_at=row.updated_at,
        )

    async def get(self, user_key: str, key: str) -> Optional[DataEntry]:
        """Return one entry or None."""
        async with self._session() as session:
            result = await session.execute(
                select(_table).where(_table.c.user_key == user_key, _table.c.key == key)
            )
            row = result.one_or_none()
        return self._to_entry(row) if row is not None else None

    async def get_many(self, user_key: str, keys: Sequence[str]) -> List[DataEntry]:
        """Return the entries that exist among keys."""
        rows = []
        async with self._session() as session:
            for i in range(0, len(keys), _CHUNK):
                part = list(keys[i : i + _CHUNK])
                result = await session.execute(
                    select(_table).where(_table.c.user_key == user_key, _table.c.key.in_(part))
                )
                rows.extend(result.all())
        return [self._to_entry(r) for r in rows]

    async def manifest(self, user_key: str) -> List[DataManifestEntry]:
        """Metadata of every entry, without values."""
        async with self._session() as session:
            result = await session.execute(
                select(
                    _table.c.key,
                    _table.c.version,
                    _table.c.checksum,
                    _table.c.size_bytes,
                    _table.c.updated_at,
                )
                .where(_table.c.user_key == user_key)
                .order_by(_table.c.key)
            )
            rows = result.all()
        return [
            DataManifestEntry(
                key=r.key,
                version=r.version,
                checksum=r.checksum,
                size_bytes=r.size_bytes,
                updated_at=r.updated_at,
            )
            for r in rows
        ]

    async def _upsert(self, session, user_key: str, key: str, value: bytes, checksum: str, now: int) -> int:
        stored, compressed = compress(value, self._compression_level, self._compression_enabled)
        insert = dialect_insert(session)
        stmt = insert(_table).values(
            user_key=user_key,
            key=key,
            value=stored,
            compressed=compressed,
            checksum=checksum,
            version=1,
            size_bytes=len(value),
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[_table.c.user_key, _table.c.key],
            set_={
                "value": stmt.excluded.value,
                "compressed": stmt.excluded.compressed,
                "checksum": stmt.excluded.checksum,
                "size_bytes": stmt.excluded.size_bytes,
                "updated_at": stmt.excluded.updated_at,
                "version": _table.c.version + 1,
            },
        ).returning(_table.c.version)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def save_with_quota_check(
        self, user_key: str, key: str, value: bytes, checksum: str, max_total: int
    ) -> Optional[Tuple[int, int]]:
        """
        Write one entry unless the user's total would exceed max_total.
        Returns (version, updated_at), or None when over quota.
        """
        now = now_ms()
        async with self._session() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(_table.c.size_bytes), 0)).where(
                    _table.c.user_key == user_key, _table.c.key != key
                )
            )
            others = int(result.scalar_one())
            if others + len(value) > max_total:
                log.info("Quota exceeded user_key=%s key=%s", user_key, key)
                return None
            version = await self._upsert(session, user_key, key, value, checksum, now)
        return version, now

    async def save_many(
        self, user_key: str, uploads: Iterable[Tuple[str, bytes, str]]
    ) -> List[Tuple[str, int, int]]:
        """Write (key, value, checksum) triples in one transaction. Returns (key, version, updated_at)."""
        now = now_ms()
        saved = []
        async with self._session() as session:
            for key, value, checksum in uploads:
                version = await self._upsert(session, user_key, key, value, checksum, now)
                saved.append((key, version, now))
        return saved

    async def delete(self, user_key: str, key: str) -> bool:
        """Delete one entry. True if it existed."""
        async with self._session() as session:
            result = await session.execute(
                delete(_table).where(_table.c.user_key == user_key, _table.c.key == key)
            )
            return result.rowcount > 0

    async def delete_all(self, user_key: str) -> int:
        """Delete every entry of a user. Returns how many were removed."""
        async with self._session() as session:
            result = await session.execute(delete(_table).where(_table.c.user_key == user_key))
            return result.rowcount
