"""Single-key CRUD for settings records. Each call is its own short transaction."""

from typing import List, Optional

from sqlalchemy import case, delete, func, select

from settings_cloud.backups.models import SettingsRecord, UserSettings
from settings_cloud.db.session import (
    SessionFactory,
    dialect_insert,
    get_session,
    guarded_session,
    now_ms,
)
from settings_cloud.errors import PayloadTooLarge

_table = UserSettings.__table__


class SettingsStore:
    """Settings records addressed by an already-derived storage key."""

    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self._session_factory = session_factory

    def _session(self):
        return guarded_session(self._session_factory)

    async def get(self, key: str) -> Optional[SettingsRecord]:
        """Return the record at key or None."""
        async with self._session() as session:
            result = await session.execute(
                select(_table.c.settings, _table.c.created_at, _table.c.updated_at).where(
                    _table.c.id == key
                )
            )
            row = result.one_or_none()
        if row is None:
            return None
        return SettingsRecord(
            storage_key=key, blob=row[0], created_at=row[1], updated_at=row[2]
        )

    async def get_updated_at(self, key: str) -> Optional[int]:
        """Return updated_at at key without loading the blob."""
        async with self._session() as session:
            result = await session.execute(
                select(_table.c.updated_at).where(_table.c.id == key)
            )
            return result.scalar_one_or_none()

    async def put(self, key: str, blob: bytes, size_limit: int) -> SettingsRecord:
        """
        Insert or overwrite the blob at key in one upsert.

        created_at is only written on insert. updated_at is refreshed and always
        moves forward, even for two writes in the same millisecond.
        """
        if len(blob) > size_limit:
            raise PayloadTooLarge(len(blob), size_limit, "Settings are too large")
        now = now_ms()
        async with self._session() as session:
            insert = dialect_insert(session)
            stmt = insert(_table).values(
                id=key, settings=blob, created_at=now, updated_at=now
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[_table.c.id],
                set_={
                    "settings": stmt.excluded.settings,
                    "updated_at": case(
                        (_table.c.updated_at >= stmt.excluded.updated_at, _table.c.updated_at + 1),
                        else_=stmt.excluded.updated_at,
                    ),
                },
            ).returning(_table.c.created_at, _table.c.updated_at)
            result = await session.execute(stmt)
            created_at, updated_at = result.one()
        return SettingsRecord(
            storage_key=key, blob=blob, created_at=created_at, updated_at=updated_at
        )

    async def insert_if_absent(self, key: str, blob: bytes, created_at: int) -> bool:
        """Create a record at key (updated_at = now) unless one exists. True if inserted."""
        async with self._session() as session:
            insert = dialect_insert(session)
            stmt = (
                insert(_table)
                .values(id=key, settings=blob, created_at=created_at, updated_at=now_ms())
                .on_conflict_do_nothing(index_elements=[_table.c.id])
            )
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def delete(self, key: str) -> bool:
        """Delete the record at key. True if one existed."""
        async with self._session() as session:
            result = await session.execute(delete(_table).where(_table.c.id == key))
            return result.rowcount > 0

    async def count(self, created_since: Optional[int] = None) -> int:
        """Number of records, optionally only those created after created_since (ms)."""
        stmt = select(func.count()).select_from(_table)
        if created_since is not None:
            stmt = stmt.where(_table.c.created_at > created_since)
        async with self._session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def list_keys(self) -> List[str]:
        """All storage keys currently present."""
        async with self._session() as session:
            result = await session.execute(select(_table.c.id).order_by(_table.c.id))
            return list(result.scalars().all())
