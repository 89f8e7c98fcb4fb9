"""Tests for the v2 DataStore."""

import pytest

from settings_cloud.data.codec import compute_checksum
from settings_cloud.data.store import DataStore

USER_KEY = "settings:0011223344556677"
QUOTA = 100_000


async def _put(store: DataStore, key: str, value: bytes, user_key: str = USER_KEY):
    return await store.save_with_quota_check(user_key, key, value, compute_checksum(value), QUOTA)


@pytest.mark.asyncio
async def test_get_missing(data_store: DataStore) -> None:
    assert await data_store.get(USER_KEY, "nope") is None
    assert await data_store.manifest(USER_KEY) == []


@pytest.mark.asyncio
async def test_save_and_get_round_trip(data_store: DataStore) -> None:
    """Values come back decompressed with their metadata."""
    value = b"compress me " * 500
    version, updated_at = await _put(data_store, "prefs", value)
    assert version == 1
    entry = await data_store.get(USER_KEY, "prefs")
    assert entry.value == value
    assert entry.version == 1
    assert entry.size_bytes == len(value)
    assert entry.checksum == compute_checksum(value)
    assert entry.updated_at == updated_at


@pytest.mark.asyncio
async def test_version_increments_on_overwrite(data_store: DataStore) -> None:
    await _put(data_store, "prefs", b"one")
    version, _ = await _put(data_store, "prefs", b"two")
    assert version == 2
    assert (await data_store.get(USER_KEY, "prefs")).value == b"two"


@pytest.mark.asyncio
async def test_quota_counts_other_keys_only(data_store: DataStore) -> None:
    """Overwriting a key does not count its old size against the quota."""
    assert await _put(data_store, "a", b"x" * 60_000) is not None
    assert await _put(data_store, "b", b"x" * 50_000) is None
    assert await data_store.get(USER_KEY, "b") is None
    assert await _put(data_store, "a", b"y" * 90_000) is not None
    assert await _put(data_store, "b", b"x" * 10_000) is not None


@pytest.mark.asyncio
async def test_quota_is_per_user(data_store: DataStore) -> None:
    await _put(data_store, "a", b"x" * 90_000)
    assert await _put(data_store, "a", b"x" * 90_000, user_key="settings:other") is not None


@pytest.mark.asyncio
async def test_manifest_and_get_many(data_store: DataStore) -> None:
    await _put(data_store, "b", b"bb")
    await _put(data_store, "a", b"a")
    manifest = await data_store.manifest(USER_KEY)
    assert [(e.key, e.size_bytes, e.version) for e in manifest] == [("a", 1, 1), ("b", 2, 1)]
    found = await data_store.get_many(USER_KEY, ["a", "b", "missing"])
    assert sorted(e.key for e in found) == ["a", "b"]


@pytest.mark.asyncio
async def test_save_many(data_store: DataStore) -> None:
    await _put(data_store, "a", b"old")
    saved = await data_store.save_many(
        USER_KEY,
        [("a", b"new", compute_checksum(b"new")), ("b", b"b", compute_checksum(b"b"))],
    )
    assert [(k, v) for k, v, _ in saved] == [("a", 2), ("b", 1)]
    assert (await data_store.get(USER_KEY, "a")).value == b"new"


@pytest.mark.asyncio
async def test_delete_and_delete_all(data_store: DataStore) -> None:
    await _put(data_store, "a", b"a")
    await _put(data_store, "b", b"b")
    await _put(data_store, "a", b"a", user_key="settings:other")
    assert await data_store.delete(USER_KEY, "a") is True
    assert await data_store.delete(USER_KEY, "a") is False
    assert await data_store.delete_all(USER_KEY) == 1
    assert await data_store.manifest(USER_KEY) == []
    assert len(await data_store.manifest("settings:other")) == 1


@pytest.mark.asyncio
async def test_uncompressed_store(session_factory) -> None:
    store = DataStore(session_factory, compression_enabled=False, compression_level=3)
    value = b"z" * 5_000
    await _put(store, "k", value)
    assert (await store.get(USER_KEY, "k")).value == value
