"""Tests for the legacy key scan."""

import pytest

from settings_cloud.auth.keys import current_key, legacy_key
from settings_cloud.backups.store import SettingsStore
from settings_cloud.errors import BackendUnavailable
from settings_cloud.legacy_scan import scan_legacy


async def _seed(store: SettingsStore) -> None:
    await store.insert_if_absent(legacy_key("1"), b"old", 1)
    await store.insert_if_absent(legacy_key("2"), b"old", 1)
    await store.put(current_key("3"), b"new", 1024)


@pytest.mark.asyncio
async def test_dry_run_reports_only(settings_store: SettingsStore) -> None:
    await _seed(settings_store)
    report = await scan_legacy(settings_store)
    assert report.total == 3
    assert sorted(report.legacy_keys) == sorted([legacy_key("1"), legacy_key("2")])
    assert report.deleted == 0
    assert len(await settings_store.list_keys()) == 3


@pytest.mark.asyncio
async def test_delete_legacy(settings_store: SettingsStore) -> None:
    await _seed(settings_store)
    report = await scan_legacy(settings_store, delete_legacy=True)
    assert report.deleted == 2
    assert report.failed == []
    assert await settings_store.list_keys() == [current_key("3")]


@pytest.mark.asyncio
async def test_delete_failures_are_collected(session_factory) -> None:
    """One failing delete does not stop the scan."""

    class FailingStore(SettingsStore):
        async def delete(self, key: str) -> bool:
            if key == legacy_key("1"):
                raise BackendUnavailable("boom")
            return await super().delete(key)

    store = FailingStore(session_factory)
    await _seed(store)
    report = await scan_legacy(store, delete_legacy=True)
    assert report.deleted == 1
    assert report.failed == [legacy_key("1")]
