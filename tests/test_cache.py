"""Tests for settings ETags."""

from settings_cloud.backups.cache import etag, should_return_not_modified
from settings_cloud.backups.models import SettingsRecord


def test_etag_is_updated_at() -> None:
    record = SettingsRecord(storage_key="settings:x", blob=b"", created_at=1, updated_at=1700000000123)
    assert etag(record) == "1700000000123"
    assert etag(1700000000123) == "1700000000123"


def test_not_modified_only_on_exact_match() -> None:
    """Only an identical tag short-circuits; absent or different tags do not."""
    assert should_return_not_modified("123", "123") is True
    assert should_return_not_modified("124", "123") is False
    assert should_return_not_modified('"123"', "123") is False
    assert should_return_not_modified(None, "123") is False
