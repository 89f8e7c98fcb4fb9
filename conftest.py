"""Pytest configuration: set test env before any app imports so DB and limits use test values."""

import itertools
import os
import tempfile

import pytest
import pytest_asyncio

# Set before settings_cloud.db.session or settings_cloud.config are used
_tmp = tempfile.mkdtemp(prefix="settings_cloud_test_")
_db_path = os.path.join(_tmp, "test.db")
os.environ.setdefault("SETTINGS_CLOUD_DB_PATH", _db_path)
os.environ.setdefault("SETTINGS_CLOUD_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SETTINGS_CLOUD_LOG_LEVEL", "WARNING")

_user_ids = itertools.count(234567890123456789)


@pytest.fixture
def app_db_path() -> str:
    """Path of the SQLite file the app engine uses."""
    return os.environ["SETTINGS_CLOUD_DB_PATH"]


@pytest.fixture
def user_id() -> str:
    """A fresh Discord-style user id per test so tests sharing the app DB do not collide."""
    return str(next(_user_ids))


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Isolated engine per test; yields a get_session-style factory."""
    from settings_cloud.db.session import (
        create_engine_from_url,
        create_tables,
        make_session_factory,
    )

    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await create_tables(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def settings_store(session_factory):
    from settings_cloud.backups.store import SettingsStore

    return SettingsStore(session_factory)


@pytest.fixture
def data_store(session_factory):
    from settings_cloud.data.store import DataStore

    return DataStore(session_factory, compression_enabled=True, compression_level=3)
