"""FastAPI providers for stores and the migration coordinator (override in tests)."""

from typing import Annotated

from fastapi import Depends

from settings_cloud.backups.migration import MigrationCoordinator
from settings_cloud.backups.store import SettingsStore
from settings_cloud.data.store import DataStore


def get_settings_store() -> SettingsStore:
    return SettingsStore()


def get_coordinator(
    store: Annotated[SettingsStore, Depends(get_settings_store)],
) -> MigrationCoordinator:
    return MigrationCoordinator(store)


def get_data_store() -> DataStore:
    return DataStore()
