"""Find (and optionally delete) settings records still stored under legacy keys.

Records are migrated on first touch anyway; this is for cleaning up users who
never come back.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from settings_cloud.auth.keys import is_legacy_key
from settings_cloud.backups.store import SettingsStore
from settings_cloud.errors import BackendUnavailable

log = logging.getLogger(__name__)


@dataclass
class ScanReport:
    total: int = 0
    legacy_keys: List[str] = field(default_factory=list)
    deleted: int = 0
    failed: List[str] = field(default_factory=list)


async def scan_legacy(store: SettingsStore, delete_legacy: bool = False) -> ScanReport:
    """Report legacy keys; delete them when delete_legacy is set. Per-key delete failures are collected."""
    report = ScanReport()
    for key in await store.list_keys():
        report.total += 1
        if not is_legacy_key(key):
            continue
        report.legacy_keys.append(key)
        log.info("Found legacy entry: %s", key)
        if not delete_legacy:
            continue
        try:
            if await store.delete(key):
                report.deleted += 1
                log.info("Deleted: %s", key)
        except BackendUnavailable as e:
            log.error("Failed to delete %s: %s", key, e)
            report.failed.append(key)
    return report
