#!/usr/bin/env python3
"""Scan the settings database for records stored under legacy CRC32 keys.
Run from repo root: python scripts/migrate_legacy_users.py [--delete-legacy]
Without --delete-legacy this is a dry run. Uses SETTINGS_CLOUD_* env for the database."""

import asyncio
import logging
import os
import sys

# Run from repo root so settings_cloud can be found
repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, repo_root)

from settings_cloud.backups.store import SettingsStore
from settings_cloud.db.session import dispose_engine, init_db
from settings_cloud.errors import BackendUnavailable
from settings_cloud.legacy_scan import scan_legacy

log = logging.getLogger("settings_cloud.scripts.migrate_legacy_users")


async def run(delete_legacy: bool) -> int:
    await init_db()
    try:
        report = await scan_legacy(SettingsStore(), delete_legacy=delete_legacy)
    finally:
        await dispose_engine()

    print(f"Total entries:         {report.total}")
    print(f"Legacy entries found:  {len(report.legacy_keys)}")
    if delete_legacy:
        print(f"Legacy entries deleted: {report.deleted}")
        if report.failed:
            print(f"Failed to delete:       {len(report.failed)}")
            return 1
    elif report.legacy_keys:
        print()
        print("Legacy entries use the old CRC32 key format.")
        print("They are migrated automatically when users next access their settings.")
        print("To remove them now: python scripts/migrate_legacy_users.py --delete-legacy")
    if not report.legacy_keys:
        print("No legacy entries found - migration complete.")
    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    delete_legacy = "--delete-legacy" in sys.argv[1:]
    if not delete_legacy:
        print("Dry run - no data will be deleted (use --delete-legacy to delete).")
    try:
        code = asyncio.run(run(delete_legacy))
    except BackendUnavailable as e:
        print(f"Error: database unavailable: {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
