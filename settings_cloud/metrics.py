"""Usage metrics endpoint (disabled unless SETTINGS_CLOUD_METRICS_ENABLED)."""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from settings_cloud.backups.store import SettingsStore
from settings_cloud.config import get_settings
from settings_cloud.db.session import now_ms
from settings_cloud.dependencies import get_settings_store
from settings_cloud.errors import BackendUnavailable
from settings_cloud.limiter import limiter

router = APIRouter(tags=["metrics"])
log = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000
MS_PER_WEEK = 7 * MS_PER_DAY
MS_PER_MONTH = 30 * MS_PER_DAY

_START_TIME = time.time()


@router.get("/metrics")
@limiter.exempt
async def get_metrics(
    request: Request,
    store: Annotated[SettingsStore, Depends(get_settings_store)],
) -> dict:
    """Uptime and how many users stored settings in total and recently."""
    if not get_settings().metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    now = now_ms()
    try:
        counts = {
            "users_total": await store.count(),
            "users_day": await store.count(created_since=now - MS_PER_DAY),
            "users_week": await store.count(created_since=now - MS_PER_WEEK),
            "users_month": await store.count(created_since=now - MS_PER_MONTH),
        }
        connected = True
    except BackendUnavailable as e:
        log.warning("Metrics could not read user counts: %s", e)
        counts = dict.fromkeys(("users_total", "users_day", "users_week", "users_month"), 0)
        connected = False
    return {
        "uptime_seconds": int(time.time() - _START_TIME),
        **counts,
        "database_connected": connected,
        "timestamp": int(time.time()),
    }
