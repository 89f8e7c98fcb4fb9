"""ETag handling for conditional settings reads."""

from typing import Optional, Union

from settings_cloud.backups.models import SettingsRecord


def etag(record: Union[SettingsRecord, int]) -> str:
    """Entity tag for a record (or a bare updated_at): updated_at in ms as a string."""
    updated_at = record.updated_at if isinstance(record, SettingsRecord) else record
    return str(updated_at)


def should_return_not_modified(request_etag: Optional[str], current_etag: str) -> bool:
    """True if the client's If-None-Match equals the current tag exactly."""
    return request_etag is not None and request_etag == current_etag
