"""v2 datastore SQLAlchemy model and Pydantic schemas."""

import base64
import binascii
from dataclasses import dataclass
from typing import List

from pydantic import BaseModel, field_validator
from sqlalchemy import BigInteger, Boolean, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from settings_cloud.db.session import Base


class DataEntryRow(Base):
    """One named value per user. user_key is the derived storage key, not the user id."""

    __tablename__ = "data_entries"

    user_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(256), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    compressed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checksum: Mapped[str] = mapped_column(String(16), nullable=False)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Uncompressed size; quota is counted on this
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


@dataclass(frozen=True)
class DataEntry:
    """Decompressed value with its metadata."""

    key: str
    value: bytes
    checksum: str
    version: int
    size_bytes: int
    updated_at: int


# Pydantic schemas for API
class DataManifestEntry(BaseModel):
    key: str
    version: int
    checksum: str
    size_bytes: int
    updated_at: int


class ManifestResponse(BaseModel):
    entries: List[DataManifestEntry]
    total_size: int


class DataWritten(BaseModel):
    """Response body for PUT /v2/data/{key}."""

    version: int
    checksum: str
    updated_at: int


class ClientManifestEntry(BaseModel):
    key: str
    version: int
    checksum: str


class UploadEntry(BaseModel):
    """Upload in a sync request. value is base64 on the wire."""

    key: str
    value: bytes
    checksum: str

    @field_validator("value", mode="before")
    @classmethod
    def _decode_value(cls, v):
        if isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError("value must be base64") from e
        return v


class SyncRequest(BaseModel):
    client_manifest: List[ClientManifestEntry]
    uploads: List[UploadEntry] = []


class DownloadEntry(BaseModel):
    key: str
    value: str  # base64
    version: int
    checksum: str


class UploadResult(BaseModel):
    key: str
    version: int
    checksum: str


class SyncError(BaseModel):
    key: str
    error: str


class SyncResponse(BaseModel):
    server_manifest: List[DataManifestEntry]
    downloads: List[DownloadEntry]
    uploaded: List[UploadResult]
    errors: List[SyncError]
