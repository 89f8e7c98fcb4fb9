"""Settings record SQLAlchemy model and API schemas."""

from dataclasses import dataclass

from pydantic import BaseModel
from sqlalchemy import BigInteger, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from settings_cloud.db.session import Base


class UserSettings(Base):
    """One row per user, addressed by derived storage key (never the raw user id)."""

    __tablename__ = "user_settings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    settings: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    # Milliseconds since epoch (UTC)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


@dataclass(frozen=True)
class SettingsRecord:
    """Stored settings blob with its timestamps."""

    storage_key: str
    blob: bytes
    created_at: int
    updated_at: int


class SettingsWritten(BaseModel):
    """Response body for a successful settings upload."""

    written: int
    created_at: int
    updated_at: int
