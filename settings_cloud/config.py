"""Configuration from environment (no hardcoded secrets)."""

from pathlib import Path
from typing import FrozenSet, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings from env."""

    model_config = SettingsConfigDict(env_prefix="SETTINGS_CLOUD_", extra="ignore")

    # Database (database_url wins over db_path when set)
    db_path: Path = Path("/data/settings_cloud.db")
    database_url: str = ""
    db_timeout_seconds: float = 30.0

    # Size limits (bytes)
    max_backup_size_bytes: int = 62_914_560  # 60 MiB
    max_key_size_bytes: int = 1_048_576  # 1 MiB
    max_datastore_key_size_bytes: int = 10_485_760  # 10 MiB

    # v2 datastore
    compression_enabled: bool = True
    compression_level: int = 3
    datastore_enabled: bool = True

    # Auth. Comma-separated Discord user ids; empty = everyone may authenticate.
    discord_allowed_user_ids: str = ""
    accept_legacy_secrets: bool = True

    # CORS: comma-separated string so pydantic-settings does not JSON-decode it
    cors_origins: str = "*"

    rate_limit_enabled: bool = True
    metrics_enabled: bool = False
    api_root_redirect_url: str = ""

    # Server
    port: int = 8080

    # Logging (empty log_file = stderr only; level DEBUG|INFO|WARNING|ERROR)
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins as a list (split on comma)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()] or ["*"]

    @property
    def allowed_user_ids(self) -> Optional[FrozenSet[str]]:
        """Allow-listed user ids, or None when every user may authenticate."""
        ids = frozenset(
            u.strip() for u in self.discord_allowed_user_ids.split(",") if u.strip()
        )
        return ids or None

    @property
    def sqlalchemy_url(self) -> str:
        """Async SQLAlchemy URL for the settings database."""
        if self.database_url.strip():
            return self.database_url.strip()
        return f"sqlite+aiosqlite:///{self.db_path}"


def get_settings() -> Settings:
    """Return application settings."""
    return Settings()
