"""Domain errors raised by the auth, settings and data layers.

Routes translate these into HTTP responses; ``BackendUnavailable`` is handled
app-wide in ``settings_cloud.main``.
"""


class SettingsCloudError(Exception):
    """Base class for all service errors."""


class Unauthorized(SettingsCloudError):
    """Credential missing, malformed or wrong. Deliberately carries no reason."""

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class TokenDecodeError(SettingsCloudError):
    """Bearer token could not be parsed into (user_id, secret)."""


class SettingsNotFound(SettingsCloudError):
    """No settings record at the current or legacy key."""


class InvalidDataKey(SettingsCloudError):
    """v2 data key failed validation."""


class PayloadTooLarge(SettingsCloudError):
    """Payload exceeds the configured limit."""

    def __init__(self, size: int, limit: int, message: str = "Payload too large") -> None:
        super().__init__(message)
        self.size = size
        self.limit = limit


class BackendUnavailable(SettingsCloudError):
    """Storage backend I/O failed. Retryable by the caller."""
