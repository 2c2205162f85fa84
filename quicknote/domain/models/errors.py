"""Error taxonomy for quicknote.

Every failure surfaced to the user is one of the exceptions below. Each
carries a human readable message and a RecoveryAction telling the
presentation layer which follow-up to offer.
"""

from enum import Enum
from typing import Optional


class RecoveryAction(Enum):
    """Follow-up offered to the user after a failed operation."""
    RETRY = "retry"
    RETRY_LATER = "retry_later"
    OPEN_SETTINGS = "open_settings"
    CHECK_CONNECTION = "check_connection"
    RESTART = "restart"

    @property
    def label(self) -> str:
        return _RECOVERY_LABELS[self]


_RECOVERY_LABELS = {
    RecoveryAction.RETRY: "Retry now",
    RecoveryAction.RETRY_LATER: "Retry later",
    RecoveryAction.OPEN_SETTINGS: "Open settings",
    RecoveryAction.CHECK_CONNECTION: "Check connection",
    RecoveryAction.RESTART: "Restart",
}


class QuickNoteError(Exception):
    """Base class for all quicknote errors."""

    default_recovery_action = RecoveryAction.RETRY

    def __init__(self, message: str, recovery_action: Optional[RecoveryAction] = None):
        super().__init__(message)
        self.message = message
        self._recovery_action = recovery_action

    @property
    def recovery_action(self) -> RecoveryAction:
        return self._recovery_action or self.default_recovery_action


class RateLimitedError(QuickNoteError):
    """Raised when admission control blocks a call or the API answers 429."""

    default_recovery_action = RecoveryAction.RETRY_LATER

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        limit: Optional[int] = None,
        remaining: Optional[int] = None,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.limit = limit
        self.remaining = remaining


class ApiError(QuickNoteError):
    """Raised for non-2xx, non-429 responses and malformed success bodies."""

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.code = code

    @property
    def recovery_action(self) -> RecoveryAction:
        if self._recovery_action:
            return self._recovery_action
        if self.status in (401, 403, 404):
            return RecoveryAction.OPEN_SETTINGS
        if self.status is not None and (self.status == 429 or self.status >= 500):
            return RecoveryAction.RETRY_LATER
        return RecoveryAction.RETRY


class NetworkError(QuickNoteError):
    """Raised when the request never produced an HTTP response."""

    default_recovery_action = RecoveryAction.CHECK_CONNECTION

    def __init__(self, message: str, is_offline: bool = False):
        super().__init__(message)
        self.is_offline = is_offline


class ValidationError(QuickNoteError):
    """Raised for invalid input, before any network or rate-limit interaction."""


class ConfigError(QuickNoteError):
    """Raised when the configuration store cannot be read or written."""

    default_recovery_action = RecoveryAction.RESTART
