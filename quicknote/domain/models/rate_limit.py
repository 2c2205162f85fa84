"""Read-only rate limit status as seen by the presentation layer."""

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

WARNING_USAGE_PERCENT = 75.0
CRITICAL_USAGE_PERCENT = 90.0


@dataclass(frozen=True)
class RateLimitStatus:
    """Projection of a credential's rate limit state.

    Attributes:
        limit: Requests allowed in the current window, if known.
        remaining: Requests left in the current window, if known.
        reset_at: Unix timestamp (seconds) when the window resets, if known.
        is_limited: Whether new requests are currently being refused.
        retry_after: Seconds to wait before retrying, only set while limited.
    """
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset_at: Optional[int] = None
    is_limited: bool = False
    retry_after: Optional[int] = None

    @property
    def usage_percent(self) -> float:
        if self.limit is None or self.remaining is None or self.limit == 0:
            return 0.0
        return 100.0 - (self.remaining / self.limit * 100.0)

    @property
    def level(self) -> str:
        """'normal', 'warning' or 'critical' based on quota usage."""
        if self.is_limited:
            return "critical"
        usage = self.usage_percent
        if usage >= CRITICAL_USAGE_PERCENT:
            return "critical"
        if usage >= WARNING_USAGE_PERCENT:
            return "warning"
        return "normal"

    def seconds_until_reset(self, now: Optional[float] = None) -> Optional[int]:
        if self.reset_at is None:
            return None
        now = time.time() if now is None else now
        return max(0, int(self.reset_at - now))

    def describe(self) -> str:
        """Short human readable summary of the quota state."""
        if self.is_limited:
            wait = self.retry_after if self.retry_after is not None else "a few"
            return f"Rate limit reached. Please try again in {wait} seconds."
        if self.level == "critical":
            return f"API quota at {int(self.usage_percent)}% usage. Please slow down requests."
        if self.level == "warning":
            return f"API quota at {int(self.usage_percent)}% usage. Approaching limit."
        if self.remaining is not None and self.limit:
            return f"API quota: {self.remaining}/{self.limit} requests remaining."
        return "API quota status unavailable."

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def format_time_until(seconds: Optional[int]) -> str:
    """Formats a countdown like '2m 30s'."""
    if seconds is None:
        return "Unknown"
    if seconds <= 0:
        return "Now"
    minutes, rest = divmod(seconds, 60)
    if minutes == 0:
        return f"{rest}s"
    return f"{minutes}m {rest}s"
