"""Adaptive, header-driven rate limit tracking.

The Notion API enforces per-token rate limits and only reveals its quota
through response headers (and 429 responses). RateLimitState records what is
known about one token; RateLimitManager keeps one state per token and is
shared by every operation in the process.

Headers are authoritative when present. When they are not, an exponential
backoff with jitter decides whether a new request may go out.
"""

import logging
import math
import random
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Mapping, Optional, Tuple

from quicknote.domain.models.common import Credential
from quicknote.domain.models.rate_limit import RateLimitStatus

logger = logging.getLogger(__name__)

BASE_BACKOFF_MS = 1000        # first backoff step: 1 second
MAX_BACKOFF_MS = 300_000      # never back off longer than 5 minutes
MAX_BACKOFF_EXPONENT = 10
JITTER_MIN = 0.75
JITTER_MAX = 1.25
RECENT_SUCCESS_HISTORY = 20

LIMIT_HEADER = "x-ratelimit-limit"
REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"

Clock = Callable[[], float]
Jitter = Callable[[], float]


def default_jitter() -> float:
    """Uniform jitter factor in [0.75, 1.25]."""
    return random.uniform(JITTER_MIN, JITTER_MAX)


def backoff_ms(consecutive_rate_limits: int) -> int:
    """Un-jittered backoff in milliseconds for the given failure count."""
    exponent = min(consecutive_rate_limits, MAX_BACKOFF_EXPONENT)
    return min(BASE_BACKOFF_MS * (2 ** exponent), MAX_BACKOFF_MS)


@dataclass
class RateLimitState:
    """What is known about the rate limit of a single token.

    Times (`reset_at`, `last_updated`, `recent_successes`) are readings of
    `clock`, a monotonic clock by default.
    """
    clock: Clock = field(default=time.monotonic, repr=False, compare=False)
    jitter: Jitter = field(default=default_jitter, repr=False, compare=False)
    remaining: Optional[int] = None
    reset_at: Optional[float] = None
    limit: Optional[int] = None
    last_updated: float = field(default=-1.0)
    recent_successes: Deque[float] = field(
        default_factory=lambda: deque(maxlen=RECENT_SUCCESS_HISTORY)
    )
    consecutive_rate_limits: int = 0
    is_rate_limited: bool = False

    def __post_init__(self) -> None:
        if self.last_updated < 0:
            self.last_updated = self.clock()

    def should_allow_request(self) -> bool:
        """Decides whether a new request may be sent right now."""
        if not self.is_rate_limited:
            return True

        if self.reset_at is not None and self.clock() >= self.reset_at:
            return True

        if self.remaining is not None:
            return self.remaining > 0

        return self.backoff_allows_request()

    def backoff_allows_request(self) -> bool:
        """Exponential backoff check used when headers give no answer."""
        if self.consecutive_rate_limits == 0:
            return True
        elapsed = self.clock() - self.last_updated
        return elapsed >= self._jittered_backoff_seconds()

    def get_recommended_delay(self) -> float:
        """Seconds to wait before the next request. An estimate, not a deadline."""
        if not self.is_rate_limited:
            return 0.0

        if self.reset_at is not None:
            now = self.clock()
            if self.reset_at > now:
                return self.reset_at - now

        return self._jittered_backoff_seconds()

    def record_success(self) -> None:
        self.consecutive_rate_limits = 0
        self.is_rate_limited = False
        self.recent_successes.append(self.clock())

    def record_rate_limit(
        self,
        reset_seconds: Optional[float] = None,
        remaining: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> None:
        """Records a 429 response.

        remaining/limit are overwritten even when unknown. A missing reset
        leaves any earlier reset_at in place.
        """
        now = self.clock()
        self.consecutive_rate_limits += 1
        self.is_rate_limited = True
        self.last_updated = now
        self.remaining = remaining
        self.limit = limit
        if reset_seconds is not None:
            self.reset_at = now + reset_seconds

    def time_until_reset(self) -> Optional[float]:
        if self.reset_at is None:
            return None
        return max(0.0, self.reset_at - self.clock())

    def copy(self) -> "RateLimitState":
        return RateLimitState(
            clock=self.clock,
            jitter=self.jitter,
            remaining=self.remaining,
            reset_at=self.reset_at,
            limit=self.limit,
            last_updated=self.last_updated,
            recent_successes=deque(self.recent_successes, maxlen=RECENT_SUCCESS_HISTORY),
            consecutive_rate_limits=self.consecutive_rate_limits,
            is_rate_limited=self.is_rate_limited,
        )

    def _jittered_backoff_seconds(self) -> float:
        return backoff_ms(self.consecutive_rate_limits) * self.jitter() / 1000.0


class RateLimitManager:
    """Thread-safe registry of RateLimitState keyed by token.

    One instance is created by the composition root and shared for the
    process lifetime; tests build their own isolated instances. Every method
    is a short, synchronous critical section.
    """

    def __init__(
        self,
        clock: Clock = time.monotonic,
        wall_clock: Clock = time.time,
        jitter: Jitter = default_jitter,
    ):
        self._states: Dict[str, RateLimitState] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._wall_clock = wall_clock
        self._jitter = jitter

    def _state_for(self, credential: Credential) -> RateLimitState:
        # Caller must hold self._lock
        state = self._states.get(credential)
        if state is None:
            state = RateLimitState(clock=self._clock, jitter=self._jitter)
            self._states[credential] = state
        return state

    def should_allow_request(self, credential: Credential) -> bool:
        with self._lock:
            state = self._states.get(credential)
            return True if state is None else state.should_allow_request()

    def get_recommended_delay(self, credential: Credential) -> float:
        with self._lock:
            state = self._states.get(credential)
            return 0.0 if state is None else state.get_recommended_delay()

    def record_success(self, credential: Credential) -> None:
        with self._lock:
            self._state_for(credential).record_success()

    def record_rate_limit(
        self,
        credential: Credential,
        reset_seconds: Optional[float] = None,
        remaining: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> None:
        with self._lock:
            state = self._state_for(credential)
            state.record_rate_limit(reset_seconds, remaining, limit)
            consecutive = state.consecutive_rate_limits
        logger.warning(
            f"Rate limited by API (consecutive={consecutive}, reset_in={reset_seconds}, "
            f"remaining={remaining}, limit={limit})"
        )

    def get_state(self, credential: Credential) -> Optional[RateLimitState]:
        """Returns a detached copy of the state, or None if never observed."""
        with self._lock:
            state = self._states.get(credential)
            return None if state is None else state.copy()

    def time_until_reset(self, credential: Credential) -> Optional[float]:
        with self._lock:
            state = self._states.get(credential)
            return None if state is None else state.time_until_reset()

    def get_status(self, credential: Credential) -> RateLimitStatus:
        """Read-only projection for the presentation layer."""
        with self._lock:
            state = self._states.get(credential)
            if state is None:
                return RateLimitStatus()
            is_limited = not state.should_allow_request()
            until_reset = state.time_until_reset()
            delay = state.get_recommended_delay() if is_limited else 0.0
            limit, remaining = state.limit, state.remaining

        reset_at = None
        if until_reset is not None:
            reset_at = int(self._wall_clock()) + int(until_reset)
        retry_after = math.ceil(delay) if is_limited and delay > 0 else None
        return RateLimitStatus(
            limit=limit,
            remaining=remaining,
            reset_at=reset_at,
            is_limited=is_limited,
            retry_after=retry_after,
        )

    def get_rate_limit_message(self, credential: Credential) -> str:
        with self._lock:
            state = self._states.get(credential)
            if state is None:
                return RATE_LIMIT_BASE_MESSAGE
            until_reset = state.time_until_reset()
            delay = state.get_recommended_delay()
        return format_rate_limit_message(until_reset, delay)


RATE_LIMIT_BASE_MESSAGE = "You've reached Notion's API rate limit."


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_rate_limit_message(until_reset: Optional[float], delay: float) -> str:
    """User facing explanation of a rate limit, rounded up to a friendly unit."""
    if until_reset is not None:
        seconds = int(until_reset)
        if seconds < 60:
            return f"{RATE_LIMIT_BASE_MESSAGE} Please try again in {seconds} seconds."
        if seconds < 3600:
            minutes = math.ceil(seconds / 60)
            return f"{RATE_LIMIT_BASE_MESSAGE} Please try again in {_plural(minutes, 'minute')}."
        hours = math.ceil(seconds / 3600)
        return f"{RATE_LIMIT_BASE_MESSAGE} Please try again in {_plural(hours, 'hour')}."

    if delay < 60:
        return f"{RATE_LIMIT_BASE_MESSAGE} Please wait a few seconds before trying again."
    if delay < 300:
        return f"{RATE_LIMIT_BASE_MESSAGE} Please wait a few minutes before trying again."
    return f"{RATE_LIMIT_BASE_MESSAGE} Please try again later."


def _parse_int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug(f"Ignoring unparseable {name} header: {value!r}")
        return None


def extract_rate_limit_headers(
    headers: Mapping[str, str],
    wall_clock: Clock = time.time,
) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Reads the rate limit headers of a response.

    The reset header is an absolute epoch timestamp; it is converted to
    seconds from now and clamped at zero.

    Returns:
        (reset_seconds, remaining, limit), each None when absent or invalid.
    """
    limit = _parse_int_header(headers, LIMIT_HEADER)
    remaining = _parse_int_header(headers, REMAINING_HEADER)
    reset_epoch = _parse_int_header(headers, RESET_HEADER)

    reset_seconds = None
    if reset_epoch is not None:
        reset_seconds = max(0, reset_epoch - int(wall_clock()))

    return reset_seconds, remaining, limit
