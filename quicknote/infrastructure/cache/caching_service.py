"""Concrete implementation of the ResponseCache interface.

A single in-memory slot with a time-to-live, used for the page listing.
The slot is not keyed by credential, so the owner must call invalidate()
whenever the active credential changes.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from quicknote.domain.interfaces.cache import ResponseCache

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60  # 5 minutes

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Internal representation of a cache entry with expiry."""
    value: T
    expiry_time: float  # clock reading after which the entry is stale

    def is_valid(self, now: float) -> bool:
        return now < self.expiry_time


class SingleSlotCache(ResponseCache[T]):
    """Thread-safe single-slot TTL cache."""

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None
        self._lock = threading.Lock()
        logger.debug(f"SingleSlotCache initialized (ttl={ttl}s)")

    def get(self) -> Optional[T]:
        with self._lock:
            entry = self._entry
            if entry is not None and entry.is_valid(self._clock()):
                logger.debug("Cache hit")
                return entry.value
        logger.debug("Cache miss")
        return None

    def put(self, value: T) -> None:
        with self._lock:
            self._entry = CacheEntry(value=value, expiry_time=self._clock() + self.ttl)
        logger.debug(f"Stored value in cache for {self.ttl}s")

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None
        logger.info("Response cache invalidated.")
