"""Interface for the response cache.

The cache is synchronous. Callers only use it in non-suspending sections,
never across a network await.
"""

import abc
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ResponseCache(abc.ABC, Generic[T]):
    """Abstract Base Class for a cached read result."""

    @abc.abstractmethod
    def get(self) -> Optional[T]:
        """Returns the cached value if present and not expired, otherwise None."""
        pass

    @abc.abstractmethod
    def put(self, value: T) -> None:
        """Replaces the cached value and restarts its time-to-live.

        Args:
            value: The value to store.
        """
        pass

    @abc.abstractmethod
    def invalidate(self) -> None:
        """Drops the cached value unconditionally.

        Must be called whenever the active credential changes.
        """
        pass
