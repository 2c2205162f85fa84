"""Domain Events related to API calls and rate limiting.

Events carry no credential: subscribers (the presentation layer, logging)
only ever see the operation name and the public rate limit status.
"""

from dataclasses import dataclass, field
import time
from typing import Optional

from quicknote.domain.models.rate_limit import RateLimitStatus


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call returns a 2xx response."""
    endpoint: str
    status_code: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call ends in an error."""
    endpoint: str
    error_type: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when admission control refuses a call."""
    endpoint: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RateLimitStatusChanged(DomainEvent):
    """Emitted after every operation attempt, consumed by the presentation layer."""
    operation: str
    status: RateLimitStatus
    timestamp: float = field(default_factory=time.time)
