"""Synchronous in-process event dispatcher.

Publishes domain events to subscribed handlers. Handlers run inline, in
subscription order, on the publishing task; they must not block.
"""

import logging
import threading
from collections import defaultdict
from typing import Callable, DefaultDict, List, Type

from quicknote.domain.events.api_events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Routes events to the handlers subscribed to their type (or a base type)."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        with self._lock:
            handlers = [
                handler
                for event_type, subscribed in self._handlers.items()
                if isinstance(event, event_type)
                for handler in subscribed
            ]
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # A broken subscriber must not turn a finished operation into a failure
                logger.error(f"Event handler {handler!r} failed for {type(event).__name__}: {e}", exc_info=True)
