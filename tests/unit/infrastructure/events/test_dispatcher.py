from unittest.mock import MagicMock

from quicknote.domain.events.api_events import (
    ApiCallFailed,
    ApiCallSucceeded,
    DomainEvent,
    RateLimitStatusChanged,
)
from quicknote.domain.models.rate_limit import RateLimitStatus
from quicknote.infrastructure.events.dispatcher import EventDispatcher


def test_dispatch_routes_by_event_type():
    dispatcher = EventDispatcher()
    on_success = MagicMock()
    on_failure = MagicMock()
    dispatcher.subscribe(ApiCallSucceeded, on_success)
    dispatcher.subscribe(ApiCallFailed, on_failure)

    event = ApiCallSucceeded(endpoint="/v1/search", status_code=200, latency_ms=12.0)
    dispatcher.dispatch(event)

    on_success.assert_called_once_with(event)
    on_failure.assert_not_called()


def test_base_type_subscription_receives_everything():
    dispatcher = EventDispatcher()
    handler = MagicMock()
    dispatcher.subscribe(DomainEvent, handler)

    dispatcher.dispatch(RateLimitStatusChanged(operation="list_pages", status=RateLimitStatus()))
    dispatcher.dispatch(ApiCallFailed(endpoint="/v1/search", error_type="X", error_message="boom"))

    assert handler.call_count == 2


def test_failing_handler_does_not_stop_others():
    dispatcher = EventDispatcher()
    broken = MagicMock(side_effect=RuntimeError("subscriber bug"))
    healthy = MagicMock()
    dispatcher.subscribe(RateLimitStatusChanged, broken)
    dispatcher.subscribe(RateLimitStatusChanged, healthy)

    event = RateLimitStatusChanged(operation="append_note", status=RateLimitStatus())
    dispatcher.dispatch(event)

    broken.assert_called_once_with(event)
    healthy.assert_called_once_with(event)
