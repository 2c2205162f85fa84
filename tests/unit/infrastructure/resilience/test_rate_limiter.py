import threading

import httpx
import pytest

from quicknote.domain.models.common import Credential
from quicknote.infrastructure.resilience.rate_limiter import (
    JITTER_MAX,
    JITTER_MIN,
    MAX_BACKOFF_MS,
    RATE_LIMIT_BASE_MESSAGE,
    RECENT_SUCCESS_HISTORY,
    RateLimitManager,
    RateLimitState,
    backoff_ms,
    default_jitter,
    extract_rate_limit_headers,
    format_rate_limit_message,
)

OTHER_TOKEN = Credential("secret_other_token")


# --- backoff ---

@pytest.mark.parametrize("failures, expected_ms", [
    (0, 1_000),
    (1, 2_000),
    (2, 4_000),
    (8, 256_000),
    (9, MAX_BACKOFF_MS),
    (10, MAX_BACKOFF_MS),
    (25, MAX_BACKOFF_MS),
])
def test_backoff_ms_doubles_and_caps(failures, expected_ms):
    assert backoff_ms(failures) == expected_ms


def test_default_jitter_stays_in_range():
    samples = [default_jitter() for _ in range(500)]
    assert all(JITTER_MIN <= s <= JITTER_MAX for s in samples)


@pytest.mark.parametrize("failures", range(1, 12))
def test_header_less_delay_within_jitter_bounds(clock, failures):
    """Without reset headers the delay is the jittered exponential backoff."""
    state = RateLimitState(clock=clock)
    for _ in range(failures):
        state.record_rate_limit()

    delay = state.get_recommended_delay()
    base = backoff_ms(failures) / 1000.0
    assert base * JITTER_MIN <= delay <= base * JITTER_MAX
    assert delay <= MAX_BACKOFF_MS / 1000.0 * JITTER_MAX


# --- RateLimitState ---

def test_fresh_state_allows_requests(clock):
    state = RateLimitState(clock=clock)
    assert state.should_allow_request() is True
    assert state.get_recommended_delay() == 0.0
    assert state.last_updated == clock.now


def test_reset_header_blocks_until_reset(clock):
    state = RateLimitState(clock=clock, jitter=lambda: 1.0)
    state.record_rate_limit(reset_seconds=30, remaining=0, limit=3)

    assert state.should_allow_request() is False
    assert state.get_recommended_delay() == pytest.approx(30.0)

    clock.advance(29)
    assert state.should_allow_request() is False
    clock.advance(1)
    assert state.should_allow_request() is True


def test_positive_remaining_allows_while_limited(clock):
    state = RateLimitState(clock=clock)
    state.record_rate_limit(reset_seconds=30, remaining=2, limit=3)
    assert state.is_rate_limited is True
    assert state.should_allow_request() is True


def test_backoff_gate_opens_after_elapsed_time(clock):
    state = RateLimitState(clock=clock, jitter=lambda: 1.0)
    state.record_rate_limit()  # one failure -> 2s backoff

    assert state.should_allow_request() is False
    clock.advance(1.5)
    assert state.should_allow_request() is False
    clock.advance(0.5)
    assert state.should_allow_request() is True


def test_header_less_rate_limit_keeps_previous_reset(clock):
    state = RateLimitState(clock=clock)
    state.record_rate_limit(reset_seconds=60, remaining=0, limit=3)
    reset_at = state.reset_at

    clock.advance(5)
    state.record_rate_limit()

    assert state.reset_at == reset_at
    assert state.remaining is None
    assert state.limit is None
    assert state.consecutive_rate_limits == 2


def test_record_success_clears_rate_limit(clock):
    state = RateLimitState(clock=clock)
    for _ in range(4):
        state.record_rate_limit(reset_seconds=120, remaining=0)

    state.record_success()

    assert state.consecutive_rate_limits == 0
    assert state.is_rate_limited is False
    assert state.should_allow_request() is True
    assert state.get_recommended_delay() == 0.0
    assert list(state.recent_successes) == [clock.now]


def test_recent_successes_are_bounded(clock):
    state = RateLimitState(clock=clock)
    for _ in range(RECENT_SUCCESS_HISTORY + 5):
        clock.advance(1)
        state.record_success()
    assert len(state.recent_successes) == RECENT_SUCCESS_HISTORY
    assert state.recent_successes[-1] == clock.now


def test_time_until_reset_never_negative(clock):
    state = RateLimitState(clock=clock)
    assert state.time_until_reset() is None
    state.record_rate_limit(reset_seconds=10)
    clock.advance(15)
    assert state.time_until_reset() == 0.0


# --- RateLimitManager ---

def test_unseen_credential_is_allowed(rate_limits, token):
    assert rate_limits.should_allow_request(token) is True
    assert rate_limits.get_recommended_delay(token) == 0.0
    assert rate_limits.get_state(token) is None
    assert rate_limits.time_until_reset(token) is None


def test_manager_tracks_credentials_independently(rate_limits, token):
    rate_limits.record_rate_limit(token, reset_seconds=30, remaining=0, limit=3)

    assert rate_limits.should_allow_request(token) is False
    assert rate_limits.should_allow_request(OTHER_TOKEN) is True


def test_get_state_returns_detached_copy(rate_limits, token):
    rate_limits.record_rate_limit(token, reset_seconds=30, remaining=0)

    snapshot = rate_limits.get_state(token)
    snapshot.is_rate_limited = False
    snapshot.recent_successes.append(1.0)

    assert rate_limits.should_allow_request(token) is False
    assert len(rate_limits.get_state(token).recent_successes) == 0


def test_success_after_rate_limit_resets_state(rate_limits, token):
    rate_limits.record_rate_limit(token, reset_seconds=30, remaining=0)
    rate_limits.record_success(token)

    state = rate_limits.get_state(token)
    assert state.consecutive_rate_limits == 0
    assert state.is_rate_limited is False
    assert rate_limits.should_allow_request(token) is True


def test_concurrent_updates_are_not_lost(rate_limits, token):
    def hammer():
        for _ in range(100):
            rate_limits.record_rate_limit(token)

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert rate_limits.get_state(token).consecutive_rate_limits == 800


def test_status_for_unseen_credential(rate_limits, token):
    status = rate_limits.get_status(token)
    assert status.is_limited is False
    assert status.limit is None
    assert status.reset_at is None
    assert status.retry_after is None


def test_status_while_limited(clock, token):
    manager = RateLimitManager(clock=clock, wall_clock=lambda: 5000.4, jitter=lambda: 1.0)
    manager.record_rate_limit(token, reset_seconds=30, remaining=0, limit=3)
    clock.advance(0.5)

    status = manager.get_status(token)

    assert status.is_limited is True
    assert status.limit == 3
    assert status.remaining == 0
    assert status.reset_at == 5029
    assert status.retry_after == 30  # ceil(29.5)

    clock.advance(30)
    status = manager.get_status(token)
    assert status.is_limited is False
    assert status.retry_after is None


# --- Messages ---

def test_rate_limit_message_for_unseen_credential(rate_limits, token):
    assert rate_limits.get_rate_limit_message(token) == RATE_LIMIT_BASE_MESSAGE


def test_rate_limit_message_uses_reset_time(rate_limits, token):
    rate_limits.record_rate_limit(token, reset_seconds=90, remaining=0)
    assert rate_limits.get_rate_limit_message(token) == (
        "You've reached Notion's API rate limit. Please try again in 2 minutes."
    )


def test_rate_limit_message_without_reset(rate_limits, token):
    rate_limits.record_rate_limit(token)
    assert rate_limits.get_rate_limit_message(token).endswith(
        "Please wait a few seconds before trying again."
    )


@pytest.mark.parametrize("until_reset, delay, suffix", [
    (30, 0, "Please try again in 30 seconds."),
    (60, 0, "Please try again in 1 minute."),
    (61, 0, "Please try again in 2 minutes."),
    (3600, 0, "Please try again in 1 hour."),
    (7201, 0, "Please try again in 3 hours."),
    (None, 5, "Please wait a few seconds before trying again."),
    (None, 120, "Please wait a few minutes before trying again."),
    (None, 400, "Please try again later."),
])
def test_format_rate_limit_message(until_reset, delay, suffix):
    message = format_rate_limit_message(until_reset, delay)
    assert message == f"{RATE_LIMIT_BASE_MESSAGE} {suffix}"


# --- Header parsing ---

def test_extract_rate_limit_headers():
    headers = httpx.Headers({
        "X-RateLimit-Reset": "1060",
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Limit": "3",
    })
    assert extract_rate_limit_headers(headers, wall_clock=lambda: 1000.0) == (60, 0, 3)


def test_extract_rate_limit_headers_clamps_past_reset():
    headers = httpx.Headers({"x-ratelimit-reset": "900"})
    assert extract_rate_limit_headers(headers, wall_clock=lambda: 1000.0) == (0, None, None)


def test_extract_rate_limit_headers_ignores_garbage():
    headers = httpx.Headers({"x-ratelimit-reset": "soon", "x-ratelimit-remaining": " 7 "})
    assert extract_rate_limit_headers(headers, wall_clock=lambda: 1000.0) == (None, 7, None)


def test_extract_rate_limit_headers_absent():
    assert extract_rate_limit_headers(httpx.Headers(), wall_clock=lambda: 1000.0) == (None, None, None)
