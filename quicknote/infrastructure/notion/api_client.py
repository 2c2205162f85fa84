"""Rate-limit aware client for the Notion REST API.

Coordinates the connection pool, the page listing cache and the shared
RateLimitManager for the three calls quicknote needs: verifying a token,
listing pages and appending a note to a page.

Locks inside the pool, cache and manager are only taken in synchronous
calls; nothing here holds a lock across an `await`.
"""

import logging
import math
import re
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from quicknote.domain.events.api_events import ApiCallDeferred, ApiCallFailed, ApiCallSucceeded
from quicknote.domain.interfaces.cache import ResponseCache
from quicknote.domain.models.common import Credential, NoteText, PageId
from quicknote.domain.models.errors import ApiError, NetworkError, RateLimitedError, ValidationError
from quicknote.domain.models.pages import PageSummary
from quicknote.infrastructure.events.dispatcher import EventDispatcher
from quicknote.infrastructure.http.connection_pool import ConnectionPool
from quicknote.infrastructure.notion.page_parser import parse_search_results
from quicknote.infrastructure.resilience.rate_limiter import (
    RateLimitManager,
    extract_rate_limit_headers,
    format_rate_limit_message,
)

logger = logging.getLogger(__name__)

USERS_ME_PATH = "/v1/users/me"
SEARCH_PATH = "/v1/search"
BLOCK_CHILDREN_PATH = "/v1/blocks/{page_id}/children"

# Notion ids are UUIDs, with or without dashes
PAGE_ID_PATTERN = re.compile(r"[A-Za-z0-9-]+")

SEARCH_PAGES_BODY: Dict[str, Any] = {
    "filter": {"value": "page", "property": "object"},
    "sort": {"direction": "descending", "timestamp": "last_edited_time"},
}

# Fixed English abbreviations; strftime('%b') follows the process locale
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                       "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_note_timestamp(now: datetime) -> str:
    """Formats a timestamp like '[05 Mar 24, 14:03:09]'."""
    return (
        f"[{now.day:02d} {MONTH_ABBREVIATIONS[now.month - 1]} {now.year % 100:02d}, "
        f"{now.hour:02d}:{now.minute:02d}:{now.second:02d}]"
    )


def build_note_content(text: str, now: datetime) -> str:
    return f"{format_note_timestamp(now)} {text}"


def build_append_body(content: str) -> Dict[str, Any]:
    """Request body appending a single bold paragraph block."""
    return {
        "children": [
            {
                "object": "block",
                "type": "paragraph",
                "paragraph": {
                    "rich_text": [
                        {
                            "type": "text",
                            "text": {"content": content},
                            "annotations": {"bold": True, "color": "default"},
                        }
                    ]
                },
            }
        ]
    }


class NotionApiClient:
    """Performs verify/search/append against the Notion API for a given token."""

    def __init__(
        self,
        pool: ConnectionPool,
        rate_limits: RateLimitManager,
        pages_cache: ResponseCache[List[PageSummary]],
        dispatcher: Optional[EventDispatcher] = None,
        wall_clock: Callable[[], datetime] = datetime.now,
    ):
        self.pool = pool
        self.rate_limits = rate_limits
        self.pages_cache = pages_cache
        self.dispatcher = dispatcher
        self._wall_clock = wall_clock
        # Bumped on every invalidation; a listing only fills the cache if it is unchanged
        self._cache_generation = 0

    # --- Internal helpers ---

    def _dispatch(self, event: Any) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(event)

    def _check_rate_limit(self, credential: Credential, endpoint: str) -> None:
        """Admission control: refuses the call outright while limited."""
        if self.rate_limits.should_allow_request(credential):
            return

        delay = self.rate_limits.get_recommended_delay(credential)
        state = self.rate_limits.get_state(credential)
        limit = state.limit if state else None
        remaining = state.remaining if state else None
        logger.info(f"Request to {endpoint} deferred by rate limiter, retry in {delay:.1f}s")
        self._dispatch(ApiCallDeferred(endpoint=endpoint, wait_time_seconds=delay))
        raise RateLimitedError(
            f"Rate limit in effect, retry after {math.ceil(delay)} seconds",
            retry_after=delay,
            limit=limit,
            remaining=remaining,
        )

    async def _send(
        self,
        credential: Credential,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Sends one request and feeds the response into the rate limit manager.

        Raises:
            NetworkError: If no response was received. Rate limit state is untouched.
            RateLimitedError: If the API answered 429.
        """
        client = self.pool.get_or_create(credential)
        start_time = time.perf_counter()
        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            self._dispatch(ApiCallFailed(endpoint=path, error_type=type(e).__name__, error_message=str(e)))
            raise NetworkError(f"API request timed out: {e}", is_offline=False) from e
        except httpx.ConnectError as e:
            logger.warning(f"{method} {path} could not connect: {e}")
            self._dispatch(ApiCallFailed(endpoint=path, error_type=type(e).__name__, error_message=str(e)))
            raise NetworkError(f"API request failed: {e}", is_offline=True) from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed at transport level: {e}")
            self._dispatch(ApiCallFailed(endpoint=path, error_type=type(e).__name__, error_message=str(e)))
            raise NetworkError(f"API request failed: {e}", is_offline=False) from e
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            self._dispatch(ApiCallFailed(endpoint=path, error_type=type(e).__name__, error_message=str(e)))
            raise NetworkError(f"API request failed: {e}", is_offline=False) from e
        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code == 429:
            raise self._handle_rate_limit(credential, path, response)

        self.rate_limits.record_success(credential)
        reset, remaining, limit = extract_rate_limit_headers(response.headers)
        if reset is not None or remaining is not None or limit is not None:
            logger.debug(f"Rate limit headers: reset={reset}, remaining={remaining}, limit={limit}")

        if response.is_success:
            logger.debug(f"{method} {path} -> {response.status_code} in {latency_ms:.0f}ms")
            self._dispatch(ApiCallSucceeded(endpoint=path, status_code=response.status_code, latency_ms=latency_ms))
        else:
            logger.warning(f"{method} {path} -> {response.status_code}")
            self._dispatch(ApiCallFailed(
                endpoint=path,
                error_type="HTTPStatus",
                error_message=response.reason_phrase,
                status_code=response.status_code,
            ))
        return response

    def _handle_rate_limit(self, credential: Credential, path: str, response: httpx.Response) -> RateLimitedError:
        reset, remaining, limit = extract_rate_limit_headers(response.headers)
        self.rate_limits.record_rate_limit(credential, reset, remaining, limit)
        delay = self.rate_limits.get_recommended_delay(credential)
        self._dispatch(ApiCallFailed(
            endpoint=path,
            error_type="RateLimited",
            error_message="429 Too Many Requests",
            status_code=429,
        ))
        return RateLimitedError(
            format_rate_limit_message(reset, delay),
            retry_after=delay,
            limit=limit,
            remaining=remaining,
        )

    @staticmethod
    def _error_details(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    # --- Public API ---

    async def verify_token(self, credential: Credential) -> bool:
        """Checks that the token is accepted by the API."""
        if not credential or not credential.strip():
            raise ValidationError("API token cannot be empty")
        self._check_rate_limit(credential, USERS_ME_PATH)

        response = await self._send(credential, "GET", USERS_ME_PATH)
        if not response.is_success:
            details = self._error_details(response)
            raise ApiError(
                f"API token validation failed with status: {response.status_code}",
                status=response.status_code,
                code=details.get("code"),
            )
        return True

    async def search_pages(self, credential: Credential) -> List[PageSummary]:
        """Lists pages shared with the integration, most recently edited first.

        Served from the cache while it is fresh, with no network call and no
        rate limit bookkeeping.
        """
        cached = self.pages_cache.get()
        if cached is not None:
            return list(cached)

        if not credential or not credential.strip():
            raise ValidationError("API token cannot be empty")
        self._check_rate_limit(credential, SEARCH_PATH)
        generation = self._cache_generation

        response = await self._send(credential, "POST", SEARCH_PATH, json=SEARCH_PAGES_BODY)
        if not response.is_success:
            details = self._error_details(response)
            raise ApiError(
                details.get("message") or f"API error: {response.status_code}",
                status=response.status_code,
                code=details.get("code"),
            )

        try:
            pages = parse_search_results(response.json())
        except ValueError as e:
            logger.error(f"Malformed search response: {e}")
            raise ApiError(f"Failed to parse response: {e}", status=response.status_code) from e

        if generation == self._cache_generation:
            self.pages_cache.put(pages)
        else:
            logger.debug("Cache invalidated while listing was in flight, result not cached")
        logger.info(f"Found {len(pages)} Notion pages")
        return list(pages)

    async def append_note_to_page(self, credential: Credential, page_id: PageId, text: NoteText) -> None:
        """Appends the note, prefixed with the current local time, as a bold paragraph."""
        if not page_id or not page_id.strip():
            raise ValidationError("Page ID cannot be empty")
        if not text or not text.strip():
            raise ValidationError("Cannot send an empty note")
        if not credential or not credential.strip():
            raise ValidationError("API token cannot be empty")
        if not PAGE_ID_PATTERN.fullmatch(page_id):
            raise ValidationError(f"Invalid page ID: {page_id}")

        path = BLOCK_CHILDREN_PATH.format(page_id=page_id)
        self._check_rate_limit(credential, path)

        body = build_append_body(build_note_content(text, self._wall_clock()))
        logger.debug(f"Appending note of {len(text)} characters to page {page_id}")
        response = await self._send(credential, "PATCH", path, json=body)
        if not response.is_success:
            details = self._error_details(response)
            message = details.get("message")
            raise ApiError(
                message if isinstance(message, str) and message else "Unknown error",
                status=response.status_code,
                code=details.get("code"),
            )
        logger.info(f"Appended note to page {page_id}")

    def invalidate_cache(self) -> None:
        """Drops the cached page listing (call when the token changes)."""
        self._cache_generation += 1
        self.pages_cache.invalidate()
