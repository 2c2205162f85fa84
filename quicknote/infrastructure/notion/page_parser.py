"""Parsing of Notion search results into PageSummary objects.

Search results are loosely typed JSON. A page's title is found by trying an
ordered list of extraction strategies; each strategy is total (it returns a
title or None, never raises). A page for which no strategy yields a title is
dropped from the listing.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence

from quicknote.domain.models.common import PageId, PageTitle
from quicknote.domain.models.pages import PageSummary

logger = logging.getLogger(__name__)

TitleStrategy = Callable[[Mapping[str, Any]], Optional[str]]


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _first_segment_text(segments: Any) -> Optional[str]:
    """Plain text of the first rich text segment, if any."""
    if not isinstance(segments, list) or not segments:
        return None
    first = _as_mapping(segments[0])
    content = _as_mapping(first.get("text")).get("content")
    if not isinstance(content, str):
        content = first.get("plain_text")
    if isinstance(content, str) and content:
        return content
    return None


def title_from_properties(page: Mapping[str, Any]) -> Optional[str]:
    """Looks for a title-typed entry in the page's property bag."""
    for prop in _as_mapping(page.get("properties")).values():
        prop = _as_mapping(prop)
        if "title" not in prop and prop.get("type") != "title":
            continue
        title = _first_segment_text(prop.get("title"))
        if title:
            return title
    return None


def title_from_parent(page: Mapping[str, Any]) -> Optional[str]:
    """Falls back to the title inherited from the parent page."""
    parent_page = _as_mapping(_as_mapping(page.get("parent")).get("page"))
    title = parent_page.get("title")
    if isinstance(title, str) and title:
        return title
    return None


TITLE_STRATEGIES: Sequence[TitleStrategy] = (title_from_properties, title_from_parent)


def extract_title(page: Mapping[str, Any], strategies: Sequence[TitleStrategy] = TITLE_STRATEGIES) -> Optional[str]:
    for strategy in strategies:
        title = strategy(page)
        if title is not None:
            return title
    return None


def parse_page(result: Any) -> Optional[PageSummary]:
    """Converts one search result into a PageSummary, or None to drop it."""
    if not isinstance(result, Mapping):
        logger.debug(f"Skipping non-object search result: {type(result).__name__}")
        return None

    page_id = result.get("id")
    if not isinstance(page_id, str) or not page_id:
        logger.debug("Skipping search result without an id")
        return None

    title = extract_title(result)
    if title is None:
        logger.debug(f"Skipping page {page_id}: no title found")
        return None

    icon = _as_mapping(result.get("icon")).get("emoji")
    url = result.get("url")
    return PageSummary(
        id=PageId(page_id),
        title=PageTitle(title),
        icon=icon if isinstance(icon, str) else None,
        url=url if isinstance(url, str) else "",
    )


def parse_search_results(payload: Any) -> List[PageSummary]:
    """Parses a full search response body.

    Raises:
        ValueError: If the body is not an object holding a `results` list.
    """
    results = _as_mapping(payload).get("results")
    if not isinstance(results, list):
        raise ValueError("Invalid response format: missing results array")

    pages = []
    for result in results:
        page = parse_page(result)
        if page is not None:
            pages.append(page)
    logger.debug(f"Parsed {len(pages)} of {len(results)} search results")
    return pages
