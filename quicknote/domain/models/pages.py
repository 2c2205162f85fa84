"""Domain models for Notion pages."""

from dataclasses import dataclass
from typing import Optional

from .common import PageId, PageTitle

# Title shown for a page id that is not part of the current listing
DEFAULT_PAGE_TITLE = PageTitle("Notion Page")


@dataclass(frozen=True)
class PageSummary:
    """Flat summary of a page returned by the search endpoint."""
    id: PageId
    title: PageTitle
    icon: Optional[str] = None  # emoji glyph, if the page has one
    url: str = ""

    @property
    def display_title(self) -> str:
        return f"{self.icon} {self.title}" if self.icon else self.title

    @classmethod
    def placeholder(cls, page_id: PageId) -> "PageSummary":
        """Summary used when a page id cannot be resolved from the listing."""
        return cls(id=page_id, title=DEFAULT_PAGE_TITLE)
