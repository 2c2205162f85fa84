"""Application service implementing quicknote's user-facing operations.

Each operation reads the configuration store once, copying what it needs,
then performs the API call with those copies. Whatever the outcome, a
RateLimitStatusChanged event is dispatched afterwards so the presentation
layer can refresh its quota indicator.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from quicknote.domain.events.api_events import RateLimitStatusChanged
from quicknote.domain.interfaces.config import AppConfig, ConfigurationStore
from quicknote.domain.models.common import Credential, NoteText, PageId, PageTitle
from quicknote.domain.models.errors import RecoveryAction, ValidationError
from quicknote.domain.models.pages import PageSummary
from quicknote.domain.models.rate_limit import RateLimitStatus
from quicknote.infrastructure.events.dispatcher import EventDispatcher
from quicknote.infrastructure.notion.api_client import NotionApiClient
from quicknote.infrastructure.resilience.rate_limiter import RateLimitManager

logger = logging.getLogger(__name__)


class NoteService:
    """Verify tokens, list/select pages and append notes."""

    def __init__(
        self,
        api_client: NotionApiClient,
        config_store: ConfigurationStore,
        rate_limits: RateLimitManager,
        dispatcher: EventDispatcher,
    ):
        self.api_client = api_client
        self.config_store = config_store
        self.rate_limits = rate_limits
        self.dispatcher = dispatcher

    @contextmanager
    def _operation(self, name: str, credential: str) -> Iterator[None]:
        """Publishes the rate limit status once the wrapped operation finishes."""
        try:
            yield
        finally:
            status = self.rate_limits.get_status(Credential(credential))
            self.dispatcher.dispatch(RateLimitStatusChanged(operation=name, status=status))

    def _require_token(self, config: AppConfig) -> Credential:
        if not config.has_token:
            raise ValidationError("Notion API token not set", recovery_action=RecoveryAction.OPEN_SETTINGS)
        return Credential(config.api_token)

    # --- Token management ---

    async def set_api_token(self, token: str) -> bool:
        """Verifies a new token and stores it.

        The page cache is dropped before verification and again once the new
        token is stored. Listings still in flight for the previous token never
        reach the cache.
        """
        token = token.strip()
        if not token:
            raise ValidationError("API token cannot be empty")

        self.api_client.invalidate_cache()
        logger.info("Attempting to verify and set Notion API token")
        with self._operation("set_api_token", token):
            await self.api_client.verify_token(Credential(token))
            self.config_store.set_api_token(token)
            self.api_client.invalidate_cache()
        logger.info("Successfully verified and saved Notion API token")
        return True

    async def verify_token(self) -> bool:
        config = self.config_store.snapshot()
        with self._operation("verify_token", config.api_token):
            return await self.api_client.verify_token(self._require_token(config))

    def get_api_token(self) -> str:
        return self.config_store.snapshot().api_token

    # --- Pages ---

    async def list_pages(self) -> List[PageSummary]:
        config = self.config_store.snapshot()
        with self._operation("list_pages", config.api_token):
            return await self.api_client.search_pages(self._require_token(config))

    def select_page(self, page_id: str, page_title: str = "") -> None:
        page_id = page_id.strip()
        if not page_id:
            raise ValidationError("Page ID cannot be empty")
        self.config_store.set_selected_page(page_id, page_title)

    def selected_page(self) -> Optional[PageSummary]:
        config = self.config_store.snapshot()
        if not config.has_selected_page:
            return None
        return PageSummary(id=PageId(config.selected_page_id), title=PageTitle(config.selected_page_title))

    async def get_page_info(self, page_id: str) -> PageSummary:
        """Resolves a page id against the listing.

        Unknown ids resolve to a placeholder summary titled "Notion Page".
        """
        page_id = page_id.strip()
        if not page_id:
            raise ValidationError("Page ID cannot be empty")

        pages = await self.list_pages()
        for page in pages:
            if page.id == page_id:
                return page
        logger.info(f"Page {page_id} not found in listing, using default title")
        return PageSummary.placeholder(PageId(page_id))

    # --- Notes ---

    async def append_note(self, text: str, page_id: Optional[str] = None) -> PageId:
        """Appends a note to `page_id`, or to the selected page when omitted.

        Returns:
            The id of the page the note was appended to.
        """
        if not text or not text.strip():
            raise ValidationError("Cannot send an empty note")

        config = self.config_store.snapshot()
        target = (page_id or config.selected_page_id).strip()
        with self._operation("append_note", config.api_token):
            credential = self._require_token(config)
            if not target:
                raise ValidationError("No Notion page selected", recovery_action=RecoveryAction.OPEN_SETTINGS)
            await self.api_client.append_note_to_page(credential, PageId(target), NoteText(text))
        return PageId(target)

    # --- Status ---

    def rate_limit_status(self) -> RateLimitStatus:
        return self.rate_limits.get_status(Credential(self.config_store.snapshot().api_token))
