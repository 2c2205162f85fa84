"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
the NoteService, and turns results and errors into user-facing output.
Errors are displayed together with their recovery action.
"""

import logging
from typing import Optional

from quicknote.core.services.note_service import NoteService
from quicknote.domain.interfaces.user_interface import UserInterface
from quicknote.domain.models.errors import QuickNoteError, RecoveryAction
from quicknote.domain.models.pages import PageSummary

logger = logging.getLogger(__name__)

EXIT_WORDS = {"exit", "quit"}


class CommandHandler:
    """Handles incoming commands and delegates to the NoteService."""

    def __init__(self, note_service: NoteService, ui: UserInterface):
        self.note_service = note_service
        self.ui = ui

    def _report(self, action: str, error: Exception) -> bool:
        """Displays an error; always returns False so handlers can `return self._report(...)`."""
        if isinstance(error, QuickNoteError):
            logger.warning(f"{action} failed: {type(error).__name__}: {error.message}")
            self.ui.display_error(error.message, recovery_action=error.recovery_action)
        else:
            logger.error(f"{action} failed unexpectedly: {error}", exc_info=True)
            self.ui.display_error(f"{action} failed: {error}", recovery_action=RecoveryAction.RESTART)
        return False

    async def handle_set_token(self, token: str) -> bool:
        logger.info("Handling 'set-token' command")
        try:
            await self.note_service.set_api_token(token)
        except Exception as e:
            return self._report("Setting the API token", e)
        self.ui.display_info("API token verified and saved.")
        return True

    async def handle_verify(self) -> bool:
        logger.info("Handling 'verify' command")
        try:
            await self.note_service.verify_token()
        except Exception as e:
            return self._report("Token verification", e)
        self.ui.display_info("API token is valid.")
        return True

    async def handle_list_pages(self) -> bool:
        logger.info("Handling 'pages' command")
        try:
            pages = await self.note_service.list_pages()
        except Exception as e:
            return self._report("Listing pages", e)
        selected = self.note_service.selected_page()
        self.ui.display_pages(pages, selected_page_id=selected.id if selected else "")
        return True

    async def handle_select_page(self, page_id: str, title: Optional[str] = None) -> bool:
        """Selects the page notes go to, looking up its title when not given."""
        logger.info(f"Handling 'select' command for page: {page_id}")
        try:
            if title is None:
                page = await self.note_service.get_page_info(page_id)
                if page == PageSummary.placeholder(page.id):
                    self.ui.display_warning(
                        f"Page {page.id} is not among the pages shared with your integration."
                    )
                title = page.title
            self.note_service.select_page(page_id, title)
        except Exception as e:
            return self._report("Selecting the page", e)
        self.ui.display_info(f"Notes will be appended to '{title}'.")
        return True

    async def handle_page_info(self, page_id: str) -> bool:
        logger.info(f"Handling 'page-info' command for page: {page_id}")
        try:
            page = await self.note_service.get_page_info(page_id)
        except Exception as e:
            return self._report("Fetching page info", e)
        lines = [f"**{page.display_title}**", "", f"- ID: `{page.id}`"]
        if page.url:
            lines.append(f"- URL: {page.url}")
        self.ui.display_output("\n".join(lines))
        return True

    async def handle_append_note(self, text: str, page_id: Optional[str] = None) -> bool:
        logger.info("Handling 'note' command")
        try:
            target = await self.note_service.append_note(text, page_id=page_id)
        except Exception as e:
            return self._report("Saving the note", e)
        selected = self.note_service.selected_page()
        name = selected.title if selected and selected.id == target and selected.title else target
        self.ui.display_info(f"Note saved to {name}.")
        return True

    def handle_status(self) -> bool:
        logger.info("Handling 'status' command")
        try:
            status = self.note_service.rate_limit_status()
        except Exception as e:
            return self._report("Reading rate limit status", e)
        self.ui.display_rate_limit_status(status)
        return True

    async def start_capture(self) -> None:
        """Interactive mode: every line typed is appended as a note until 'exit'."""
        selected = self.note_service.selected_page()
        if selected is None or not self.note_service.get_api_token():
            self.ui.display_error(
                "Set an API token and select a page before capturing notes.",
                recovery_action=RecoveryAction.OPEN_SETTINGS,
            )
            return

        self.ui.display_info(
            f"Capturing notes for '{selected.title or selected.id}'. Type 'exit' or 'quit' to end."
        )
        while True:
            text = self.ui.get_prompt("Note: ").strip()
            if not text or text.lower() in EXIT_WORDS:
                break
            await self.handle_append_note(text)
        self.ui.display_info("Ending capture session.")
