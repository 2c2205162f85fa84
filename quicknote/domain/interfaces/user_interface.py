"""Interface for interacting with the user (input/output).

Defines the contract for displaying information, errors, warnings, page
listings and rate limit status, and for reading note text from the user.
"""

import abc
from typing import Any, List, Optional

from quicknote.domain.models.errors import RecoveryAction
from quicknote.domain.models.pages import PageSummary
from quicknote.domain.models.rate_limit import RateLimitStatus


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user."""
        pass

    @abc.abstractmethod
    def display_error(
        self,
        error_message: str,
        recovery_action: Optional[RecoveryAction] = None,
        **kwargs: Any,
    ) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            recovery_action: Follow-up to suggest, if any.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_pages(self, pages: List[PageSummary], selected_page_id: str = "") -> None:
        """Displays a listing of pages, highlighting the selected one."""
        pass

    @abc.abstractmethod
    def display_rate_limit_status(self, status: RateLimitStatus) -> None:
        """Displays the current rate limit status."""
        pass

    @abc.abstractmethod
    def get_prompt(self, prompt_message: str = "Note: ") -> str:
        """Gets input from the user synchronously.

        Args:
            prompt_message: The message to display before the input cursor.

        Returns:
            The text input by the user.
        """
        pass
