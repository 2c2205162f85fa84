"""Interface for the shared configuration store.

Holds the user's Notion token and the page notes are appended to. The store
is shared by concurrently running operations, so implementations guard it
with a mutex and hand out copies rather than live references.
"""

import abc
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Snapshot of the persisted user configuration."""
    api_token: str = ""
    selected_page_id: str = ""
    selected_page_title: str = ""

    @property
    def has_token(self) -> bool:
        return bool(self.api_token.strip())

    @property
    def has_selected_page(self) -> bool:
        return bool(self.selected_page_id.strip())


class ConfigurationStore(abc.ABC):
    """Abstract Base Class for reading and writing the user configuration."""

    @abc.abstractmethod
    def snapshot(self) -> AppConfig:
        """Returns a consistent copy of the current configuration.

        Raises:
            ConfigError: If the underlying store cannot be read.
        """
        pass

    @abc.abstractmethod
    def set_api_token(self, token: str) -> None:
        """Stores a new API token.

        Raises:
            ConfigError: If the change cannot be persisted.
        """
        pass

    @abc.abstractmethod
    def set_selected_page(self, page_id: str, page_title: str) -> None:
        """Stores the page that notes are appended to.

        Raises:
            ConfigError: If the change cannot be persisted.
        """
        pass
