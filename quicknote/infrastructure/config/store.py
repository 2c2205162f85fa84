"""YAML-backed implementation of the ConfigurationStore interface.

The in-memory configuration is guarded by a single mutex. Readers get an
immutable AppConfig snapshot; writers swap in a new snapshot under the lock
and persist it afterwards, outside the lock. A failed save restores the
previous snapshot.
"""

import logging
import threading
from dataclasses import asdict, replace
from pathlib import Path
from typing import Optional

import yaml

from quicknote.domain.interfaces.config import AppConfig, ConfigurationStore
from quicknote.domain.models.errors import ConfigError

logger = logging.getLogger(__name__)


class YamlConfigStore(ConfigurationStore):
    """Keeps the token and selected page in memory and mirrors them to a YAML file."""

    def __init__(self, path: Optional[Path] = None, initial: Optional[AppConfig] = None):
        """Initializes the store.

        Args:
            path: File to persist to. None keeps the store purely in memory.
            initial: Starting configuration; read from `path` when omitted.

        Raises:
            ConfigError: If the file exists but cannot be read or parsed.
        """
        self.path = path
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._config = initial if initial is not None else self._load()

    def _load(self) -> AppConfig:
        if self.path is None or not self.path.exists():
            logger.debug("No stored configuration found, using defaults.")
            return AppConfig()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Failed to parse config: {self.path} does not contain a mapping")
        logger.info(f"Loaded stored configuration from {self.path}")
        return AppConfig(
            api_token=str(data.get("notion_api_token") or ""),
            selected_page_id=str(data.get("selected_page_id") or ""),
            selected_page_title=str(data.get("selected_page_title") or ""),
        )

    def _save(self, config: AppConfig) -> None:
        if self.path is None:
            return
        data = asdict(config)
        data["notion_api_token"] = data.pop("api_token")
        with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "w", encoding="utf-8") as f:
                    yaml.safe_dump(data, f, default_flow_style=False)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to write config file: {e}") from e
        logger.debug(f"Saved configuration to {self.path}")

    def snapshot(self) -> AppConfig:
        with self._lock:
            return self._config

    def _update(self, **changes: str) -> None:
        """Applies the changes and persists them; memory is rolled back if saving fails."""
        with self._lock:
            previous = self._config
            self._config = config = replace(previous, **changes)
        try:
            self._save(config)
        except ConfigError:
            with self._lock:
                if self._config is config:
                    self._config = previous
            raise

    def set_api_token(self, token: str) -> None:
        self._update(api_token=token)

    def set_selected_page(self, page_id: str, page_title: str) -> None:
        self._update(selected_page_id=page_id, selected_page_title=page_title)
        logger.info(f"Selected Notion page: {page_title} ({page_id})")
