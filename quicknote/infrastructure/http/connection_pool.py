"""Per-credential pool of reusable HTTP clients.

Each distinct token gets exactly one httpx.AsyncClient with the
authentication and API version headers baked in. Clients are never
refreshed or evicted: a rotated token is simply a new key.
"""

import logging
import threading
from typing import Dict, List, Optional

import httpx

from quicknote.domain.models.common import Credential
from quicknote.domain.models.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.notion.com"
DEFAULT_API_VERSION = "2022-06-28"
DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "quicknote/1.0"


class ConnectionPool:
    """Lazily builds and keeps one AsyncClient per credential."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._lock = threading.Lock()

    def _build_headers(self, credential: Credential) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
            "Notion-Version": self.api_version,
            "User-Agent": USER_AGENT,
        }

    def _build_client(self, credential: Credential) -> httpx.AsyncClient:
        try:
            return httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._build_headers(credential),
                timeout=self.timeout_seconds,
                transport=self._transport,
            )
        except (ValueError, TypeError) as e:
            # Raised by httpx for header values it cannot encode
            raise ValidationError(f"Invalid API token: {type(e).__name__}") from e

    def get_or_create(self, credential: Credential) -> httpx.AsyncClient:
        """Returns the pooled client for the credential, building it on first use."""
        if not credential or not credential.strip():
            raise ValidationError("API token cannot be empty")

        with self._lock:
            client = self._clients.get(credential)
            if client is None:
                client = self._build_client(credential)
                self._clients[credential] = client
                logger.debug(f"Created pooled HTTP client (pool size={len(self._clients)})")
            return client

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    async def aclose(self) -> None:
        """Closes every pooled client. Only used at process shutdown."""
        with self._lock:
            clients: List[httpx.AsyncClient] = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            await client.aclose()
        if clients:
            logger.debug(f"Closed {len(clients)} pooled HTTP client(s)")
