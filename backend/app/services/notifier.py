"""Bark push notifications.

Best effort: delivery failures are logged and never raised to the caller.
"""

import logging
from urllib.parse import quote

import httpx

from core.tick_processor import Alert

logger = logging.getLogger(__name__)


class BarkNotifier:
    """Sends a title/body push to every configured Bark device key."""

    def __init__(
        self,
        base_url: str = "https://api.day.app",
        keys: list[str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.keys = list(keys or [])
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.keys)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _url(self, key: str, title: str, body: str) -> str:
        return f"{self.base_url}/{key}/{quote(title, safe='')}/{quote(body, safe='')}"

    async def send(self, title: str, body: str) -> int:
        """
        Push a notification to all keys.

        Returns:
            Number of keys the push was delivered to
        """
        if not self.enabled:
            logger.debug(f"Push disabled, dropped: {title}")
            return 0

        client = await self._get_client()
        delivered = 0
        for key in self.keys:
            try:
                response = await client.get(self._url(key, title, body))
                response.raise_for_status()
                delivered += 1
            except httpx.HTTPError as e:
                logger.warning(f"Push to {key[:8]}... failed: {e}")
        logger.info(f"Push sent to {delivered}/{len(self.keys)} devices: {title}")
        return delivered

    async def send_alert(self, alert: Alert) -> int:
        return await self.send(alert.title, alert.message)
