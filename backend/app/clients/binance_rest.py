"""Binance REST API client for ticker prices."""

import asyncio
from typing import Any

import httpx


class RateLimiter:
    """Spaces requests evenly to stay under a per-minute budget."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


class BinanceRestClient:
    """Binance Futures REST API client.

    No retries: a failed request raises ``httpx.HTTPError`` (or ValueError
    for a malformed body) and the caller decides what to do.
    """

    BASE_URL = "https://fapi.binance.com"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        calls_per_minute: int = 1200,
    ):
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_price(self, symbol: str) -> float:
        """
        Fetch the latest ticker price.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")

        Returns:
            Latest price

        Raises:
            httpx.HTTPError: On transport or HTTP status errors
            ValueError: If the response carries no price
        """
        data = await self._request("GET", "/fapi/v1/ticker/price", {"symbol": symbol})
        if not isinstance(data, dict) or "price" not in data:
            raise ValueError(f"No price in ticker response for {symbol}: {data!r}")
        return float(data["price"])
