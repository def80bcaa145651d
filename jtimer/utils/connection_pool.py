"""
HTTP connection pooling for Jira API requests.

Each API client owns one pool, so credentials baked into the default headers
never leak across reconfiguration.
"""

import asyncio
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)


class HTTPConnectionPool:
    """HTTP connection pool for API requests.

    ``timeout`` bounds each network phase (connect, read, write) as httpx
    understands it; ``resource_timeout`` bounds the whole exchange.
    """

    def __init__(
        self,
        base_url: str,
        max_connections: int = 10,
        max_keepalive_connections: int = 5,
        timeout: float = 30.0,
        resource_timeout: float = 60.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections
        self.timeout = timeout
        self.resource_timeout = resource_timeout
        self.headers = headers or {}
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._client is None:
                limits = httpx.Limits(
                    max_keepalive_connections=self.max_keepalive_connections,
                    max_connections=self.max_connections,
                    keepalive_expiry=30.0,
                )

                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    limits=limits,
                    timeout=self.timeout,
                    http2=True,
                    headers=self.headers,
                )

                log.debug(
                    "connection_pool_initialized",
                    base_url=self.base_url,
                    max_connections=self.max_connections,
                )

    async def close(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._client:
                await self._client.aclose()
                self._client = None
                log.debug("connection_pool_closed", base_url=self.base_url)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, bounded by the resource timeout.

        Raises:
            asyncio.TimeoutError: If the exchange exceeds ``resource_timeout``
            httpx.HTTPError: On transport failures
        """
        if self._client is None:
            await self.initialize()

        assert self._client is not None
        return await asyncio.wait_for(
            self._client.request(method, path, **kwargs),
            timeout=self.resource_timeout,
        )

    async def __aenter__(self) -> "HTTPConnectionPool":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()
