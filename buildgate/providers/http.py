"""
HTTP client shared by the REST providers.

Wraps an ``httpx.AsyncClient`` with basic authentication and turns every
transport failure or non-2xx response into a buildgate exception that names
the failing side. There is no retry: one failed request aborts the run.
"""

import asyncio
from typing import Any

import httpx
import structlog

from buildgate.exceptions import RemoteStatusError, RemoteTransportError

log = structlog.get_logger(__name__)


class HTTPConnectionPool:
    """Authenticated HTTP client for one remote service."""

    def __init__(
        self,
        base_url: str,
        service: str,
        auth: tuple[str, str] | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        max_connections: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service = service
        self.auth = auth
        self.timeout = timeout
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the underlying client if needed."""
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    auth=self.auth,
                    timeout=self.timeout,
                    headers=self.headers,
                    limits=httpx.Limits(max_connections=self.max_connections),
                    transport=self._transport,
                )
                log.debug("connection_pool_initialized", service=self.service, base_url=self.base_url)

    async def close(self) -> None:
        async with self._lock:
            if self._client:
                await self._client.aclose()
                self._client = None
                log.debug("connection_pool_closed", service=self.service, base_url=self.base_url)

    async def request(
        self,
        method: str,
        path: str,
        allow_statuses: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and check its status.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            allow_statuses: Non-2xx statuses returned to the caller instead
                of raising
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Raises:
            RemoteTransportError: If no response was received
            RemoteStatusError: If the response status is not a success
        """
        if self._client is None:
            await self.initialize()

        assert self._client is not None
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            log.error("remote_transport_error", service=self.service, method=method, path=path, error=str(e))
            raise RemoteTransportError(self.service, str(e) or type(e).__name__) from e

        if response.is_success or response.status_code in allow_statuses:
            return response

        log.error(
            "remote_status_error",
            service=self.service,
            method=method,
            path=path,
            status_code=response.status_code,
        )
        raise RemoteStatusError(
            self.service,
            response.status_code,
            response.reason_phrase,
            response.text,
        )

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def __aenter__(self) -> "HTTPConnectionPool":
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
