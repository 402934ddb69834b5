"""httpx-backed transport.

Hidden design decisions:
- httpx client setup and timeout policy
- Mapping httpx exceptions onto NetworkError kinds
- Line splitting of streamed bodies (httpx aiter_lines)
"""

import logging
from collections.abc import AsyncIterator

import httpx

from ..errors import NetworkError, NetworkErrorKind
from .base import LineStream, Transport
from .models import HTTPRequest

logger = logging.getLogger(__name__)

# StreamError (closed or consumed body) is a RuntimeError, not an HTTPError
HTTPX_ERRORS = (httpx.HTTPError, httpx.StreamError)


def to_network_error(exc: Exception) -> NetworkError:
    """Classify an httpx exception.

    Args:
        exc: Exception raised by httpx

    Returns:
        NetworkError carrying the original exception as its cause
    """
    if isinstance(exc, httpx.ConnectError):
        kind = NetworkErrorKind.CANNOT_CONNECT
    elif isinstance(exc, httpx.TimeoutException):
        kind = NetworkErrorKind.TIMEOUT
    else:
        kind = NetworkErrorKind.OTHER

    message = str(exc) or type(exc).__name__
    return NetworkError(message, kind=kind, cause=exc)


def status_error(status_code: int, body: str) -> NetworkError:
    """Build the NetworkError for a non-2xx response."""
    detail = body.strip()[:200]
    message = f"Ollama {status_code}: {detail}" if detail else f"Ollama {status_code}"
    return NetworkError(message, kind=NetworkErrorKind.HTTP_STATUS, status_code=status_code)


class HttpxLineStream(LineStream):
    """LineStream over an open httpx streaming response."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iter_lines()

    async def _iter_lines(self) -> AsyncIterator[str]:
        try:
            async for line in self._response.aiter_lines():
                yield line
        except HTTPX_ERRORS as exc:
            raise to_network_error(exc) from exc

    async def aclose(self) -> None:
        await self._response.aclose()


class HttpxTransport(Transport):
    """Transport implementation using httpx.AsyncClient."""

    def __init__(
        self,
        connect_timeout: float = 5.0,
        read_timeout: float | None = 300.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the transport.

        Args:
            connect_timeout: Seconds allowed to establish a connection
            read_timeout: Seconds allowed between received bytes (None disables)
            client: Pre-built client, e.g. one wrapping httpx.MockTransport
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout)
        )

    async def send(self, request: HTTPRequest) -> tuple[bytes, int]:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
        except HTTPX_ERRORS as exc:
            logger.warning("%s %s failed: %s", request.method, request.url, exc)
            raise to_network_error(exc) from exc

        if not response.is_success:
            raise status_error(response.status_code, response.text)
        return response.content, response.status_code

    async def stream(self, request: HTTPRequest) -> LineStream:
        http_request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )
        try:
            response = await self._client.send(http_request, stream=True)
        except HTTPX_ERRORS as exc:
            logger.warning("%s %s failed: %s", request.method, request.url, exc)
            raise to_network_error(exc) from exc

        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
            raise status_error(response.status_code, body)
        return HttpxLineStream(response)

    async def close(self) -> None:
        """Close the httpx client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
