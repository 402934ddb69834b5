"""Abstract transport interfaces.

This module hides the design decision of which HTTP stack carries requests.
Implementations must handle:
- Connection setup and timeouts
- Classifying failures into NetworkError
- Splitting a streamed body into text lines

Supports async context manager protocol for proper resource cleanup:
    async with transport:
        body, status = await transport.send(request)
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from .models import HTTPRequest


class LineStream(ABC):
    """Lazy sequence of text lines from a streamed response body.

    Iterating pulls lines from the network on demand; abandoning the iteration
    and calling aclose() releases the connection without reading the rest.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[str]:
        """Iterate over the body one line at a time.

        Raises:
            NetworkError: If the connection fails while reading
        """

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection."""

    async def __aenter__(self) -> "LineStream":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


class Transport(ABC):
    """Abstract HTTP transport used by the session controller."""

    @abstractmethod
    async def send(self, request: HTTPRequest) -> tuple[bytes, int]:
        """Perform a single-shot request.

        Args:
            request: Request to send

        Returns:
            Tuple of (response body, HTTP status code)

        Raises:
            NetworkError: On connection failure, timeout or non-2xx status
        """

    @abstractmethod
    async def stream(self, request: HTTPRequest) -> LineStream:
        """Open a streamed request.

        Resolves once the response status and headers have arrived.

        Args:
            request: Request to send

        Returns:
            LineStream over the response body

        Raises:
            NetworkError: On connection failure, timeout or non-2xx status
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
