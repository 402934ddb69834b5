from typing import Any

from .base import Transport
from .httpx_transport import HttpxTransport


def create_transport(kind: str = "httpx", **config: Any) -> Transport:
    """Create a transport instance.

    Args:
        kind: Transport type (only 'httpx' is supported)
        **config: Transport-specific configuration
            For httpx:
                - connect_timeout: float (default: 5.0)
                - read_timeout: float | None (default: 300.0)
                - client: httpx.AsyncClient | None

    Returns:
        Initialized transport instance

    Raises:
        ValueError: If the transport type is not supported
    """
    if kind.lower() == "httpx":
        return HttpxTransport(**config)

    raise ValueError(
        f"Unsupported transport: {kind}. "
        f"Supported transports: 'httpx'"
    )
