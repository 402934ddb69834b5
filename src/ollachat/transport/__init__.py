from .base import LineStream, Transport
from .factory import create_transport
from .httpx_transport import HttpxLineStream, HttpxTransport
from .models import HTTPRequest

__all__ = [
    "HTTPRequest",
    "HttpxLineStream",
    "HttpxTransport",
    "LineStream",
    "Transport",
    "create_transport",
]
