"""Error taxonomy for ollachat.

Hides how low-level failures (httpx exceptions, pydantic validation errors)
are classified, and how each class of failure is worded for the user.
"""

from enum import Enum


class OllachatError(Exception):
    """Base class for all ollachat errors."""


class NetworkErrorKind(str, Enum):
    """Classification of transport failures."""

    CANNOT_CONNECT = "cannot_connect"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    OTHER = "other"


class NetworkError(OllachatError):
    """Transport-level failure: connection refused, timeout or non-2xx status.

    The original exception, when there is one, is chained as ``__cause__``
    and also kept on ``cause`` so callers do not need to walk the chain.
    """

    def __init__(
        self,
        message: str,
        kind: NetworkErrorKind = NetworkErrorKind.OTHER,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.cause = cause


class DecodingError(OllachatError):
    """A response body did not match the expected JSON schema."""


class StreamCancelledError(OllachatError):
    """A streamed generation was cancelled before it completed."""


class ModelNotSelectedError(OllachatError):
    """No model was selected or available to send a request to."""

    def __init__(self, message: str = "No model selected") -> None:
        super().__init__(message)


CANNOT_CONNECT_MESSAGE = (
    "Unable to connect to the Ollama API. Please ensure that the Ollama server is running."
)
TIMEOUT_MESSAGE = "The request to Ollama API timed out. Please try again later."


def describe_error(error: BaseException) -> str | None:
    """Build the user-facing message for an error.

    Args:
        error: Error raised by the controller or the reducer

    Returns:
        Message suitable for an alert, or None when the error must not be
        shown (cancellation)
    """
    if isinstance(error, StreamCancelledError):
        return None

    if isinstance(error, NetworkError):
        if error.kind == NetworkErrorKind.CANNOT_CONNECT:
            return CANNOT_CONNECT_MESSAGE
        if error.kind == NetworkErrorKind.TIMEOUT:
            return TIMEOUT_MESSAGE

    return (
        "An unexpected error occurred while communicating with the Ollama API: "
        f"{error}"
    )
