"""Encoding and decoding of chat API payloads.

Single-shot responses are decoded strictly; streamed lines are decoded
tolerantly so keep-alive or partial lines do not abort a generation.
"""

from collections.abc import Sequence

from pydantic import ValidationError

from ..errors import DecodingError
from .models import (
    ChatRequest,
    ChatRequestOptions,
    ChatResponsePartial,
    ModelListResponse,
    OllamaMessage,
)


def encode_chat_request(
    model: str,
    messages: Sequence[OllamaMessage],
    stream: bool,
    context_window: int,
) -> bytes:
    """Serialize a chat request body.

    Args:
        model: Model name
        messages: Full conversation history, in order
        stream: Whether the server should stream the reply line by line
        context_window: Value for options.num_ctx

    Returns:
        UTF-8 JSON body
    """
    request = ChatRequest(
        model=model,
        messages=list(messages),
        stream=stream,
        options=ChatRequestOptions(num_ctx=context_window),
    )
    return request.model_dump_json().encode("utf-8")


def decode_chat_response(data: bytes | str) -> ChatResponsePartial:
    """Strictly decode a chat response.

    Raises:
        DecodingError: If the payload is not valid JSON or does not match the schema
    """
    try:
        return ChatResponsePartial.model_validate_json(data)
    except ValidationError as exc:
        raise DecodingError(f"Invalid chat response: {exc}") from exc


def decode_stream_line(line: str) -> ChatResponsePartial | None:
    """Decode one line of a streamed chat response.

    Returns:
        The decoded record, or None for blank or undecodable lines
    """
    if not line.strip():
        return None
    try:
        return ChatResponsePartial.model_validate_json(line)
    except ValidationError:
        return None


def decode_model_list(data: bytes | str) -> list[str]:
    """Decode GET /tags into model names, preserving server order.

    Raises:
        DecodingError: If the payload does not match the schema
    """
    try:
        response = ModelListResponse.model_validate_json(data)
    except ValidationError as exc:
        raise DecodingError(f"Invalid model list: {exc}") from exc
    return [model.name for model in response.models]
