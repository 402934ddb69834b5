from .codec import (
    decode_chat_response,
    decode_model_list,
    decode_stream_line,
    encode_chat_request,
)
from .models import (
    ChatRequest,
    ChatRequestOptions,
    ChatResponsePartial,
    ModelInfo,
    ModelListResponse,
    OllamaMessage,
)

__all__ = [
    "ChatRequest",
    "ChatRequestOptions",
    "ChatResponsePartial",
    "ModelInfo",
    "ModelListResponse",
    "OllamaMessage",
    "decode_chat_response",
    "decode_model_list",
    "decode_stream_line",
    "encode_chat_request",
]
