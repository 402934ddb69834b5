"""
ollachat: a streaming chat client for a local Ollama server.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .config import ChatConfig
from .conversation import (
    ChatMessage,
    ChatThread,
    ConversationListener,
    ConversationReducer,
    ConversationStore,
    create_conversation_store,
)
from .errors import (
    DecodingError,
    ModelNotSelectedError,
    NetworkError,
    OllachatError,
    StreamCancelledError,
    describe_error,
)
from .session import ChatSessionController, ChatStream, StreamSession, StreamState

__all__ = [
    "ChatConfig",
    "ChatMessage",
    "ChatSessionController",
    "ChatStream",
    "ChatThread",
    "ConversationListener",
    "ConversationReducer",
    "ConversationStore",
    "DecodingError",
    "ModelNotSelectedError",
    "NetworkError",
    "OllachatError",
    "StreamCancelledError",
    "StreamSession",
    "StreamState",
    "create_conversation_store",
    "describe_error",
]
