"""Conversation module for ollachat.

Provides thread/message storage and the reducer that applies streamed
replies to a transcript.
"""

from .base import ConversationStore
from .factory import create_conversation_store
from .in_memory import InMemoryConversationStore
from .listener import ConversationListener
from .models import ChatMessage, ChatThread, Role
from .reducer import ConversationReducer

__all__ = [
    "ChatMessage",
    "ChatThread",
    "ConversationListener",
    "ConversationReducer",
    "ConversationStore",
    "InMemoryConversationStore",
    "Role",
    "create_conversation_store",
]
