"""Data models for conversations.

These models define threads and their messages independent of the storage
backend used.
"""

from datetime import datetime, timedelta
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from ..config import DEFAULT_THREAD_TITLE
from ..protocol import OllamaMessage


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A message in a conversation.

    Content is mutable: an assistant placeholder grows by appending stream
    increments.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: Role
    content: str = ""
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_user(self) -> bool:
        return self.role == Role.USER

    def append(self, text: str) -> None:
        """Grow the content in place."""
        self.content += text

    def to_ollama(self) -> OllamaMessage:
        return OllamaMessage(role=self.role.value, content=self.content)


class ChatThread(BaseModel):
    """A conversation thread and its per-thread state."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = DEFAULT_THREAD_TITLE
    selected_model: str | None = None
    has_received_first_message: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


def chronological(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Sort messages by creation time (stable for equal timestamps)."""
    return sorted(messages, key=lambda message: message.created_at)


def next_timestamp(messages: list[ChatMessage]) -> datetime:
    """Timestamp that orders a new message after all existing ones."""
    now = datetime.now()
    if not messages:
        return now
    latest = max(message.created_at for message in messages)
    return max(now, latest + timedelta(microseconds=1))
