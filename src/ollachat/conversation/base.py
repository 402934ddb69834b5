"""Abstract base class for conversation stores.

This module defines the interface for thread and message storage.
The abstraction hides:
- Storage format (Python objects, SQLite rows)
- Persistence mechanism (in-memory, database file)
- Connection management
"""

from abc import ABC, abstractmethod

from .models import ChatMessage, ChatThread


class ConversationStore(ABC):
    """Abstract conversation store.

    Messages are always listed in creation order; messages created at the
    same instant keep their insertion order.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store gracefully."""

    @abstractmethod
    async def create_thread(
        self,
        title: str | None = None,
        selected_model: str | None = None
    ) -> ChatThread:
        """Create and persist a new thread."""

    @abstractmethod
    async def get_thread(self, thread_id: str) -> ChatThread | None:
        """Get a thread by id, or None if it does not exist."""

    @abstractmethod
    async def list_threads(self) -> list[ChatThread]:
        """List threads, newest first."""

    @abstractmethod
    async def save_thread(self, thread: ChatThread) -> None:
        """Persist thread attributes (title, selected model, flags)."""

    @abstractmethod
    async def delete_thread(self, thread_id: str) -> None:
        """Delete a thread and all its messages."""

    @abstractmethod
    async def append_message(self, thread_id: str, message: ChatMessage) -> None:
        """Add a message to a thread."""

    @abstractmethod
    async def update_message(self, message: ChatMessage) -> None:
        """Persist the current content of an existing message."""

    @abstractmethod
    async def delete_message(self, message_id: str) -> None:
        """Delete a message. Unknown ids are ignored."""

    @abstractmethod
    async def list_messages(self, thread_id: str) -> list[ChatMessage]:
        """List a thread's messages ordered by creation time."""

    async def __aenter__(self) -> "ConversationStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
