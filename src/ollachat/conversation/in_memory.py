"""In-memory conversation store.

Simple dict-based storage for session-only conversations.
Data is lost when the application exits.
"""

from .base import ConversationStore
from .models import ChatMessage, ChatThread, chronological


class InMemoryConversationStore(ConversationStore):
    """In-memory conversation store (session-only).

    Listed messages are the stored objects themselves, so in-place edits are
    visible immediately.
    """

    def __init__(self) -> None:
        self._threads: dict[str, ChatThread] = {}
        self._messages: dict[str, list[ChatMessage]] = {}

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def create_thread(
        self,
        title: str | None = None,
        selected_model: str | None = None
    ) -> ChatThread:
        thread = ChatThread(selected_model=selected_model)
        if title:
            thread.title = title
        self._threads[thread.id] = thread
        self._messages[thread.id] = []
        return thread

    async def get_thread(self, thread_id: str) -> ChatThread | None:
        return self._threads.get(thread_id)

    async def list_threads(self) -> list[ChatThread]:
        return sorted(self._threads.values(), key=lambda t: t.created_at, reverse=True)

    async def save_thread(self, thread: ChatThread) -> None:
        """Save thread (just updates dict)."""
        self._threads[thread.id] = thread
        self._messages.setdefault(thread.id, [])

    async def delete_thread(self, thread_id: str) -> None:
        self._threads.pop(thread_id, None)
        self._messages.pop(thread_id, None)

    async def append_message(self, thread_id: str, message: ChatMessage) -> None:
        if thread_id not in self._threads:
            raise KeyError(f"Unknown thread: {thread_id}")
        self._messages[thread_id].append(message)

    async def update_message(self, message: ChatMessage) -> None:
        for messages in self._messages.values():
            for stored in messages:
                if stored.id == message.id:
                    stored.content = message.content
                    return

    async def delete_message(self, message_id: str) -> None:
        for messages in self._messages.values():
            for index, message in enumerate(messages):
                if message.id == message_id:
                    del messages[index]
                    return

    async def list_messages(self, thread_id: str) -> list[ChatMessage]:
        return chronological(self._messages.get(thread_id, []))

    @property
    def backend_type(self) -> str:
        return "memory"
