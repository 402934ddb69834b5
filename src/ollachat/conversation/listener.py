"""Listener interface for transcript updates.

Hides how a display layer learns about changes the reducer makes. Subclass
and override only the hooks you need; every hook is a no-op by default.
"""

from .models import ChatMessage


class ConversationListener:
    """Receives notifications from a ConversationReducer."""

    def on_message_appended(self, message: ChatMessage) -> None:
        """A user message or an assistant placeholder was added."""

    def on_message_updated(self, message: ChatMessage, delta: str) -> None:
        """Delta was appended to message.content."""

    def on_message_deleted(self, message_id: str) -> None:
        """A message was removed from the conversation."""

    def on_title_changed(self, title: str) -> None:
        """The thread received a new title."""

    def on_thinking_changed(self, thinking: bool) -> None:
        """A generation started (True) or ended (False)."""

    def on_error(self, message: str) -> None:
        """An error should be shown to the user."""
