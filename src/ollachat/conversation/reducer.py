"""Conversation state reducer.

Applies streamed increments to a thread's transcript and keeps the
conversation store and the listener in step with it:
- An empty assistant placeholder is appended when a stream starts
- Each increment is appended to the placeholder in place
- Cancelled placeholders survive only if they received content
- Failed placeholders are always removed and the error is reported
- The first completed reply triggers a title summarization

Assumes a single writer: the task driving the stream is the only one
mutating the thread's messages.
"""

import asyncio
import logging

from ..errors import OllachatError, StreamCancelledError, describe_error
from ..protocol import OllamaMessage
from ..session import ChatSessionController
from .base import ConversationStore
from .listener import ConversationListener
from .models import ChatMessage, ChatThread, Role, next_timestamp

logger = logging.getLogger(__name__)


class ConversationReducer:
    """Drives one thread's conversation through a ChatSessionController."""

    def __init__(
        self,
        store: ConversationStore,
        controller: ChatSessionController,
        thread: ChatThread,
        listener: ConversationListener | None = None,
        available_models: list[str] | None = None,
        default_model_name: str | None = None,
        title_summary_prompt: str | None = None,
    ) -> None:
        """Initialize the reducer.

        Args:
            store: Store holding the thread's messages
            controller: Controller used for chat calls
            thread: Thread being driven
            listener: Receives transcript notifications
            available_models: Installed model names, used to validate the selection
            default_model_name: Preferred model (defaults to the controller config)
            title_summary_prompt: Prompt used to derive a title (defaults to the
                controller config)
        """
        config = controller.config
        self._store = store
        self._controller = controller
        self._thread = thread
        self._listener = listener or ConversationListener()
        self._available_models = list(available_models or [])
        self._default_model_name = (
            config.default_model_name if default_model_name is None else default_model_name
        )
        self._title_summary_prompt = title_summary_prompt or config.title_summary_prompt
        self._thinking = False
        self._generation = 0
        self._title_task: asyncio.Task | None = None

    @property
    def thread(self) -> ChatThread:
        return self._thread

    @property
    def is_thinking(self) -> bool:
        return self._thinking

    @property
    def title_task(self) -> asyncio.Task | None:
        """Background title summarization started by the first reply."""
        return self._title_task

    async def messages(self) -> list[ChatMessage]:
        """The thread's messages in chronological order."""
        return await self._store.list_messages(self._thread.id)

    def ensure_model_selected(self, available_models: list[str] | None = None) -> str | None:
        """Make sure the thread has a usable model selected.

        Keeps the current selection unless it is missing or absent from a
        known model list; otherwise picks the default model name, falling back
        to the first available model.

        Args:
            available_models: Installed model names (replaces the known list)

        Returns:
            The selected model, or None when nothing can be selected
        """
        if available_models is not None:
            self._available_models = list(available_models)

        selected = self._thread.selected_model
        known = self._available_models
        if not selected or (known and selected not in known):
            if self._default_model_name:
                selected = self._default_model_name
            else:
                selected = known[0] if known else None
            self._thread.selected_model = selected
        return selected

    async def submit(self, text: str) -> ChatMessage | None:
        """Append a user message and stream the assistant's reply.

        Returns:
            The assistant message, or None if nothing was kept
        """
        if not text:
            return None

        messages = await self.messages()
        user_message = ChatMessage(
            role=Role.USER,
            content=text,
            created_at=next_timestamp(messages),
        )
        await self._store.append_message(self._thread.id, user_message)
        self._listener.on_message_appended(user_message)

        return await self.send_message_stream()

    async def send_message_stream(self) -> ChatMessage | None:
        """Stream a reply to the current history into a new assistant message.

        Returns:
            The assistant message (complete, or partial if cancelled after
            content arrived), or None if it was removed
        """
        self._generation += 1
        generation = self._generation
        self._set_thinking(True)
        placeholder: ChatMessage | None = None

        try:
            previous_model = self._thread.selected_model
            model = self.ensure_model_selected()
            if model != previous_model:
                await self._store.save_thread(self._thread)

            messages = await self.messages()
            history = [message.to_ollama() for message in messages]
            stream = self._controller.stream_conversation(model or "", history)

            async with stream:
                placeholder = ChatMessage(role=Role.ASSISTANT, created_at=next_timestamp(messages))
                stream.session.placeholder_message_id = placeholder.id
                await self._store.append_message(self._thread.id, placeholder)
                self._listener.on_message_appended(placeholder)

                async for delta in stream:
                    placeholder.append(delta)
                    await self._store.update_message(placeholder)
                    self._listener.on_message_updated(placeholder, delta)

            await self._on_completed()
            return placeholder

        except StreamCancelledError:
            logger.debug("Thread %s: stream cancelled", self._thread.id)
            return await self._discard_if_empty(placeholder)

        except asyncio.CancelledError:
            await self._discard_if_empty(placeholder)
            raise

        except Exception as exc:
            logger.warning(
                "Thread %s: stream failed: %s",
                self._thread.id,
                exc,
                exc_info=not isinstance(exc, OllachatError),
            )
            message = describe_error(exc)
            if message:
                self._listener.on_error(message)
            if placeholder is not None:
                await self._delete(placeholder.id)
            return None

        finally:
            if generation == self._generation:
                self._set_thinking(False)

    def cancel(self) -> None:
        """Cancel the reply being streamed, if any."""
        self._controller.cancel_stream()

    async def retry(self, message_id: str) -> ChatMessage | None:
        """Regenerate from a message.

        Deletes the message and everything after it, then streams a new reply
        to the remaining history.

        Returns:
            The new assistant message, or None if nothing was kept or the
            message does not exist
        """
        messages = await self.messages()
        index = next(
            (i for i, message in enumerate(messages) if message.id == message_id),
            None,
        )
        if index is None:
            return None

        self.cancel()
        for message in messages[index:]:
            await self._delete(message.id)

        return await self.send_message_stream()

    async def summarize_title(self) -> str | None:
        """Ask the model for a short title and apply it.

        Returns:
            The applied title, or None if the model returned nothing usable
            or the request failed
        """
        history = [
            message.to_ollama()
            for message in await self.messages()
            if message.content.strip()
        ]
        history.append(OllamaMessage(role=Role.USER.value, content=self._title_summary_prompt))

        try:
            summary = await self._controller.send_single_message(
                self._thread.selected_model or "", history
            )
        except OllachatError as exc:
            logger.warning("Error summarizing thread %s: %s", self._thread.id, exc)
            return None
        return await self.apply_title(summary)

    async def apply_title(self, summary: str) -> str | None:
        """Set the thread title from a summary if it is not blank."""
        title = summary.strip()
        if not title:
            return None
        self._thread.title = title
        await self._store.save_thread(self._thread)
        self._listener.on_title_changed(title)
        return title

    async def _on_completed(self) -> None:
        if self._thread.has_received_first_message:
            return
        self._thread.has_received_first_message = True
        await self._store.save_thread(self._thread)
        self._title_task = asyncio.create_task(
            self.summarize_title(),
            name=f"ollachat-title-{self._thread.id}",
        )

    async def _discard_if_empty(self, placeholder: ChatMessage | None) -> ChatMessage | None:
        if placeholder is None:
            return None
        if not placeholder.content:
            await self._delete(placeholder.id)
            return None
        return placeholder

    async def _delete(self, message_id: str) -> None:
        await self._store.delete_message(message_id)
        self._listener.on_message_deleted(message_id)

    def _set_thinking(self, thinking: bool) -> None:
        if self._thinking != thinking:
            self._thinking = thinking
            self._listener.on_thinking_changed(thinking)
