"""Streaming chat session controller.

This module hides the lifecycle of chat calls against the Ollama API:
- Request construction (endpoint paths, headers, stream flag, options)
- The producer task that reads a streamed response line by line
- Supersession: at most one streamed generation is active per controller

Supports async context manager protocol for proper resource cleanup:
    async with ChatSessionController(config) as controller:
        models = await controller.fetch_model_list()
"""

import asyncio
import functools
import logging
from collections.abc import Sequence
from typing import Any

from ..config import ChatConfig
from ..errors import ModelNotSelectedError, StreamCancelledError
from ..protocol import (
    OllamaMessage,
    decode_chat_response,
    decode_model_list,
    decode_stream_line,
    encode_chat_request,
)
from ..transport import HTTPRequest, LineStream, Transport, create_transport
from .models import StreamSession, StreamState
from .stream import ChatStream, IncrementChannel

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


def _require_model(model: str) -> None:
    if not model:
        raise ModelNotSelectedError()


class ChatSessionController:
    """Issues chat calls and owns the single active streamed generation."""

    def __init__(
        self,
        config: ChatConfig | None = None,
        transport: Transport | None = None,
    ):
        """Initialize the controller.

        Args:
            config: Client configuration (defaults to ChatConfig())
            transport: Transport to send requests through; an httpx transport
                built from the config is used when omitted
        """
        self._config = config or ChatConfig()
        self._transport = transport or create_transport(
            "httpx",
            connect_timeout=self._config.connect_timeout,
            read_timeout=self._config.read_timeout,
        )
        self._active: StreamSession | None = None

    @property
    def config(self) -> ChatConfig:
        return self._config

    @config.setter
    def config(self, config: ChatConfig) -> None:
        self._config = config

    @property
    def active_session(self) -> StreamSession | None:
        """The streamed generation currently in flight, if any."""
        return self._active

    def _endpoint(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{path}"

    def _chat_request(
        self,
        model: str,
        messages: Sequence[OllamaMessage],
        stream: bool
    ) -> HTTPRequest:
        body = encode_chat_request(
            model,
            messages,
            stream=stream,
            context_window=self._config.context_window,
        )
        return HTTPRequest(
            method="POST",
            url=self._endpoint("chat"),
            headers=dict(JSON_HEADERS),
            body=body,
        )

    async def fetch_model_list(self) -> list[str]:
        """List installed model names in the order the server reports them.

        Raises:
            NetworkError: If the request fails
            DecodingError: If the response does not match the schema
        """
        request = HTTPRequest(method="GET", url=self._endpoint("tags"))
        data, _ = await self._transport.send(request)
        models = decode_model_list(data)
        logger.debug("Fetched %d models", len(models))
        return models

    async def send_single_message(
        self,
        model: str,
        messages: Sequence[OllamaMessage]
    ) -> str:
        """Send a non-streamed chat request.

        Cancels any active streamed generation first.

        Args:
            model: Model name (must be non-empty)
            messages: Conversation history, in order

        Returns:
            Assistant reply content, or "" when the response has no message

        Raises:
            ModelNotSelectedError: If model is empty
            NetworkError: If the request fails
            DecodingError: If the response does not match the schema
        """
        _require_model(model)
        self.cancel_stream()

        request = self._chat_request(model, messages, stream=False)
        data, _ = await self._transport.send(request)
        response = decode_chat_response(data)
        return response.message.content if response.message is not None else ""

    def stream_conversation(
        self,
        model: str,
        messages: Sequence[OllamaMessage],
        placeholder_message_id: str | None = None,
    ) -> ChatStream:
        """Start a streamed generation.

        Any active generation is cancelled before the new request is built.
        Must be called from a running event loop; the request is issued by a
        background task and increments are read from the returned stream.

        Args:
            model: Model name (must be non-empty)
            messages: Conversation history, in order
            placeholder_message_id: Message that will receive the output

        Returns:
            ChatStream yielding content increments

        Raises:
            ModelNotSelectedError: If model is empty
        """
        _require_model(model)
        self.cancel_stream()

        session = StreamSession(placeholder_message_id)
        channel = IncrementChannel(self._config.stream_buffer_size)
        request = self._chat_request(model, messages, stream=True)

        self._active = session
        session.transition(StreamState.REQUESTING)
        task = asyncio.create_task(
            self._produce(session, channel, request),
            name=f"ollachat-stream-{session.id}",
        )
        session.attach(task)
        task.add_done_callback(functools.partial(self._on_producer_done, session, channel))
        return ChatStream(session, channel)

    def cancel_stream(self) -> None:
        """Cancel the active streamed generation, if there is one."""
        session = self._active
        if session is None:
            return
        self._active = None
        logger.debug("Stream %s: cancel requested", session.id)
        session.cancel()

    async def _produce(
        self,
        session: StreamSession,
        channel: IncrementChannel,
        request: HTTPRequest,
    ) -> None:
        logger.debug("Stream %s: starting request to %s", session.id, request.url)
        try:
            lines = await self._transport.stream(request)
            async with lines:
                session.transition(StreamState.STREAMING)
                logger.debug("Stream %s: connection established", session.id)
                completed = await self._consume(session, channel, lines)
        except Exception as exc:
            logger.warning("Stream %s failed: %s", session.id, exc)
            session.error = exc
            self._finish(session, StreamState.FAILED)
            await channel.close(exc)
            return

        if completed:
            self._finish(session, StreamState.COMPLETED)
            await channel.close()
        else:
            self._finish(session, StreamState.CANCELLED)
            channel.abort(StreamCancelledError())

    async def _consume(
        self,
        session: StreamSession,
        channel: IncrementChannel,
        lines: LineStream,
    ) -> bool:
        """Forward content from lines into the channel.

        Returns:
            True when the stream completed, False when it was cancelled
        """
        async for line in lines:
            if session.cancelled:
                logger.debug("Stream %s: cancelled after %d lines", session.id, session.lines_consumed)
                return False
            session.lines_consumed += 1

            record = decode_stream_line(line)
            if record is None:
                continue
            if record.message is not None and record.message.content:
                await channel.put(record.message.content)
            if record.done:
                logger.debug("Stream %s: done after %d lines", session.id, session.lines_consumed)
                return True

        logger.debug("Stream %s: ended without a done record", session.id)
        return True

    def _finish(self, session: StreamSession, state: StreamState) -> None:
        session.transition(state)
        if self._active is session:
            self._active = None

    def _on_producer_done(
        self,
        session: StreamSession,
        channel: IncrementChannel,
        task: asyncio.Task,
    ) -> None:
        # Reached without a terminal marker only when the task was cancelled
        # before or while awaiting.
        if not session.state.is_terminal:
            logger.debug("Stream %s: task cancelled", session.id)
        self._finish(session, StreamState.CANCELLED)
        if session.state == StreamState.COMPLETED:
            channel.abort(None)
        else:
            channel.abort(session.error or StreamCancelledError())

    async def close(self) -> None:
        """Cancel any active generation and close the transport."""
        self.cancel_stream()
        await self._transport.close()

    async def __aenter__(self) -> "ChatSessionController":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
