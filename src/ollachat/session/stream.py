"""Consumer side of a streamed generation.

Hides how increments travel from the producer task to the consumer: a
bounded asyncio.Queue carrying text items and one terminal marker.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any

from .models import StreamSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _End:
    """Terminal marker; error is None for a normal completion."""

    error: BaseException | None = None


class IncrementChannel:
    """Bounded single-consumer channel of text increments.

    The terminal marker never displaces text: when the buffer is full at
    abort time it is held back and enqueued as soon as the consumer frees a
    slot.
    """

    def __init__(self, maxsize: int) -> None:
        self._queue: asyncio.Queue[str | _End] = asyncio.Queue(maxsize)
        self._closed = False
        self._held_end: _End | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, text: str) -> None:
        await self._queue.put(text)

    async def get(self) -> "str | _End":
        item = await self._queue.get()
        if self._held_end is not None and not self._queue.full():
            self._queue.put_nowait(self._held_end)
            self._held_end = None
        return item

    async def close(self, error: BaseException | None = None) -> None:
        """Enqueue the terminal marker after everything already sent."""
        if self._closed:
            return
        await self._queue.put(_End(error))
        self._closed = True

    def abort(self, error: BaseException | None) -> None:
        """Enqueue the terminal marker without waiting.

        Increments already buffered are still delivered first.
        """
        if self._closed:
            return
        self._closed = True
        end = _End(error)
        if self._queue.full():
            self._held_end = end
        else:
            self._queue.put_nowait(end)


class ChatStream:
    """Async iterator over the text increments of one streamed generation.

    Ends normally when the server reports completion, raises
    StreamCancelledError when cancelled, or re-raises the error that ended
    the stream. Leaving early through aclose() (or ``async with``) cancels the
    generation; a stream dropped without either cancels it when collected.

    Usage:
        async with controller.stream_conversation(model, history) as stream:
            async for delta in stream:
                print(delta, end="")
    """

    def __init__(self, session: StreamSession, channel: IncrementChannel) -> None:
        self._session = session
        self._channel = channel
        self._exhausted = False

    @property
    def session(self) -> StreamSession:
        return self._session

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> str:
        if self._exhausted:
            raise StopAsyncIteration
        item = await self._channel.get()
        if isinstance(item, _End):
            self._exhausted = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        return item

    async def collect(self) -> str:
        """Consume the whole stream and return the concatenated text."""
        return "".join([delta async for delta in self])

    async def aclose(self) -> None:
        """Stop listening; cancels the generation if it is still running."""
        self._exhausted = True
        if self._session.is_active:
            self._session.cancel()

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    def __del__(self) -> None:
        if self._exhausted or not self._session.is_active:
            return
        logger.debug("Stream %s: dropped without aclose, cancelling", self._session.id)
        # The loop may already be closed at interpreter shutdown
        with contextlib.suppress(RuntimeError):
            self._session.cancel()
