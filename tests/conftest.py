"""Pytest configuration and shared fixtures."""
import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from ollachat.config import ChatConfig
from ollachat.conversation import ConversationListener, ConversationReducer, InMemoryConversationStore
from ollachat.session import ChatSessionController
from ollachat.transport import HTTPRequest, LineStream, Transport


def chunk_line(content: str) -> str:
    """One streamed line carrying a content fragment."""
    return json.dumps({"message": {"role": "assistant", "content": content}, "done": False})


DONE_LINE = json.dumps({"message": None, "done": True})

STREAM_LINES = [
    chunk_line("This"),
    chunk_line(" is"),
    chunk_line(" a"),
    chunk_line(" stream."),
    DONE_LINE,
]


class FakeLineStream(LineStream):
    """Scripted line stream.

    hold_after: block before yielding the line at this index (or after the
        last line when it equals len(lines)) until release is set
    error_after: raise error instead of yielding the line at this index
    """

    def __init__(
        self,
        lines: list[str],
        hold_after: int | None = None,
        error_after: int | None = None,
        error: Exception | None = None,
    ) -> None:
        self.lines = list(lines)
        self.hold_after = hold_after
        self.error_after = error_after
        self.error = error
        self.release = asyncio.Event()
        self.consumed = 0
        self.closed = False

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[str]:
        for index, line in enumerate(self.lines):
            if index == self.hold_after:
                await self.release.wait()
            if index == self.error_after:
                raise self.error
            await asyncio.sleep(0)
            self.consumed += 1
            yield line
        if self.hold_after is not None and self.hold_after >= len(self.lines):
            await self.release.wait()

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport(Transport):
    """Transport returning scripted responses and recording requests."""

    def __init__(self) -> None:
        self.requests: list[HTTPRequest] = []
        self.responses: dict[str, tuple[bytes, int] | Exception] = {}
        self.streams: list[FakeLineStream | Exception] = []
        self.opened: list[FakeLineStream] = []
        self.on_stream: Callable[[HTTPRequest], None] | None = None
        self.closed = False

    def respond(self, path: str, payload: Any, status: int = 200) -> None:
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self.responses[path] = (body, status)

    def fail(self, path: str, error: Exception) -> None:
        self.responses[path] = error

    def queue_stream(self, lines: list[str] = STREAM_LINES, **kwargs: Any) -> FakeLineStream:
        stream = FakeLineStream(lines, **kwargs)
        self.streams.append(stream)
        return stream

    def queue_stream_error(self, error: Exception) -> None:
        self.streams.append(error)

    def bodies(self, path: str = "chat") -> list[dict]:
        """Decoded JSON bodies of requests sent to a path."""
        return [
            json.loads(request.body)
            for request in self.requests
            if request.url.endswith(f"/{path}") and request.body
        ]

    async def send(self, request: HTTPRequest) -> tuple[bytes, int]:
        self.requests.append(request)
        await asyncio.sleep(0)
        response = self.responses[request.url.rsplit("/", 1)[-1]]
        if isinstance(response, Exception):
            raise response
        return response

    async def stream(self, request: HTTPRequest) -> LineStream:
        self.requests.append(request)
        if self.on_stream is not None:
            self.on_stream(request)
        await asyncio.sleep(0)
        item = self.streams.pop(0)
        if isinstance(item, Exception):
            raise item
        self.opened.append(item)
        return item

    async def close(self) -> None:
        self.closed = True


class RecordingListener(ConversationListener):
    """Listener that records every notification."""

    def __init__(self) -> None:
        self.appended: list[str] = []
        self.deltas: list[str] = []
        self.deleted: list[str] = []
        self.titles: list[str] = []
        self.thinking: list[bool] = []
        self.errors: list[str] = []

    def on_message_appended(self, message):
        self.appended.append(message.id)

    def on_message_updated(self, message, delta):
        self.deltas.append(delta)

    def on_message_deleted(self, message_id):
        self.deleted.append(message_id)

    def on_title_changed(self, title):
        self.titles.append(title)

    def on_thinking_changed(self, thinking):
        self.thinking.append(thinking)

    def on_error(self, message):
        self.errors.append(message)


@pytest.fixture
def config():
    """Return a configuration with a non-default context window."""
    return ChatConfig(context_window=4096, title_summary_prompt="Title please")


@pytest.fixture
def transport():
    """Return a fresh scripted transport."""
    return FakeTransport()


@pytest.fixture
def controller(config, transport):
    """Return a controller wired to the scripted transport."""
    return ChatSessionController(config, transport=transport)


@pytest.fixture
def store():
    """Return an empty in-memory conversation store."""
    return InMemoryConversationStore()


@pytest.fixture
async def thread(store):
    """Return a thread with a model selected."""
    return await store.create_thread(selected_model="llama3")


@pytest.fixture
def listener():
    """Return a recording listener."""
    return RecordingListener()


@pytest.fixture
def reducer(store, controller, thread, listener):
    """Return a reducer for the default thread."""
    return ConversationReducer(
        store,
        controller,
        thread,
        listener=listener,
        available_models=["llama3", "mistral"],
    )


@pytest.fixture
def wait_until():
    """Return a helper that polls a condition while yielding to the event loop."""
    async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached")
            await asyncio.sleep(0.001)

    return _wait_until


@pytest.fixture
def make_line():
    """Return a builder for streamed content lines."""
    return chunk_line


@pytest.fixture
def done_line():
    """Return the terminal streamed line."""
    return DONE_LINE
