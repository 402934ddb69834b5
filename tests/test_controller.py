"""Tests for ChatSessionController."""
import pytest

from ollachat.config import ChatConfig
from ollachat.errors import (
    DecodingError,
    ModelNotSelectedError,
    NetworkError,
    NetworkErrorKind,
    StreamCancelledError,
)
from ollachat.protocol import OllamaMessage
from ollachat.session import ChatSessionController, StreamState

HISTORY = [
    OllamaMessage(role="user", content="Hi"),
    OllamaMessage(role="assistant", content="Hello!"),
    OllamaMessage(role="user", content="Tell me a story"),
]


class TestSingleShot:
    """Tests for model listing and non-streamed chat."""

    @pytest.mark.asyncio
    async def test_fetch_model_list(self, controller, transport):
        """Test that names come back in server order from GET /api/tags."""
        transport.respond("tags", {"models": [{"name": "mistral"}, {"name": "llama3"}]})

        names = await controller.fetch_model_list()

        assert names == ["mistral", "llama3"]
        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url == "http://localhost:11434/api/tags"

    @pytest.mark.asyncio
    async def test_send_single_message(self, controller, transport):
        """Test the request body and the returned content."""
        transport.respond("chat", {"message": {"role": "assistant", "content": "Once upon"}, "done": True})

        reply = await controller.send_single_message("llama3", HISTORY)

        assert reply == "Once upon"
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url == "http://localhost:11434/api/chat"
        assert request.headers["Content-Type"] == "application/json"
        assert transport.bodies() == [{
            "model": "llama3",
            "messages": [m.model_dump() for m in HISTORY],
            "stream": False,
            "options": {"num_ctx": 4096},
        }]

    @pytest.mark.asyncio
    async def test_config_change_applies_to_next_request(self, controller, transport):
        """Test that a replaced configuration is used by later calls."""
        transport.respond("chat", {"message": None, "done": True})
        controller.config = ChatConfig(base_url="http://gpu-box:11434/api/", context_window=512)

        await controller.send_single_message("llama3", HISTORY)

        assert transport.requests[0].url == "http://gpu-box:11434/api/chat"
        assert transport.bodies()[0]["options"] == {"num_ctx": 512}

    @pytest.mark.asyncio
    async def test_null_message_returns_empty_string(self, controller, transport):
        """Test that a response without a message yields ''."""
        transport.respond("chat", {"message": None, "done": True})
        assert await controller.send_single_message("llama3", HISTORY) == ""

    @pytest.mark.asyncio
    async def test_schema_mismatch(self, controller, transport):
        """Test that an unexpected body raises DecodingError."""
        transport.respond("chat", {"invalid_structure": True})
        with pytest.raises(DecodingError):
            await controller.send_single_message("llama3", HISTORY)

    @pytest.mark.asyncio
    async def test_network_error_propagates(self, controller, transport):
        """Test that transport errors reach the caller unchanged."""
        error = NetworkError("refused", kind=NetworkErrorKind.CANNOT_CONNECT)
        transport.fail("chat", error)

        with pytest.raises(NetworkError) as exc_info:
            await controller.send_single_message("llama3", HISTORY)
        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_empty_model_is_rejected(self, controller, transport):
        """Test that no request is sent without a model."""
        with pytest.raises(ModelNotSelectedError):
            await controller.send_single_message("", HISTORY)
        with pytest.raises(ModelNotSelectedError):
            controller.stream_conversation("", HISTORY)
        assert transport.requests == []


class TestStreaming:
    """Tests for streamed generations."""

    @pytest.mark.asyncio
    async def test_stream_yields_fragments_in_order(self, controller, transport, make_line, done_line):
        """Test that content is forwarded and reading stops at the done record."""
        lines = transport.queue_stream([
            make_line("This"),
            make_line(" is"),
            make_line(" a"),
            make_line(" stream."),
            done_line,
            make_line(" never read"),
        ])

        async with controller.stream_conversation("llama3", HISTORY) as stream:
            deltas = [delta async for delta in stream]

        assert deltas == ["This", " is", " a", " stream."]
        assert lines.consumed == 5
        assert lines.closed
        assert stream.session.lines_consumed == 5
        assert stream.session.state == StreamState.COMPLETED
        assert controller.active_session is None

    @pytest.mark.asyncio
    async def test_stream_request_body(self, controller, transport):
        """Test that the streamed request sets stream=true and the context window."""
        transport.queue_stream()

        await controller.stream_conversation("llama3", HISTORY).collect()

        body = transport.bodies()[0]
        assert body["stream"] is True
        assert body["options"] == {"num_ctx": 4096}
        assert body["messages"] == [m.model_dump() for m in HISTORY]

    @pytest.mark.asyncio
    async def test_undecodable_lines_are_skipped(self, controller, transport, make_line, done_line):
        """Test that garbage, blank and empty-content lines produce nothing."""
        transport.queue_stream([
            make_line("a"),
            "garbage",
            "",
            make_line(""),
            make_line("b"),
            done_line,
        ])

        stream = controller.stream_conversation("llama3", HISTORY)

        assert await stream.collect() == "ab"
        assert stream.session.lines_consumed == 6

    @pytest.mark.asyncio
    async def test_stream_without_done_record_completes(self, controller, transport, make_line):
        """Test that an exhausted body ends the stream normally."""
        transport.queue_stream([make_line("partial")])

        stream = controller.stream_conversation("llama3", HISTORY)

        assert await stream.collect() == "partial"
        assert stream.session.state == StreamState.COMPLETED

    @pytest.mark.asyncio
    async def test_placeholder_id_is_recorded(self, controller, transport):
        """Test that the session remembers the message it feeds."""
        transport.queue_stream()
        stream = controller.stream_conversation("llama3", HISTORY, placeholder_message_id="msg-1")
        await stream.collect()
        assert stream.session.placeholder_message_id == "msg-1"

    @pytest.mark.asyncio
    async def test_connection_failure(self, controller, transport):
        """Test that a failure to connect ends the stream with no increments."""
        error = NetworkError("timed out", kind=NetworkErrorKind.TIMEOUT)
        transport.queue_stream_error(error)

        stream = controller.stream_conversation("llama3", HISTORY)
        deltas = []
        with pytest.raises(NetworkError) as exc_info:
            async for delta in stream:
                deltas.append(delta)

        assert exc_info.value is error
        assert deltas == []
        assert stream.session.state == StreamState.FAILED
        assert stream.session.error is error
        assert controller.active_session is None

    @pytest.mark.asyncio
    async def test_failure_mid_stream(self, controller, transport):
        """Test that increments before a read failure are still delivered."""
        error = NetworkError("connection reset")
        lines = transport.queue_stream(error_after=2, error=error)

        stream = controller.stream_conversation("llama3", HISTORY)
        deltas = []
        with pytest.raises(NetworkError):
            async for delta in stream:
                deltas.append(delta)

        assert deltas == ["This", " is"]
        assert lines.closed
        assert stream.session.state == StreamState.FAILED

    @pytest.mark.asyncio
    async def test_any_reader_exception_fails_the_stream(self, controller, transport):
        """Test that an exception other than NetworkError also ends in FAILED."""
        error = ValueError("bad chunk")
        transport.queue_stream(error_after=1, error=error)

        stream = controller.stream_conversation("llama3", HISTORY)
        with pytest.raises(ValueError) as exc_info:
            await stream.collect()

        assert exc_info.value is error
        assert stream.session.state == StreamState.FAILED
        assert controller.active_session is None


class TestCancellation:
    """Tests for cancellation and supersession."""

    @pytest.mark.asyncio
    async def test_new_stream_cancels_previous_before_request(self, controller, transport, wait_until):
        """Test that at most one generation is active at a time."""
        transport.queue_stream(hold_after=1)
        transport.queue_stream()

        first = controller.stream_conversation("llama3", HISTORY)
        await wait_until(lambda: first.session.lines_consumed == 1)

        seen = []
        transport.on_stream = lambda request: seen.append(first.session.cancelled)
        second = controller.stream_conversation("llama3", HISTORY)

        assert controller.active_session is second.session
        assert await first.__anext__() == "This"
        with pytest.raises(StreamCancelledError):
            await first.__anext__()
        assert await second.collect() == "This is a stream."

        assert seen == [True]
        assert first.session.state == StreamState.CANCELLED
        assert transport.opened[0].closed
        assert second.session.state == StreamState.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_stream_is_idempotent(self, controller, transport, wait_until):
        """Test that repeated cancels leave a single cancelled session."""
        lines = transport.queue_stream(hold_after=2)
        stream = controller.stream_conversation("llama3", HISTORY)
        await wait_until(lambda: stream.session.state == StreamState.STREAMING)

        controller.cancel_stream()
        controller.cancel_stream()

        with pytest.raises(StreamCancelledError):
            await stream.collect()
        await wait_until(lambda: stream.session.state == StreamState.CANCELLED)
        assert controller.active_session is None
        assert lines.closed

    @pytest.mark.asyncio
    async def test_cancel_without_active_stream(self, controller):
        """Test that cancelling with nothing in flight is a no-op."""
        controller.cancel_stream()
        assert controller.active_session is None

    @pytest.mark.asyncio
    async def test_cancel_before_request_sends_nothing(self, controller, transport, wait_until):
        """Test that a generation cancelled before it starts never hits the server."""
        transport.queue_stream()

        stream = controller.stream_conversation("llama3", HISTORY)
        controller.cancel_stream()

        with pytest.raises(StreamCancelledError):
            await stream.collect()
        await wait_until(lambda: stream.session.state == StreamState.CANCELLED)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_leaving_early_cancels(self, controller, transport, wait_until):
        """Test that closing the stream mid-way cancels the generation."""
        lines = transport.queue_stream(hold_after=2)

        async with controller.stream_conversation("llama3", HISTORY) as stream:
            async for delta in stream:
                assert delta == "This"
                break

        await wait_until(lambda: stream.session.state == StreamState.CANCELLED)
        assert stream.session.cancelled
        assert lines.closed
        assert controller.active_session is None

    @pytest.mark.asyncio
    async def test_single_message_cancels_active_stream(self, controller, transport, wait_until):
        """Test that a single-shot call supersedes a running stream."""
        transport.queue_stream(hold_after=1)
        transport.respond("chat", {"message": {"role": "assistant", "content": "Title"}, "done": True})

        stream = controller.stream_conversation("llama3", HISTORY)
        await wait_until(lambda: stream.session.state == StreamState.STREAMING)

        assert await controller.send_single_message("llama3", HISTORY) == "Title"
        assert stream.session.cancelled
        assert controller.active_session is None
        await wait_until(lambda: stream.session.state == StreamState.CANCELLED)

    @pytest.mark.asyncio
    async def test_close_cancels_and_closes_transport(self, controller, transport, wait_until):
        """Test that close() releases everything."""
        transport.queue_stream(hold_after=0)
        stream = controller.stream_conversation("llama3", HISTORY)
        await wait_until(lambda: stream.session.state == StreamState.STREAMING)

        async with controller:
            pass

        assert transport.closed
        with pytest.raises(StreamCancelledError):
            await stream.collect()


class TestBackpressure:
    """Tests for a consumer slower than the server."""

    @pytest.fixture
    def small_buffer(self, transport):
        """Controller whose channel holds two increments."""
        return ChatSessionController(ChatConfig(stream_buffer_size=2), transport=transport)

    @pytest.mark.asyncio
    async def test_cancel_with_full_buffer_keeps_buffered_increments(
        self, small_buffer, transport, make_line, wait_until
    ):
        """Test that increments already buffered survive a cancel, in order."""
        transport.queue_stream([make_line(text) for text in "ABCDEF"])

        stream = small_buffer.stream_conversation("llama3", HISTORY)
        # Third line read means A and B are buffered and the put of C is blocked
        await wait_until(lambda: stream.session.lines_consumed == 3)
        small_buffer.cancel_stream()
        await wait_until(lambda: stream.session.state == StreamState.CANCELLED)

        deltas = []
        with pytest.raises(StreamCancelledError):
            async for delta in stream:
                deltas.append(delta)

        assert deltas == ["A", "B"]

    @pytest.mark.asyncio
    async def test_failure_with_full_buffer_keeps_buffered_increments(
        self, small_buffer, transport, make_line, wait_until
    ):
        """Test that the error is delivered after every buffered increment."""
        error = NetworkError("connection reset")
        transport.queue_stream([make_line(text) for text in "ABCD"], error_after=2, error=error)

        stream = small_buffer.stream_conversation("llama3", HISTORY)
        await wait_until(lambda: stream.session.state == StreamState.FAILED)

        deltas = []
        with pytest.raises(NetworkError):
            async for delta in stream:
                deltas.append(delta)

        assert deltas == ["A", "B"]

    @pytest.mark.asyncio
    async def test_dropped_stream_cancels_generation(self, small_buffer, transport, make_line, wait_until):
        """Test that abandoning an iteration without aclose still stops the server."""
        lines = transport.queue_stream([make_line(text) for text in "ABCDEF"])

        stream = small_buffer.stream_conversation("llama3", HISTORY)
        session = stream.session
        await wait_until(lambda: session.lines_consumed == 3)
        first = await stream.__anext__()
        del stream
        assert first == "A"

        await wait_until(lambda: session.state == StreamState.CANCELLED)
        assert session.cancelled
        assert lines.closed
