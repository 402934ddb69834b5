"""Streaming session state.

A StreamSession is the bookkeeping for one in-flight streamed generation. It
owns the cancellation flag and the producer task; the controller owns the
session's place as "the active one".
"""

import asyncio
import logging
from enum import Enum
from uuid import uuid4

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    """Lifecycle of a streamed generation."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.COMPLETED, StreamState.CANCELLED, StreamState.FAILED)


class StreamSession:
    """One in-flight streamed call.

    Attributes:
        id: Unique session identifier (used in log lines)
        placeholder_message_id: Assistant message receiving this stream's output
        state: Current lifecycle state
        lines_consumed: Number of response lines read so far
        error: Error that ended the session, when it failed
    """

    def __init__(self, placeholder_message_id: str | None = None) -> None:
        self.id = uuid4().hex[:12]
        self.placeholder_message_id = placeholder_message_id
        self.state = StreamState.IDLE
        self.lines_consumed = 0
        self.error: BaseException | None = None
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._cancelled

    @property
    def is_active(self) -> bool:
        return not self.state.is_terminal

    def attach(self, task: asyncio.Task) -> None:
        """Bind the producer task that runs this session."""
        self._task = task

    def transition(self, state: StreamState) -> None:
        if self.state.is_terminal:
            return
        logger.debug("Stream %s: %s -> %s", self.id, self.state.value, state.value)
        self.state = state

    def cancel(self) -> None:
        """Request cancellation. Safe to call more than once.

        The flag is checked before each line; the producer task is also
        cancelled so a pending connect or read wakes up at its next await.
        """
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def __repr__(self) -> str:
        return f"StreamSession(id={self.id!r}, state={self.state.value!r})"
