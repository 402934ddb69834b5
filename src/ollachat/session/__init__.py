"""Streaming session controller.

Owns chat calls against the Ollama API and the lifecycle of the single active
streamed generation.
"""

from .controller import ChatSessionController
from .models import StreamSession, StreamState
from .stream import ChatStream

__all__ = [
    "ChatSessionController",
    "ChatStream",
    "StreamSession",
    "StreamState",
]
