"""Client configuration.

Centralizes the defaults and the configuration object handed to the session
controller. Nothing here reads the environment; the CLI does that.
"""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BASE_URL = "http://localhost:11434/api"
DEFAULT_CONTEXT_WINDOW = 2048
DEFAULT_TITLE_SUMMARY_PROMPT = (
    "Summarize our conversation so far as a short title of at most five words. "
    "Reply with the title only, without quotes or punctuation."
)
DEFAULT_THREAD_TITLE = "New Chat"

# Transport timeouts (seconds)
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 300.0  # Model loads can stall the first line for minutes

# Increments buffered between the producer task and the consumer
DEFAULT_STREAM_BUFFER_SIZE = 64


class ChatConfig(BaseModel):
    """Configuration consumed by the session controller and the reducer."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Base URL of the Ollama API")
    context_window: int = Field(
        default=DEFAULT_CONTEXT_WINDOW,
        description="Context window size sent as options.num_ctx"
    )
    title_summary_prompt: str = Field(
        default=DEFAULT_TITLE_SUMMARY_PROMPT,
        description="Prompt appended to the history to derive a thread title"
    )
    default_model_name: str = Field(
        default="",
        description="Model preferred when a thread has none selected"
    )
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT)
    read_timeout: float | None = Field(default=DEFAULT_READ_TIMEOUT)
    stream_buffer_size: int = Field(default=DEFAULT_STREAM_BUFFER_SIZE, ge=1)
