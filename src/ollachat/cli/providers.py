"""Provider factory functions for CLI.

Centralizes creation of the configuration, controller and conversation store
from environment variables. Hides configuration details from command
implementations.
"""

import os

from ..config import (
    DEFAULT_BASE_URL,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_TITLE_SUMMARY_PROMPT,
    ChatConfig,
)
from ..conversation import ConversationStore, create_conversation_store
from ..session import ChatSessionController

DEFAULT_DB_PATH = "~/.ollachat/ollachat.db"


def _env_float(name: str, default: float | None) -> float | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    if value.lower() == "none":
        return None
    return float(value)


def get_config(model: str | None = None) -> ChatConfig:
    """Create the client configuration from environment variables.

    Args:
        model: Model name overriding OLLACHAT_DEFAULT_MODEL

    Returns:
        ChatConfig instance

    Environment variables:
        OLLAMA_BASE_URL: API base URL (default: http://localhost:11434/api)
        OLLACHAT_CONTEXT_WINDOW: Context window size (default: 2048)
        OLLACHAT_TITLE_PROMPT: Prompt used to summarize thread titles
        OLLACHAT_DEFAULT_MODEL: Preferred model name (default: none)
        OLLACHAT_CONNECT_TIMEOUT: Connect timeout in seconds (default: 5)
        OLLACHAT_READ_TIMEOUT: Read timeout in seconds, or "none" (default: 300)
    """
    return ChatConfig(
        base_url=os.getenv("OLLAMA_BASE_URL", DEFAULT_BASE_URL),
        context_window=int(os.getenv("OLLACHAT_CONTEXT_WINDOW", str(DEFAULT_CONTEXT_WINDOW))),
        title_summary_prompt=os.getenv("OLLACHAT_TITLE_PROMPT", DEFAULT_TITLE_SUMMARY_PROMPT),
        default_model_name=model or os.getenv("OLLACHAT_DEFAULT_MODEL", ""),
        connect_timeout=_env_float("OLLACHAT_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
        read_timeout=_env_float("OLLACHAT_READ_TIMEOUT", DEFAULT_READ_TIMEOUT),
    )


def get_controller(config: ChatConfig) -> ChatSessionController:
    """Create a session controller talking to the configured server."""
    return ChatSessionController(config)


def get_store(backend: str = "memory", db_path: str | None = None) -> ConversationStore:
    """Create a conversation store.

    Args:
        backend: "memory" or "sqlite"
        db_path: SQLite database path (default: ~/.ollachat/ollachat.db)

    Returns:
        ConversationStore instance (not yet connected)

    Environment variables:
        OLLACHAT_DB_PATH: SQLite database path, used when db_path is not given
    """
    if backend == "sqlite":
        path = db_path or os.getenv("OLLACHAT_DB_PATH", DEFAULT_DB_PATH)
        return create_conversation_store("sqlite", path=os.path.expanduser(path))
    return create_conversation_store(backend)
