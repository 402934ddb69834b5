"""Wire models for the Ollama chat API.

These models mirror the JSON schema exchanged with the server. Unknown fields
sent by the server (timings, model name, created_at) are ignored on decode.
"""

from pydantic import BaseModel, ConfigDict, Field


class OllamaMessage(BaseModel):
    """A role/content pair as sent to and received from the server."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user' or 'assistant'")
    content: str = Field(description="Content of the message")


class ChatRequestOptions(BaseModel):
    """Generation options sent with every chat request."""

    model_config = ConfigDict(frozen=True)

    num_ctx: int = Field(description="Context window size in tokens")


class ChatRequest(BaseModel):
    """Body of POST /chat. Field order is the serialized key order."""

    model_config = ConfigDict(frozen=True)

    model: str
    messages: list[OllamaMessage]
    stream: bool
    options: ChatRequestOptions


class ChatResponsePartial(BaseModel):
    """One chat response record: the whole reply, or one line of a stream."""

    model_config = ConfigDict(frozen=True)

    message: OllamaMessage | None = None
    done: bool


class ModelInfo(BaseModel):
    """An installed model as listed by GET /tags."""

    name: str


class ModelListResponse(BaseModel):
    """Body of GET /tags."""

    models: list[ModelInfo]
