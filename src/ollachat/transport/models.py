"""Transport-neutral request model."""

from pydantic import BaseModel, ConfigDict, Field


class HTTPRequest(BaseModel):
    """A single HTTP request handed to a Transport."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="HTTP method, e.g. 'GET' or 'POST'")
    url: str = Field(description="Fully-qualified target URL")
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes | None = Field(default=None, description="Raw request body")
