from typing import Any, Literal, TypedDict

from pydantic import BaseModel, ConfigDict, Field

ChunkType = Literal["session", "content", "done", "error"]


class ChatOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    session_id: str | None = Field(default=None, alias="sessionId")
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = Field(default=None, alias="maxTokens")
    context: str | None = None
    metadata: dict[str, Any] | None = None

    def merged(self, **overrides: Any) -> "ChatOptions":
        if not overrides:
            return self
        values = self.model_dump(exclude_none=True)
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ChatOptions(**values)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    stream: bool = False
    session_id: str | None = Field(default=None, alias="sessionId")
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = Field(default=None, alias="maxTokens")
    context: str | None = None
    metadata: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        # Only supplied options go on the wire, never as null placeholders.
        payload: dict[str, Any] = {"query": self.query, "stream": self.stream}
        if self.session_id is not None:
            payload["sessionId"] = self.session_id
        if self.model is not None:
            payload["model"] = self.model
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["maxTokens"] = self.max_tokens
        if self.context is not None:
            payload["context"] = self.context
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return payload


def build_chat_request(query: str, options: ChatOptions | None, *, stream: bool) -> ChatRequest:
    options = options or ChatOptions()
    return ChatRequest(
        query=query,
        stream=stream,
        session_id=options.session_id,
        model=options.model,
        temperature=options.temperature,
        max_tokens=options.max_tokens,
        context=options.context,
        metadata=dict(options.metadata) if options.metadata is not None else None,
    )


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    error: bool = False
    session_id: str | None = Field(default=None, alias="sessionId")
    response: str = ""
    out_of_context: bool | None = Field(default=None, alias="outOfContext")


class ChunkTiming(TypedDict, total=False):
    total: float


class ChatChunk(TypedDict, total=False):
    """One decoded ``data:`` frame of a streamed answer.

    Frames are passed through exactly as the server sent them, so ``type`` may
    hold a value outside :data:`ChunkType`.
    """

    type: ChunkType
    sessionId: str
    content: str
    timestamp: str
    timing: ChunkTiming
    outOfContext: bool
    message: str
