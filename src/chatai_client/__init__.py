from chatai_client.client import ChatAIClient
from chatai_client.errors import ChatAIError, ErrorKind
from chatai_client.logging_config import configure_logging
from chatai_client.request_id import (
    get_request_id,
    request_id_scope,
    reset_request_id,
    set_request_id,
)
from chatai_client.schemas import (
    ChatChunk,
    ChatOptions,
    ChatRequest,
    ChatResponse,
    ChunkTiming,
    build_chat_request,
)
from chatai_client.settings import ClientConfig
from chatai_client.sse import SSEDecoder, aiter_chunks, iter_chunks

__version__ = "0.1.0"

__all__ = [
    "ChatAIClient",
    "ChatAIError",
    "ChatChunk",
    "ChatOptions",
    "ChatRequest",
    "ChatResponse",
    "ChunkTiming",
    "ClientConfig",
    "ErrorKind",
    "SSEDecoder",
    "aiter_chunks",
    "build_chat_request",
    "configure_logging",
    "get_request_id",
    "iter_chunks",
    "request_id_scope",
    "reset_request_id",
    "set_request_id",
]
