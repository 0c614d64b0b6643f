from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    CONFIG = "config"
    HTTP = "http"
    API = "api"
    NETWORK = "network"
    NO_BODY = "no_body"


class ChatAIError(Exception):
    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        status_code: int | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.response = response

    def __repr__(self) -> str:
        return (
            f"ChatAIError(kind={self.kind.value!r}, status_code={self.status_code!r}, "
            f"message={self.message!r})"
        )


def http_error(status_code: int, body: str) -> ChatAIError:
    return ChatAIError(
        f"API request failed: {status_code} - {body}",
        ErrorKind.HTTP,
        status_code=status_code,
        response=body,
    )


def network_error(reason: str) -> ChatAIError:
    return ChatAIError(f"Network error: {reason}", ErrorKind.NETWORK)
