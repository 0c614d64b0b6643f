from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "-"

_current_request_id: ContextVar[str] = ContextVar("chatai_request_id", default=NO_REQUEST_ID)


def set_request_id(value: str) -> Token[str]:
    return _current_request_id.set(value or NO_REQUEST_ID)


def reset_request_id(token: Token[str]) -> None:
    _current_request_id.reset(token)


def get_request_id() -> str:
    return _current_request_id.get()


@contextmanager
def request_id_scope(value: str) -> Iterator[str]:
    """Send ``value`` as X-Request-ID on every call made inside the block."""
    token = set_request_id(value)
    try:
        yield value
    finally:
        reset_request_id(token)


def request_id_headers() -> dict[str, str]:
    request_id = get_request_id()
    if request_id == NO_REQUEST_ID:
        return {}
    return {REQUEST_ID_HEADER: request_id}
