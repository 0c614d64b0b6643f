import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from typing import Any

from chatai_client.schemas import ChatChunk

DATA_PREFIX = "data: "

_NO_FRAME = object()

logger = logging.getLogger(__name__)


class SSEDecoder:
    """Incremental decoder for ``data:`` framed Server-Sent Events.

    Bytes may be fed in arbitrary pieces. Text is decoded with a stateful UTF-8
    decoder so a multi-byte character split across two feeds survives, and only
    newline-terminated lines are parsed; the unterminated tail waits for the
    next feed or for :meth:`flush`.

    Each ``data:`` payload is JSON-decoded and returned as-is, ``null`` included. Frames that are
    not valid JSON are logged and dropped without interrupting the stream.
    """

    def __init__(self) -> None:
        self._text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> list[ChatChunk]:
        self._buffer += self._text_decoder.decode(data)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._parse_lines(lines)

    def flush(self) -> list[ChatChunk]:
        tail = self._buffer + self._text_decoder.decode(b"", final=True)
        self._buffer = ""
        self._text_decoder.reset()
        if not tail.strip():
            return []
        return self._parse_lines(tail.split("\n"))

    def _parse_lines(self, lines: list[str]) -> list[ChatChunk]:
        chunks: list[ChatChunk] = []
        for line in lines:
            chunk = _parse_line(line)
            if chunk is not _NO_FRAME:
                chunks.append(chunk)
        return chunks


def _parse_line(line: str) -> Any:
    if not line.startswith(DATA_PREFIX):
        return _NO_FRAME
    data = line[len(DATA_PREFIX):].strip()
    if not data:
        return _NO_FRAME
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        logger.warning("failed to parse SSE data: %s", data)
        return _NO_FRAME


async def aiter_chunks(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[ChatChunk]:
    decoder = SSEDecoder()
    async for data in byte_stream:
        for chunk in decoder.feed(data):
            yield chunk
    for chunk in decoder.flush():
        yield chunk


def iter_chunks(byte_stream: Iterable[bytes]) -> Iterator[ChatChunk]:
    decoder = SSEDecoder()
    for data in byte_stream:
        yield from decoder.feed(data)
    yield from decoder.flush()
