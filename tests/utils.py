import asyncio
import json
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

TEST_API_KEY = "test-key"
TEST_BASE_URL = "https://chatai.test/api/v1/chat/"


def sse_frame(payload: dict) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


class ChunkedStream(httpx.AsyncByteStream):
    def __init__(self, chunks: list[bytes], transport: "TrackingTransport | None" = None) -> None:
        self._chunks = list(chunks)
        self._transport = transport
        self.closed = False
        self.sent = 0

    async def __aiter__(self):
        for chunk in self._chunks:
            if self._transport is not None and self._transport.closed:
                raise httpx.ReadError("connection pool is closed")
            self.sent += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class UnreadableStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        raise httpx.StreamClosed()
        yield b""  # pragma: no cover

    async def aclose(self) -> None:
        pass


class TrackingTransport(httpx.MockTransport):
    def __init__(self, handler) -> None:
        super().__init__(handler)
        self.closed = False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.closed:
            raise httpx.ConnectError("connection pool is closed", request=request)
        return await super().handle_async_request(request)

    async def aclose(self) -> None:
        self.closed = True


def event_stream_response(chunks: list[bytes], stream: httpx.AsyncByteStream | None = None) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        stream=stream or ChunkedStream(chunks),
    )


def create_fake_chat_app(frames: list[dict], answer: dict | None = None) -> FastAPI:
    app = FastAPI()
    app.state.requests = []

    @app.post("/api/v1/chat/")
    async def chat(request: Request):
        body = await request.json()
        app.state.requests.append(
            {
                "apikey": request.query_params.get("apikey"),
                "accept": request.headers.get("accept"),
                "origin": request.headers.get("origin"),
                "body": body,
            }
        )
        if body.get("stream"):
            async def event_stream():
                yield ": keep-alive\n\n"
                for frame in frames:
                    yield f"event: message\ndata: {json.dumps(frame)}\n\n"

            return StreamingResponse(event_stream(), media_type="text/event-stream")
        return JSONResponse(answer or {"error": False, "sessionId": "s-1", "response": "ok"})

    return app


@asynccontextmanager
async def trickling_server(body_parts: list[bytes], interval: float, content_type: str):
    """Serve every request on a local socket, writing one body part per ``interval``."""
    handlers: set[asyncio.Task] = set()

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        handlers.add(asyncio.current_task())
        try:
            head = await reader.readuntil(b"\r\n\r\n")
            length = 0
            for line in head.decode("latin-1").split("\r\n"):
                name, _, value = line.partition(":")
                if name.lower() == "content-length":
                    length = int(value)
            await reader.readexactly(length)
            writer.write(
                f"HTTP/1.1 200 OK\r\nContent-Type: {content_type}\r\nConnection: close\r\n\r\n".encode()
            )
            for part in body_parts:
                await writer.drain()
                await asyncio.sleep(interval)
                writer.write(part)
            await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}/api/v1/chat/"
    finally:
        for task in handlers:
            task.cancel()
        server.close()
        await server.wait_closed()
