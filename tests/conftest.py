from __future__ import annotations

import asyncio
import io
import sys
from pathlib import Path

import pytest
from rich.console import Console

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from client.render import Renderer
from shared.message import Message, PeerNameAssign, encode

_CLOSE = object()


class FakeWebSocket:
    """Stands in for a websockets ClientConnection. Create it inside a running loop."""

    def __init__(self, frames=(), *, local_address=("127.0.0.1", 50123)) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent_messages: list[str] = []
        self.local_address = local_address
        self.closed = False
        self.send_error: Exception | None = None
        for frame in frames:
            self.feed(frame)

    def feed(self, frame) -> None:
        self.incoming.put_nowait(frame)

    def fail(self, exc: Exception) -> None:
        self.incoming.put_nowait(exc)

    def end(self) -> None:
        self.incoming.put_nowait(_CLOSE)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            item = await self.incoming.get()
            if item is _CLOSE:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def send(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True


class FakeConnector:
    def __init__(self, websocket=None, error: Exception | None = None) -> None:
        self.websocket = websocket
        self.error = error
        self.urls: list[str] = []

    async def __call__(self, url: str):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.websocket


def make_stdin(data: bytes = b"", eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    if data:
        reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


def assign_frame(name: str) -> str:
    return encode(Message(src_name="server", src_addr="127.0.0.1:8080", msg_type=PeerNameAssign(name), text="Your name is"))


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


@pytest.fixture
def renderer(console) -> Renderer:
    return Renderer(console)


@pytest.fixture
def fakes():
    """Test doubles for the transport and terminal."""
    class _Fakes:
        WebSocket = FakeWebSocket
        Connector = FakeConnector
        stdin = staticmethod(make_stdin)
        assign = staticmethod(assign_frame)
    return _Fakes
