from __future__ import annotations
import asyncio
from dataclasses import replace
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import aioconsole
import websockets

from client.commands import parse_command, strip_line_ending
from client.config import ClientConfig
from client.handshake import await_identity
from client.render import Renderer
from client.state import ClientIdentity, SessionState
from shared.errors import ConnectError, DecodeError, InputError, ReceiveError, SendError
from shared.log import get_logger, log_chat_message
from shared.message import Message, decode, encode
from shared.utils import format_socket_addr

logger = get_logger(__name__)

Frame = Union[str, bytes]
Connector = Callable[[str], Awaitable[Any]]


class ChatClient:
    """
    One PeerChat session against a single server.

    connect() opens ws://<addr>/socket, waits for the server to assign a
    name, then runs two pumps until either finishes:

        stdin -> parse_command -> queue -> outbound pump -> websocket
        websocket -> inbound pump -> decode -> Renderer

    Whichever pump completes first ends the session; the other is cancelled
    without draining.
    """

    def __init__(
        self,
        addr: str,
        *,
        config: Optional[ClientConfig] = None,
        connector: Optional[Connector] = None,
        stdin: Optional[asyncio.StreamReader] = None,
        renderer: Optional[Renderer] = None,
    ) -> None:
        self.config = replace(config, addr=addr) if config else ClientConfig(addr=addr)
        self.config.validate()
        self.identity = ClientIdentity(addr=addr)
        self.state = SessionState.CONNECTING
        self.local_addr = ""
        self.connector: Connector = connector or websockets.connect
        self.stdin = stdin
        self.renderer = renderer or Renderer()

    @property
    def addr(self) -> str:
        return self.identity.addr

    @property
    def name(self) -> str:
        return self.identity.name

    async def connect(self) -> None:
        """Connect, perform the handshake and run the session to completion."""
        url = self.config.ws_url
        logger.info(f"Connecting to {url}", extra={"addr": self.addr})
        try:
            websocket = await self.connector(url)
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise ConnectError(f"Failed to connect to {url}: {e}") from e

        try:
            await self._run(websocket)
        finally:
            await websocket.close()

    async def _run(self, websocket: Any) -> None:
        self.renderer.status("WebSocket handshake has been successfully completed.")
        self.local_addr = format_socket_addr(websocket.local_address)

        frames = self._receive_frames(websocket)

        self.state = SessionState.AWAITING_IDENTITY
        await await_identity(frames, self.identity, self.renderer, skip_malformed=self.config.skip_malformed)
        self.state = SessionState.READY

        stdin = self.stdin
        if stdin is None:
            stdin, _ = await aioconsole.get_standard_streams()

        queue: asyncio.Queue[Optional[Message]] = asyncio.Queue(maxsize=self.config.max_outbound)

        input_task = asyncio.create_task(self._read_input(stdin, queue), name="input")
        outbound = asyncio.create_task(self._pump_outbound(websocket, queue), name="outbound")
        inbound = asyncio.create_task(self._pump_inbound(frames), name="inbound")
        tasks = (input_task, outbound, inbound)

        try:
            done, _ = await asyncio.wait({outbound, inbound}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        finished = outbound if outbound in done else inbound
        logger.info(f"Session ended by {finished.get_name()} pump", extra={"peer_name": self.name})

        # fail fast on whatever ended the session
        for task in done:
            task.result()
        if finished is outbound and not input_task.cancelled():
            input_task.result()

    async def _receive_frames(self, websocket: Any) -> AsyncIterator[Frame]:
        try:
            async for raw in websocket:
                yield raw
        except websockets.exceptions.ConnectionClosedError as e:
            raise ReceiveError(f"Connection lost: {e}") from e

    async def _read_input(self, stdin: asyncio.StreamReader, queue: asyncio.Queue) -> None:
        """Command Parser loop. Closes the queue when input ends or fails."""
        cancelled = False
        try:
            while True:
                self.renderer.prompt(self.name)
                try:
                    raw = await stdin.readline()
                except OSError as e:
                    logger.warning(f"Stopped reading input: {e}")
                    return
                except (ValueError, asyncio.LimitOverrunError) as e:
                    # line longer than the reader's buffer limit
                    raise InputError(f"Input line too long: {e}") from e
                if not raw:
                    logger.debug("End of input")
                    return

                try:
                    line = strip_line_ending(raw.decode("utf-8"))
                except UnicodeDecodeError as e:
                    raise InputError(f"Input is not valid UTF-8: {e}") from e

                await queue.put(parse_command(line, self.name, self.local_addr))
        except asyncio.CancelledError:
            cancelled = True
            raise
        finally:
            if not cancelled:
                await queue.put(None)

    async def _pump_outbound(self, websocket: Any, queue: asyncio.Queue) -> None:
        while True:
            msg = await queue.get()
            if msg is None:
                return
            try:
                await websocket.send(encode(msg))
            except websockets.exceptions.ConnectionClosed as e:
                raise SendError(f"Failed to send {msg.kind.value}: {e}") from e
            log_chat_message(logger, "debug", "Sent frame", frame=msg.to_dict())

    async def _pump_inbound(self, frames: AsyncIterator[Frame]) -> None:
        async for raw in frames:
            try:
                msg = decode(raw)
            except DecodeError as e:
                if not self.config.skip_malformed:
                    raise
                logger.warning(f"Skipping malformed frame: {e}")
                continue
            log_chat_message(logger, "debug", "Received frame", frame=msg.to_dict())
            self.renderer.render(msg)
