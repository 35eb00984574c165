import asyncio

import pytest
from websockets.exceptions import ConnectionClosedError

from client.config import ClientConfig
from client.state import SessionState
from client.ws_client import ChatClient
from shared.errors import CommandError, ConnectError, DecodeError, InputError, ReceiveError, SendError
from shared.message import (
    DisconPeer,
    Message,
    NewPeer,
    PeerInfoRequest,
    Private,
    Text,
    decode,
    encode,
)

ADDR = "127.0.0.1:8080"
LOCAL = "127.0.0.1:50123"


def frame(msg_type, text="", src_name="bob"):
    return encode(Message(src_name=src_name, src_addr="10.0.0.2:4000", msg_type=msg_type, text=text))


def make_client(fakes, renderer, ws, stdin, **config):
    connector = fakes.Connector(ws)
    client = ChatClient(
        ADDR,
        config=ClientConfig(addr=ADDR, **config),
        connector=connector,
        stdin=stdin,
        renderer=renderer,
    )
    return client, connector


@pytest.mark.asyncio
async def test_local_eof_ends_session_after_sending_everything(fakes, renderer, console):
    ws = fakes.WebSocket([fakes.assign("alice")])  # server never closes
    stdin = fakes.stdin(b"hello world\npm: bob hi there\r\npeerdatarequest\n\n")
    client, connector = make_client(fakes, renderer, ws, stdin)

    await asyncio.wait_for(client.connect(), timeout=2.0)

    assert connector.urls == ["ws://127.0.0.1:8080/socket"]
    assert client.state is SessionState.READY
    assert client.name == "alice"
    assert ws.closed is True
    assert [decode(raw) for raw in ws.sent_messages] == [
        Message("alice", LOCAL, Text(), "hello world"),
        Message("alice", LOCAL, Private("bob"), "hi"),
        Message("alice", LOCAL, PeerInfoRequest(), ""),
        Message("alice", LOCAL, Text(), ""),
    ]
    out = console.file.getvalue()
    assert out.startswith("\nWebSocket handshake has been successfully completed.\n[Chat] Welcome to PeerChat, alice!")
    assert out.count("[Chat] alice: ") == 5


@pytest.mark.asyncio
async def test_server_close_ends_session_while_waiting_for_input(fakes, renderer, console):
    ws = fakes.WebSocket([
        fakes.assign("alice"),
        frame(NewPeer("carol")),
        frame(Text(), "hi"),
        frame(DisconPeer("carol")),
    ])
    ws.end()
    stdin = fakes.stdin(eof=False)  # operator never types anything
    client, _ = make_client(fakes, renderer, ws, stdin)

    await asyncio.wait_for(client.connect(), timeout=2.0)

    out = console.file.getvalue()
    welcome = out.index("Welcome to PeerChat, alice!")
    connected = out.index("[Chat] bob: carol has connected.")
    chat = out.index("[Chat] bob: hi")
    left = out.index("[Chat] bob: carol has disconnected.")
    assert welcome < connected < chat < left
    assert ws.sent_messages == []


@pytest.mark.asyncio
async def test_connect_failure_is_fatal(fakes, renderer):
    connector = fakes.Connector(error=OSError("connection refused"))
    client = ChatClient(ADDR, connector=connector, stdin=fakes.stdin(), renderer=renderer)

    with pytest.raises(ConnectError):
        await client.connect()
    assert client.state is SessionState.CONNECTING
    assert connector.urls == ["ws://127.0.0.1:8080/socket"]


@pytest.mark.asyncio
async def test_malformed_inbound_frame_aborts_session(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice"), '{"src_name":"bob"}'])
    client, _ = make_client(fakes, renderer, ws, fakes.stdin(eof=False))

    with pytest.raises(DecodeError):
        await asyncio.wait_for(client.connect(), timeout=2.0)
    assert ws.closed is True


@pytest.mark.asyncio
async def test_malformed_inbound_frame_skipped_when_configured(fakes, renderer, console):
    ws = fakes.WebSocket([fakes.assign("alice"), "garbage", frame(Text(), "still here")])
    ws.end()
    client, _ = make_client(fakes, renderer, ws, fakes.stdin(eof=False), skip_malformed=True)

    await asyncio.wait_for(client.connect(), timeout=2.0)
    assert "[Chat] bob: still here" in console.file.getvalue()


@pytest.mark.asyncio
async def test_send_failure_is_fatal(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice")])
    ws.send_error = ConnectionClosedError(None, None)
    client, _ = make_client(fakes, renderer, ws, fakes.stdin(b"hello\n", eof=False))

    with pytest.raises(SendError):
        await asyncio.wait_for(client.connect(), timeout=2.0)


@pytest.mark.asyncio
async def test_abnormal_close_is_a_receive_error(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice")])
    ws.fail(ConnectionClosedError(None, None))
    client, _ = make_client(fakes, renderer, ws, fakes.stdin(eof=False))

    with pytest.raises(ReceiveError):
        await asyncio.wait_for(client.connect(), timeout=2.0)


@pytest.mark.asyncio
async def test_bad_pm_command_ends_session_after_earlier_lines(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice")])
    stdin = fakes.stdin(b"hello\npm: bob\nnever sent\n")
    client, _ = make_client(fakes, renderer, ws, stdin)

    with pytest.raises(CommandError):
        await asyncio.wait_for(client.connect(), timeout=2.0)
    assert [decode(raw).text for raw in ws.sent_messages] == ["hello"]


@pytest.mark.asyncio
async def test_bounded_queue_keeps_order(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice")])
    lines = [f"line {i}" for i in range(10)]
    stdin = fakes.stdin("".join(f"{line}\n" for line in lines).encode())
    client, _ = make_client(fakes, renderer, ws, stdin, max_outbound=1)

    await asyncio.wait_for(client.connect(), timeout=2.0)
    assert [decode(raw).text for raw in ws.sent_messages] == lines


@pytest.mark.asyncio
async def test_ipv6_local_address_is_bracketed(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice")], local_address=("::1", 6000, 0, 0))
    client, _ = make_client(fakes, renderer, ws, fakes.stdin(b"hi\n"))

    await asyncio.wait_for(client.connect(), timeout=2.0)
    assert decode(ws.sent_messages[0]).src_addr == "[::1]:6000"


@pytest.mark.asyncio
async def test_overlong_input_line_is_an_input_error(fakes, renderer):
    ws = fakes.WebSocket([fakes.assign("alice")])
    stdin = fakes.stdin(b"x" * 70000 + b"\nafter\n")
    client, _ = make_client(fakes, renderer, ws, stdin)

    with pytest.raises(InputError):
        await asyncio.wait_for(client.connect(), timeout=2.0)
    assert ws.sent_messages == []


@pytest.mark.asyncio
async def test_later_name_assign_is_rendered_without_renaming(fakes, renderer, console):
    ws = fakes.WebSocket([fakes.assign("alice"), fakes.assign("mallory")])
    ws.end()
    client, _ = make_client(fakes, renderer, ws, fakes.stdin(eof=False))

    await asyncio.wait_for(client.connect(), timeout=2.0)

    assert "[PeerName] server: Your name is, mallory" in console.file.getvalue()
    assert client.name == "alice"
    assert client.identity.assigned is True


def test_client_does_not_mutate_callers_config(fakes, renderer):
    config = ClientConfig(addr="127.0.0.1:9999", max_outbound=4)
    client = ChatClient(ADDR, config=config, connector=fakes.Connector(), renderer=renderer)

    assert config.addr == "127.0.0.1:9999"
    assert client.config.addr == ADDR
    assert client.config.max_outbound == 4
