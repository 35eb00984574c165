from __future__ import annotations
import sys
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.text import Text as StyledText

from shared.message import (
    DisconPeer,
    Message,
    MessageKind,
    NewPeer,
    PeerInfo,
    PeerInfoReply,
    PeerInfoRequest,
    PeerNameAssign,
    Private,
    Text,
)

CHAT_TAG = ("[Chat]", "bold green")
PM_TAG = ("[PM]", "bold cyan")
PEER_NAME_TAG = ("[PeerName]", "bold magenta")
DATA_REQUEST_TAG = ("[PeerDataRequest]", "bold yellow")
DATA_REPLY_TAG = ("[PeerDataReply]", "bold yellow")


def format_peer_info(info: PeerInfo) -> str:
    names = ", ".join(sorted(info.peer_names))
    return f"peers_online={info.peers_online} peer_spots_left={info.peer_spots_left} peer_names={names}"


def _line(tag, src_name: str, body: str) -> StyledText:
    return StyledText.assemble(tag, f" {src_name}: {body}")


def _new_peer(msg: Message, peer: NewPeer) -> StyledText:
    return _line(CHAT_TAG, msg.src_name, f"{peer.name} has connected.")


def _discon_peer(msg: Message, peer: DisconPeer) -> StyledText:
    return _line(CHAT_TAG, msg.src_name, f"{peer.name} has disconnected.")


def _peer_name_assign(msg: Message, assign: PeerNameAssign) -> StyledText:
    return _line(PEER_NAME_TAG, msg.src_name, f"{msg.text}, {assign.name}")


def _peer_info_request(msg: Message, _request: PeerInfoRequest) -> StyledText:
    return _line(DATA_REQUEST_TAG, msg.src_name, msg.text)


def _peer_info_reply(msg: Message, reply: PeerInfoReply) -> StyledText:
    return _line(DATA_REPLY_TAG, msg.src_name, format_peer_info(reply.info))


def _private(msg: Message, private: Private) -> StyledText:
    return _line(PM_TAG, msg.src_name, f"{msg.text}: {private.recipient}")


def _text(msg: Message, _broadcast: Text) -> StyledText:
    return _line(CHAT_TAG, msg.src_name, msg.text)


# each formatter receives the message and its own msg_type variant
_FORMATTERS: Dict[MessageKind, Callable[[Message, Any], StyledText]] = {
    MessageKind.NEW_PEER: _new_peer,
    MessageKind.DISCON_PEER: _discon_peer,
    MessageKind.PEER_NAME_ASSIGN: _peer_name_assign,
    MessageKind.PEER_INFO_REQUEST: _peer_info_request,
    MessageKind.PEER_INFO_REPLY: _peer_info_reply,
    MessageKind.PRIVATE: _private,
    MessageKind.TEXT: _text,
}

if set(_FORMATTERS) != set(MessageKind):
    raise RuntimeError("render table does not cover every MessageKind")


def format_message(msg: Message) -> StyledText:
    """One display line for an inbound message."""
    return _FORMATTERS[msg.kind](msg, msg.msg_type)


class Renderer:
    """
    Writes chat output for the operator.

    Every write starts on a fresh line and is flushed straight away so it is
    visible before the prompt is drawn again.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(file=sys.stdout, highlight=False)

    def _write(self, text: StyledText) -> None:
        self.console.print(StyledText("\n").append_text(text), end="", soft_wrap=True, highlight=False)
        self.console.file.flush()

    def render(self, msg: Message) -> None:
        self._write(format_message(msg))

    def prompt(self, name: str) -> None:
        self._write(StyledText.assemble(CHAT_TAG, f" {name}: "))

    def notice(self, text: str) -> None:
        self._write(StyledText.assemble(CHAT_TAG, f" {text}"))

    def status(self, text: str) -> None:
        self._write(StyledText(text, style="dim"))
