"""
Operator command grammar.

    pm: <name> <word>    private message, only the first word is sent
    peerdatarequest      ask the server for the roster
    <anything else>      broadcast chat line (an empty line is a valid broadcast)
"""

from __future__ import annotations

from shared.errors import CommandError
from shared.message import Message, PeerInfoRequest, Private, Text

PM_PREFIX = "pm: "
PEER_DATA_REQUEST = "peerdatarequest"


def strip_line_ending(raw: str) -> str:
    """Drop one trailing '\\n' and, before it, one '\\r'."""
    if raw.endswith("\n"):
        raw = raw[:-1]
        if raw.endswith("\r"):
            raw = raw[:-1]
    return raw


def parse_command(line: str, src_name: str, src_addr: str) -> Message:
    if line.startswith(PM_PREFIX):
        split = line.split(" ")
        if len(split) < 3:
            raise CommandError(f"Usage: {PM_PREFIX}<name> <message>")
        # words after the first body word are not sent
        recv_name, body = split[1], split[2]
        return Message(src_name=src_name, src_addr=src_addr, msg_type=Private(recv_name), text=body)

    if line.startswith(PEER_DATA_REQUEST):
        return Message(src_name=src_name, src_addr=src_addr, msg_type=PeerInfoRequest(), text="")

    return Message(src_name=src_name, src_addr=src_addr, msg_type=Text(), text=line)
