from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, FrozenSet, Iterable, Union
import json

from shared.errors import DecodeError

_I32_MIN = -(2 ** 31)
_I32_MAX = 2 ** 31 - 1


class MessageKind(str, Enum):
    """Wire tags of the seven message variants."""

    NEW_PEER = "NewPeer"                  # Broadcast: a peer connected
    DISCON_PEER = "DisconPeer"            # Broadcast: a peer disconnected
    PEER_NAME_ASSIGN = "PeerNameAssign"   # Server gives the receiving client its name
    PEER_INFO_REQUEST = "PeerInfoRequest" # Client asks for the roster
    PEER_INFO_REPLY = "PeerInfoReply"     # Server roster answer
    PRIVATE = "Private"                   # Directed message, payload is the recipient
    TEXT = "Text"                         # Broadcast chat line

    @classmethod
    def from_string(cls, value: str) -> MessageKind:
        """Convert a wire tag to MessageKind, raise DecodeError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(f"Unknown message type: {value!r}")


@dataclass(frozen=True)
class PeerInfo:
    """Roster snapshot sent by the server. peer_names excludes the requester."""
    peers_online: int
    peer_spots_left: int
    peer_names: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # accept any iterable of names, store as a frozenset
        if not isinstance(self.peer_names, frozenset):
            object.__setattr__(self, "peer_names", frozenset(self.peer_names))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peers_online": self.peers_online,
            "peer_spots_left": self.peer_spots_left,
            "peer_names": sorted(self.peer_names),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PeerInfo:
        if not isinstance(data, dict):
            raise DecodeError("PeerInfoReply payload must be an object")
        missing = {"peers_online", "peer_spots_left", "peer_names"} - set(data.keys())
        if missing:
            raise DecodeError(f"PeerInfo missing required fields: {sorted(missing)}")
        names = data["peer_names"]
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise DecodeError("'peer_names' must be a list of strings")
        return cls(
            peers_online=_require_i32(data, "peers_online"),
            peer_spots_left=_require_i32(data, "peer_spots_left"),
            peer_names=frozenset(names),
        )


# ========================================
#           MESSAGE VARIANTS
# ========================================

@dataclass(frozen=True)
class NewPeer:
    name: str
    kind: ClassVar[MessageKind] = MessageKind.NEW_PEER


@dataclass(frozen=True)
class DisconPeer:
    name: str
    kind: ClassVar[MessageKind] = MessageKind.DISCON_PEER


@dataclass(frozen=True)
class PeerNameAssign:
    name: str
    kind: ClassVar[MessageKind] = MessageKind.PEER_NAME_ASSIGN


@dataclass(frozen=True)
class PeerInfoRequest:
    kind: ClassVar[MessageKind] = MessageKind.PEER_INFO_REQUEST


@dataclass(frozen=True)
class PeerInfoReply:
    info: PeerInfo
    kind: ClassVar[MessageKind] = MessageKind.PEER_INFO_REPLY


@dataclass(frozen=True)
class Private:
    recipient: str
    kind: ClassVar[MessageKind] = MessageKind.PRIVATE


@dataclass(frozen=True)
class Text:
    kind: ClassVar[MessageKind] = MessageKind.TEXT


MessageType = Union[
    NewPeer,
    DisconPeer,
    PeerNameAssign,
    PeerInfoRequest,
    PeerInfoReply,
    Private,
    Text,
]


@dataclass(frozen=True)
class Message:
    """
    One unit of protocol exchange. On the wire every frame is a JSON object:
    {
    "src_name": "STRING",
    "src_addr": "host:port",
    "msg_type": "Text" | "PeerInfoRequest" | {"<Tag>": <payload>},
    "text":     "STRING"
    }

    Unit variants are a bare tag string (a {"<Tag>": null} object is also
    accepted on decode), payload variants a single-key object.
    """
    src_name: str
    src_addr: str
    msg_type: MessageType
    text: str = ""

    @property
    def kind(self) -> MessageKind:
        return self.msg_type.kind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "src_name": self.src_name,
            "src_addr": self.src_addr,
            "msg_type": _ENCODERS[self.msg_type.kind](self.msg_type),
            "text": self.text,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        """Create Message from a decoded JSON value, validating every field"""
        if not isinstance(data, dict):
            raise DecodeError("Frame must be a JSON object")
        required_fields = {'src_name', 'src_addr', 'msg_type', 'text'}
        missing = required_fields - set(data.keys())
        if missing:
            raise DecodeError(f"Missing required fields: {sorted(missing)}")

        for key in ('src_name', 'src_addr', 'text'):
            if not isinstance(data[key], str):
                raise DecodeError(f"'{key}' must be a string")

        return cls(
            src_name=data['src_name'],
            src_addr=data['src_addr'],
            msg_type=_decode_msg_type(data['msg_type']),
            text=data['text'],
        )

    @classmethod
    def from_json(cls, frame: Union[str, bytes]) -> Message:
        if isinstance(frame, (bytes, bytearray)):
            try:
                frame = bytes(frame).decode('utf-8')
            except UnicodeDecodeError as e:
                raise DecodeError(f"Frame is not valid UTF-8: {e}")
        try:
            data = json.loads(frame)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Invalid JSON: {e}")
        return cls.from_dict(data)


# ========================================
#           WIRE CODEC
# ========================================

def encode(message: Message) -> str:
    """Encode a Message as one text frame."""
    return message.to_json()


def decode(frame: Union[str, bytes]) -> Message:
    """Decode one text (or UTF-8 binary) frame, raising DecodeError when malformed."""
    return Message.from_json(frame)


def _require_str(payload: Any, tag: str) -> str:
    if not isinstance(payload, str):
        raise DecodeError(f"{tag} payload must be a string")
    return payload


def _require_i32(data: Dict[str, Any], key: str) -> int:
    value = data[key]
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"'{key}' must be an integer")
    if not _I32_MIN <= value <= _I32_MAX:
        raise DecodeError(f"'{key}' out of range: {value}")
    return value


_UNIT_VARIANTS: Dict[MessageKind, MessageType] = {
    MessageKind.PEER_INFO_REQUEST: PeerInfoRequest(),
    MessageKind.TEXT: Text(),
}

_ENCODERS: Dict[MessageKind, Callable[[Any], Any]] = {
    MessageKind.NEW_PEER: lambda v: {v.kind.value: v.name},
    MessageKind.DISCON_PEER: lambda v: {v.kind.value: v.name},
    MessageKind.PEER_NAME_ASSIGN: lambda v: {v.kind.value: v.name},
    MessageKind.PEER_INFO_REQUEST: lambda v: v.kind.value,
    MessageKind.PEER_INFO_REPLY: lambda v: {v.kind.value: v.info.to_dict()},
    MessageKind.PRIVATE: lambda v: {v.kind.value: v.recipient},
    MessageKind.TEXT: lambda v: v.kind.value,
}

_PAYLOAD_DECODERS: Dict[MessageKind, Callable[[Any], MessageType]] = {
    MessageKind.NEW_PEER: lambda p: NewPeer(_require_str(p, "NewPeer")),
    MessageKind.DISCON_PEER: lambda p: DisconPeer(_require_str(p, "DisconPeer")),
    MessageKind.PEER_NAME_ASSIGN: lambda p: PeerNameAssign(_require_str(p, "PeerNameAssign")),
    MessageKind.PEER_INFO_REPLY: lambda p: PeerInfoReply(PeerInfo.from_dict(p)),
    MessageKind.PRIVATE: lambda p: Private(_require_str(p, "Private")),
}


def _decode_msg_type(raw: Any) -> MessageType:
    if isinstance(raw, str):
        kind = MessageKind.from_string(raw)
        if kind not in _UNIT_VARIANTS:
            raise DecodeError(f"{kind.value} requires a payload")
        return _UNIT_VARIANTS[kind]

    if isinstance(raw, dict):
        if len(raw) != 1:
            raise DecodeError("'msg_type' object must hold exactly one tag")
        (tag, payload), = raw.items()
        kind = MessageKind.from_string(tag)
        if kind in _UNIT_VARIANTS:
            # {"Text": null} is the map spelling of a bare "Text"
            if payload is not None:
                raise DecodeError(f"{kind.value} takes no payload")
            return _UNIT_VARIANTS[kind]
        return _PAYLOAD_DECODERS[kind](payload)

    raise DecodeError("'msg_type' must be a tag string or a single-key object")


def _check_exhaustive(table: Iterable[MessageKind], name: str) -> None:
    missing = set(MessageKind) - set(table)
    if missing:
        raise RuntimeError(f"{name} does not handle: {sorted(k.value for k in missing)}")


_check_exhaustive(_ENCODERS, "encoder table")
_check_exhaustive(list(_UNIT_VARIANTS) + list(_PAYLOAD_DECODERS), "decoder tables")
