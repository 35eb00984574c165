from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from shared.errors import IdentityError


class SessionState(str, Enum):
    """Handshake progress of one connection."""
    CONNECTING = "connecting"
    AWAITING_IDENTITY = "awaiting_identity"
    READY = "ready"


@dataclass
class ClientIdentity:
    addr: str
    _name: str = field(default="", repr=False)
    _assigned: bool = field(default=False, repr=False)

    @property
    def name(self) -> str:
        return self._name

    @property
    def assigned(self) -> bool:
        return self._assigned

    def assign(self, name: str) -> None:
        # the server names a client once per session
        if self._assigned:
            raise IdentityError(f"Session name already assigned ({self._name!r})")
        self._name = name
        self._assigned = True
