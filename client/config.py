from __future__ import annotations
from dataclasses import dataclass, fields
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from shared.errors import ConfigError
from shared.log import get_logger
from shared.utils import is_hostport

logger = get_logger(__name__)

DEFAULT_ADDR = "127.0.0.1:8080"
SOCKET_PATH = "/socket"


def _default_server() -> str:
    return os.getenv("PEERCHAT_SERVER", DEFAULT_ADDR)


@dataclass
class ClientConfig:
    """
    Session settings, fixed before connecting.

    max_outbound: 0 keeps the outbound queue unbounded. A positive value
        bounds it, and the input loop then waits on a full queue before it
        draws the next prompt.
    skip_malformed: log and drop frames that fail to decode instead of
        ending the session.
    """
    addr: str
    socket_path: str = SOCKET_PATH
    max_outbound: int = 0
    skip_malformed: bool = False
    log_level: Optional[str] = None

    @property
    def ws_url(self) -> str:
        return f"ws://{self.addr}{self.socket_path}"

    def validate(self) -> ClientConfig:
        if not is_hostport(self.addr):
            raise ConfigError(f"Invalid server address {self.addr!r}, expected host:port")
        if not self.socket_path.startswith("/"):
            raise ConfigError(f"socket_path must start with '/': {self.socket_path!r}")
        if isinstance(self.max_outbound, bool) or not isinstance(self.max_outbound, int) or self.max_outbound < 0:
            raise ConfigError(f"max_outbound must be a non-negative integer: {self.max_outbound!r}")
        return self

    @classmethod
    def from_env(cls) -> ClientConfig:
        return cls(addr=_default_server(), log_level=os.getenv("PEERCHAT_LOG_LEVEL"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ClientConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        values = dict(data)
        values.setdefault("addr", _default_server())
        return cls(**values).validate()


def load_config(path: Path) -> ClientConfig:
    """Read a YAML config file, e.g.

        addr: chat.example.org:8080
        max_outbound: 256
        skip_malformed: false
        log_level: INFO
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")

    logger.debug(f"Loaded config from {path}")
    return ClientConfig.from_dict(data)
