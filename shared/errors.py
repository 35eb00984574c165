from __future__ import annotations


class ChatError(Exception):
    """Base class for every error that ends a PeerChat session."""
    pass
class ConnectError(ChatError):
    """Raised when the WebSocket transport could not be opened."""
    pass
class DecodeError(ChatError):
    """Raised when a frame is not a well-formed encoded Message."""
    pass
class SendError(ChatError):
    """Raised when the transport rejects an outbound frame."""
    pass
class ReceiveError(ChatError):
    """Raised when the transport fails while reading inbound frames."""
    pass
class InputError(ChatError):
    """Raised when the local input stream yields unusable data."""
    pass
class CommandError(ChatError):
    """Raised when an operator line cannot be turned into a Message."""
    pass
class HandshakeError(ChatError):
    """Raised when the server closes before assigning an identity."""
    pass
class IdentityError(ChatError):
    """Raised when a session name is assigned more than once."""
    pass
class ConfigError(ChatError):
    """Raised when client configuration is invalid."""
    pass
