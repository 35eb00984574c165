from __future__ import annotations
from typing import AsyncIterator, Union

from client.render import Renderer
from client.state import ClientIdentity
from shared.errors import DecodeError, HandshakeError
from shared.log import get_logger
from shared.message import PeerNameAssign, decode

logger = get_logger(__name__)

Frame = Union[str, bytes]


async def await_identity(
    frames: AsyncIterator[Frame],
    identity: ClientIdentity,
    renderer: Renderer,
    *,
    skip_malformed: bool = False,
) -> str:
    """
    Block until the server assigns this client a name.

    Every frame other than PeerNameAssign is dropped unrendered. Nothing is
    sent while waiting and there is no timeout. The welcome line is written
    before returning, so the caller may start rendering right after.
    """
    async for raw in frames:
        try:
            msg = decode(raw)
        except DecodeError as e:
            if not skip_malformed:
                raise
            logger.warning(f"Skipping malformed frame during handshake: {e}")
            continue

        if not isinstance(msg.msg_type, PeerNameAssign):
            logger.debug("Ignoring frame before identity", extra={"msg_type": msg.kind.value})
            continue

        identity.assign(msg.msg_type.name)
        renderer.notice(f"Welcome to PeerChat, {identity.name}!")
        logger.info("Identity assigned", extra={"peer_name": identity.name})
        return identity.name

    raise HandshakeError("Connection closed before a name was assigned")
