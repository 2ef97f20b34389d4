"""
Bidirectional message channel over an accepted WebSocket.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from gollum.protocol import OutboundFrame, encode_outbound_frame

logger = structlog.get_logger(__name__)


class ChannelClosedError(Exception):
    """The peer closed the channel."""

    def __init__(self, message: str = "Channel closed", code: int | None = None):
        super().__init__(message)
        self.code = code


class ChannelSendError(Exception):
    """An outbound frame could not be delivered."""
    pass


class MessageChannel(Protocol):
    """Channel the connection session talks through."""

    async def receive(self) -> str | bytes:
        """Wait for the next raw inbound frame."""
        ...

    async def send(self, frame: OutboundFrame) -> None:
        """Deliver one outbound frame."""
        ...

    async def close(self) -> None:
        """Close the channel; safe to call more than once."""
        ...


class WebSocketChannel:
    """MessageChannel backed by a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def receive(self) -> str | bytes:
        message = await self.websocket.receive()

        if message["type"] == "websocket.disconnect":
            raise ChannelClosedError(code=message.get("code"))

        if message.get("text") is not None:
            return message["text"]
        if message.get("bytes") is not None:
            return message["bytes"]

        raise ChannelClosedError(f"Unexpected message type {message['type']!r}")

    async def send(self, frame: OutboundFrame) -> None:
        try:
            await self.websocket.send_text(encode_outbound_frame(frame))
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise ChannelSendError(f"Failed to send {frame.type}: {e!s}") from e

    async def close(self) -> None:
        if (
            self.websocket.application_state == WebSocketState.DISCONNECTED
            or self.websocket.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self.websocket.close()
        except (RuntimeError, OSError) as e:
            logger.debug("WebSocket close failed", error_message=str(e))
