"""WebSocket connection handle with an explicit lifecycle.

Learn: Starlette tracks two states per socket (client_state and
application_state). The relay adds its own ConnectionState so the
registry can ask one question, "is this open?", without caring which
side started closing.

    CONNECTING ──accept()──► OPEN ──close()──► CLOSING ──► CLOSED
                               └────── disconnect / error ──────┘
"""

import uuid
from enum import Enum
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from wsrelay.realtime.registry import Payload


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class WebSocketConnection:
    """One accepted WebSocket client.

    Hashes by identity, so the registry can hold it in a set. The ASGI
    server owns the socket; this object only sends on it and closes it.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.id = uuid.uuid4().hex[:12]
        self.state = ConnectionState.CONNECTING
        client = websocket.client
        self.peer = f"{client.host}:{client.port}" if client else "unknown"

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id} {self.peer} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return (
            self.state == ConnectionState.OPEN
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def accept(self) -> None:
        await self.websocket.accept()
        self.state = ConnectionState.OPEN

    async def send(self, payload: Payload) -> None:
        """Send one frame: binary for bytes, text otherwise."""
        if isinstance(payload, bytes):
            await self.websocket.send_bytes(payload)
        else:
            await self.websocket.send_text(payload)

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        """Start a transport-level close handshake. No-op once closing."""
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self.state = ConnectionState.CLOSING
        if self.websocket.application_state == WebSocketState.CONNECTED:
            await self.websocket.close(code=code, reason=reason)

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED
