"""WebSocket endpoint — long-lived device connections.

Learn: Each client connects to the configured path (default "/"). The
handler:
1. Accepts the handshake and registers the connection
2. Optionally sends a JSON welcome frame
3. Reads frames in order and hands each one to the message policy
4. Unregisters on close or on any error, never letting one bad socket
   take down the process

One task per connection, one receive loop per task: the transport's
in-order delivery is preserved without extra locking.
"""

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from wsrelay.dependencies import get_registry, get_relay_service
from wsrelay.realtime.connection import WebSocketConnection
from wsrelay.realtime.registry import ConnectionRegistry
from wsrelay.services.relay_service import RelayService

logger = structlog.get_logger()


async def relay_websocket(
    websocket: WebSocket,
    registry: ConnectionRegistry = Depends(get_registry),
    service: RelayService = Depends(get_relay_service),
):
    """Serve one client from handshake to close."""
    connection = WebSocketConnection(websocket)

    with structlog.contextvars.bound_contextvars(
        connection_id=connection.id,
        peer=connection.peer,
    ):
        await connection.accept()
        await registry.register(connection)
        logger.info(
            "relay.connection_opened",
            path=websocket.url.path,
            clients=registry.size(),
        )

        close_code = 1000
        try:
            if service.settings.send_welcome:
                await connection.send(service.welcome_payload())

            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info("relay.connection_closed", code=message.get("code"))
                    break

                payload = message.get("text")
                if payload is None:
                    payload = message.get("bytes")
                if payload is None:
                    continue
                await service.handle_client_message(connection, payload)

        except WebSocketDisconnect as e:
            logger.info("relay.connection_closed", code=e.code)
        except Exception as e:
            close_code = 1011
            logger.warning(
                "relay.connection_error",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            await registry.unregister(connection)
            if connection.is_open:
                try:
                    await connection.close(code=close_code)
                except Exception as e:
                    logger.debug("relay.close_failed", error=str(e))
            connection.mark_closed()


def create_ws_router(path: str = "/") -> APIRouter:
    """Router with the relay WebSocket mounted at `path`."""
    router = APIRouter()
    router.add_api_websocket_route(path, relay_websocket, name="relay_websocket")
    return router
