"""Connection registry — the set of open WebSocket clients.

Learn: This is the only shared mutable state in the relay. Three rules:

1. Every mutation happens under one asyncio.Lock.
2. broadcast() snapshots the members under the lock and sends outside
   it, so a client closing mid-broadcast cannot break the iteration.
3. A send that raises is that connection's problem only: it is logged,
   the connection is dropped, and the other sends carry on.

Membership is best-effort liveness. A connection can look open at
snapshot time and fail a moment later; rule 3 covers that.
"""

import asyncio
from typing import Optional, Protocol, Union

import structlog

logger = structlog.get_logger()

Payload = Union[str, bytes]


class RelayConnection(Protocol):
    """What the registry needs from a connection. Nothing transport-specific."""

    id: str

    @property
    def is_open(self) -> bool: ...

    async def send(self, payload: Payload) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class ConnectionRegistry:
    """Concurrency-safe set of connections, unique by identity."""

    def __init__(self) -> None:
        self._connections: set[RelayConnection] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    def size(self) -> int:
        """Current member count. May be stale by the time the caller uses it."""
        return len(self._connections)

    async def register(self, connection: RelayConnection) -> None:
        """Add a connection. Registering the same handle twice is a no-op."""
        async with self._lock:
            self._connections.add(connection)
            count = len(self._connections)
        logger.info(
            "relay.connection_registered",
            connection_id=connection.id,
            clients=count,
        )

    async def unregister(self, connection: RelayConnection) -> bool:
        """Remove a connection. Returns False if it was not registered.

        Close and error notifications can race, so this is called more
        than once per connection in practice; only the first call counts.
        """
        async with self._lock:
            if connection not in self._connections:
                return False
            self._connections.discard(connection)
            count = len(self._connections)
        logger.info(
            "relay.connection_unregistered",
            connection_id=connection.id,
            clients=count,
        )
        return True

    async def broadcast(
        self,
        payload: Payload,
        exclude: Optional[RelayConnection] = None,
    ) -> int:
        """Send payload to every open member except `exclude`.

        Returns the number of connections a send was attempted on.
        Failed sends unregister their connection and are not re-raised.
        """
        async with self._lock:
            targets = [
                c for c in self._connections
                if c is not exclude and c.is_open
            ]

        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._send(connection, payload) for connection in targets)
        )
        logger.info(
            "relay.broadcast",
            attempted=len(targets),
            failed=results.count(False),
            excluded=exclude.id if exclude is not None else None,
        )
        return len(targets)

    async def _send(self, connection: RelayConnection, payload: Payload) -> bool:
        try:
            await connection.send(payload)
            return True
        except Exception as e:
            logger.warning(
                "relay.send_failed",
                connection_id=connection.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.unregister(connection)
            return False

    async def close_all(
        self,
        code: int = 1001,
        reason: str = "Server shutting down",
    ) -> int:
        """Close every member with a proper close frame and empty the set.

        Used on shutdown, before the listening sockets go away.
        """
        async with self._lock:
            members = list(self._connections)
            self._connections.clear()

        async def _close(connection: RelayConnection) -> None:
            try:
                await connection.close(code=code, reason=reason)
            except Exception as e:
                logger.warning(
                    "relay.close_failed",
                    connection_id=connection.id,
                    error=str(e),
                )

        await asyncio.gather(*(_close(c) for c in members))
        if members:
            logger.info("relay.connections_closed", count=len(members))
        return len(members)
