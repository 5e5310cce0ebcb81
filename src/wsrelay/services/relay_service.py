"""Relay decisions — what a trigger or a client message turns into.

Learn: RelayService holds no state of its own. It reads settings,
talks to the ConnectionRegistry, and raises domain errors
(MissingPayloadError) that the API layer maps to HTTP responses.
Both entry points (POST /trigger and the WebSocket receive loop)
go through here, so the policy lives in one place.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from wsrelay.config import MessagePolicy, Settings
from wsrelay.exceptions import MissingPayloadError
from wsrelay.realtime.registry import ConnectionRegistry, Payload, RelayConnection
from wsrelay.schemas.relay import WelcomeMessage

logger = structlog.get_logger()

PREVIEW_LENGTH = 120


def preview(payload: Payload) -> str:
    """Short printable form of a payload for log lines."""
    if isinstance(payload, bytes):
        return f"<{len(payload)} bytes>"
    if len(payload) > PREVIEW_LENGTH:
        return payload[:PREVIEW_LENGTH] + "..."
    return payload


@dataclass
class TriggerOutcome:
    """Result of one trigger.

    broadcast is False when nobody was connected; clients_count is the
    number of connections a send was attempted on.
    """

    broadcast: bool
    clients_count: int = 0


class RelayService:
    def __init__(self, registry: ConnectionRegistry, settings: Settings):
        self.registry = registry
        self.settings = settings

    # ─── Trigger path ──────────────────────────────────────

    async def trigger(self, message: Optional[str]) -> TriggerOutcome:
        """Broadcast a trigger message to every open connection.

        Empty string, null and a missing field are all rejected.
        """
        if not message:
            raise MissingPayloadError()

        clients = self.registry.size()
        logger.info(
            "relay.trigger_received",
            preview=preview(message),
            clients=clients,
        )
        if clients == 0:
            return TriggerOutcome(broadcast=False)

        count = await self.registry.broadcast(message)
        return TriggerOutcome(broadcast=True, clients_count=count)

    def no_clients_message(self) -> str:
        return (
            f"Trigger received, but no {self.settings.client_label} "
            f"clients are connected."
        )

    # ─── WebSocket path ────────────────────────────────────

    def welcome_payload(self) -> str:
        return WelcomeMessage(message=self.settings.welcome_message).model_dump_json()

    def echo_payload(self, payload: Payload) -> Payload:
        if isinstance(payload, bytes):
            return self.settings.echo_prefix.encode() + payload
        return self.settings.echo_prefix + payload

    async def handle_client_message(
        self,
        connection: RelayConnection,
        payload: Payload,
    ) -> int:
        """Apply the configured message policy to one inbound payload.

        Returns how many other connections the payload was relayed to.
        Errors sending the echo propagate; the caller owns the sender.
        """
        policy = self.settings.message_policy
        logger.info(
            "relay.client_message",
            connection_id=connection.id,
            preview=preview(payload),
            policy=policy.value,
        )

        if policy == MessagePolicy.LOG:
            return 0

        await connection.send(self.echo_payload(payload))

        if policy == MessagePolicy.ECHO_BROADCAST:
            return await self.registry.broadcast(payload, exclude=connection)
        return 0
