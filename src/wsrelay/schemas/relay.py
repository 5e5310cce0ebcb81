"""Pydantic schemas for the relay's wire formats.

Learn: Field names follow the JSON the devices and trigger sources
already speak (clientsCount, not clients_count), so the response
models use serialization aliases where Python naming differs.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


def utc_timestamp() -> str:
    """ISO 8601 UTC with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ─── Trigger ────────────────────────────────────────────

class TriggerRequest(BaseModel):
    message: Optional[str] = None


class TriggerResponse(BaseModel):
    status: Literal["success", "info"]
    message: str
    clients_count: Optional[int] = Field(
        default=None, serialization_alias="clientsCount"
    )


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str


# ─── Health ─────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    service: str
    version: str
    clients: int
    timestamp: str = Field(default_factory=utc_timestamp)


# ─── WebSocket frames ───────────────────────────────────

class WelcomeMessage(BaseModel):
    type: Literal["welcome"] = "welcome"
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)
