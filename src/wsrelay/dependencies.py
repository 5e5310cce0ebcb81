"""FastAPI dependencies — shared objects live on app.state.

Learn: HTTPConnection is the common base of Request and WebSocket, so
the same dependency serves both the HTTP routes and the WebSocket
route. Split mode runs two apps that point at one registry.
"""

from fastapi import Depends
from starlette.requests import HTTPConnection

from wsrelay.config import Settings
from wsrelay.realtime.registry import ConnectionRegistry
from wsrelay.services.relay_service import RelayService


def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.registry


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_relay_service(
    registry: ConnectionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> RelayService:
    return RelayService(registry, settings)
