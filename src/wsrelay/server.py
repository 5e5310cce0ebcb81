"""Server bootstrap — listeners, TLS and shutdown ordering.

Learn: uvicorn.Server is used directly (not uvicorn.run) for three
reasons the relay cares about:

1. Sockets are bound here first, so "port already in use" becomes a
   StartupError instead of uvicorn's sys.exit(1).
2. The SSL context is built before serving, so the cipher list and the
   server-preference flag can be applied and bad cert paths fail early.
3. RelayServer.shutdown() closes every registered client with a close
   frame *before* uvicorn releases the listening sockets.

Split mode runs two RelayServers in one event loop. Signals are captured
once for both; either server stopping stops the other, and both hold
their listeners open until the shared RegistryDrain has finished.

Usage:
    wsrelay serve
    python -m wsrelay
"""

import asyncio
import contextlib
import os
import socket
import ssl
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI

from wsrelay.config import Settings
from wsrelay.exceptions import StartupError
from wsrelay.main import create_app, create_split_apps
from wsrelay.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


class RegistryDrain:
    """One close_all() per registry, however many listeners await it.

    Split-mode servers share one drain: neither releases its listener
    until every client has been sent its close frame.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        self._task: Optional[asyncio.Task] = None

    async def wait(self) -> int:
        if self._task is None:
            self._task = asyncio.ensure_future(self.registry.close_all())
        return await self._task


class RelayServer(uvicorn.Server):
    """uvicorn.Server that drains the registry before closing listeners."""

    def __init__(
        self,
        config: uvicorn.Config,
        registry: ConnectionRegistry,
        drain: Optional[RegistryDrain] = None,
    ):
        super().__init__(config)
        self.registry = registry
        self.drain = drain or RegistryDrain(registry)
        self.peers: list["RelayServer"] = []

    def handle_exit(self, sig, frame) -> None:
        super().handle_exit(sig, frame)
        for peer in self.peers:
            peer.should_exit = True

    def capture_signals(self):
        # serve() captures signals once, around every listener.
        return contextlib.nullcontext()

    def capture_exit_signals(self):
        """uvicorn's signal capture, re-raising the signal once all servers stop."""
        return super().capture_signals()

    async def shutdown(self, sockets: Optional[list[socket.socket]] = None) -> None:
        closed = await self.drain.wait()
        logger.info("wsrelay.draining", port=self.config.port, closed=closed)
        await super().shutdown(sockets=sockets)


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a listening socket or raise StartupError."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise StartupError(f"Cannot bind {host}:{port}: {e.strerror or e}") from e
    sock.set_inheritable(True)
    return sock


def check_tls_files(settings: Settings) -> None:
    for label, path in (
        ("certificate", settings.tls_certfile),
        ("private key", settings.tls_keyfile),
    ):
        if not os.path.isfile(path):
            raise StartupError(f"TLS {label} file not found: {path}")


def build_config(app: FastAPI, settings: Settings, port: int) -> uvicorn.Config:
    """uvicorn config for one listener, with the SSL context loaded."""
    kwargs = {}
    if settings.tls_enabled:
        check_tls_files(settings)
        kwargs = {
            "ssl_certfile": settings.tls_certfile,
            "ssl_keyfile": settings.tls_keyfile,
            "ssl_ciphers": settings.tls_ciphers,
        }

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=port,
        log_config=None,
        log_level=settings.log_level.lower(),
        lifespan="on",
        **kwargs,
    )

    try:
        config.load()
    except (ssl.SSLError, OSError) as e:
        raise StartupError(f"Cannot load TLS configuration: {e}") from e

    if config.ssl is not None and settings.tls_honor_cipher_order:
        config.ssl.options |= ssl.OP_CIPHER_SERVER_PREFERENCE
    return config


def build_servers(settings: Settings) -> list[tuple[RelayServer, int]]:
    """One (server, port) per listener: one in combined mode, two in split."""
    if settings.split_mode:
        http_app, ws_app = create_split_apps(settings)
        registry = http_app.state.registry
        drain = RegistryDrain(registry)
        servers = [
            (RelayServer(build_config(http_app, settings, settings.port), registry, drain), settings.port),
            (RelayServer(build_config(ws_app, settings, settings.ws_port), registry, drain), settings.ws_port),
        ]
        servers[0][0].peers = [servers[1][0]]
        servers[1][0].peers = [servers[0][0]]
        return servers

    app = create_app(settings)
    return [(RelayServer(build_config(app, settings, settings.port), app.state.registry), settings.port)]


async def serve(settings: Settings) -> None:
    """Bind, announce and serve until a shutdown signal arrives."""
    servers = build_servers(settings)

    sockets: list[socket.socket] = []
    try:
        for _, port in servers:
            sockets.append(bind_socket(settings.host, port))
    except StartupError:
        for sock in sockets:
            sock.close()
        raise

    scheme = "https" if settings.tls_enabled else "http"
    ws_scheme = "wss" if settings.tls_enabled else "ws"
    ws_port = settings.ws_port if settings.split_mode else settings.port
    logger.info(
        "wsrelay.listening",
        http=f"{scheme}://{settings.host}:{settings.port}",
        websocket=f"{ws_scheme}://{settings.host}:{ws_port}{settings.ws_path}",
        trigger=f"{scheme}://localhost:{settings.port}/trigger",
        health=f"{scheme}://localhost:{settings.port}/health",
    )

    primary = servers[0][0]
    with primary.capture_exit_signals():
        await asyncio.gather(
            *(server.serve(sockets=[sock]) for (server, _), sock in zip(servers, sockets))
        )
        logger.info("wsrelay.stopped")
