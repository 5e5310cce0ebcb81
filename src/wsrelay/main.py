"""FastAPI application factory.

Learn: App factory pattern. create_app() returns a configured FastAPI
instance. Lifespan handles startup logging and closing every client on
shutdown. Middleware, exception handlers and routers are registered here.

Split mode builds two apps (one WebSocket-only, one HTTP-only) that
share a single ConnectionRegistry, so a trigger on the HTTP port still
reaches clients on the WebSocket port.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from wsrelay import __version__
from wsrelay.api import api_router
from wsrelay.api.errors import register_exception_handlers
from wsrelay.config import Settings, load_settings
from wsrelay.logging_config import configure_logging
from wsrelay.realtime.registry import ConnectionRegistry
from wsrelay.realtime.websocket import create_ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown. Clients are normally closed by
    wsrelay.server.RelayServer.shutdown() before this runs. Under plain
    `uvicorn --factory wsrelay.main:create_app`, uvicorn closes them
    itself (code 1012) before lifespan shutdown, so the close_all() here
    only catches stragglers and is usually a no-op.
    """
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info(
        "wsrelay.starting",
        version=__version__,
        environment=settings.environment,
        role=app.state.role,
        message_policy=settings.message_policy.value,
        tls=settings.tls_enabled,
    )

    yield

    closed = await app.state.registry.close_all()
    logger.info("wsrelay.shutdown", role=app.state.role, closed=closed)


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ConnectionRegistry] = None,
    *,
    serve_http: bool = True,
    serve_ws: bool = True,
) -> FastAPI:
    """Build and return the FastAPI application.

    Also usable as a uvicorn factory:
        uvicorn --factory wsrelay.main:create_app
    """
    settings = settings or load_settings()
    app = FastAPI(
        title="wsrelay",
        description="WebSocket broadcast relay — HTTP triggers fanned out to connected clients",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry if registry is not None else ConnectionRegistry()
    app.state.role = "combined" if serve_http and serve_ws else ("http" if serve_http else "ws")

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → handler
    # Both are HTTP-only; WebSocket scopes pass straight through.

    from wsrelay.middleware.request_id import RequestIdMiddleware
    from wsrelay.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    if serve_http:
        app.include_router(api_router)
    if serve_ws:
        app.include_router(create_ws_router(settings.ws_path))

    return app


def create_split_apps(settings: Optional[Settings] = None) -> tuple[FastAPI, FastAPI]:
    """(http_app, ws_app) sharing one registry, for separate listeners."""
    registry = ConnectionRegistry()
    http_app = create_app(settings, registry, serve_ws=False)
    ws_app = create_app(settings, registry, serve_http=False)
    return http_app, ws_app
