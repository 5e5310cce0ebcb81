"""wsrelay CLI — run the relay, fire triggers, watch what clients see.

Usage:
    wsrelay serve                              # Run with WSRELAY_* settings
    wsrelay serve --ws-port 8080 --policy log  # Split ports, no echo
    wsrelay trigger "power_on"                 # POST /trigger
    wsrelay health                             # GET /health
    wsrelay listen                             # Connect as a client, print frames
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional

import click
import httpx
import websockets
from pydantic import ValidationError

from wsrelay import __version__
from wsrelay.config import MessagePolicy, Settings

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_RELAY_URL = "http://localhost:3000"


def _relay_url(url: Optional[str]) -> str:
    return (url or os.environ.get("WSRELAY_URL", DEFAULT_RELAY_URL)).rstrip("/")


def _client(url: Optional[str]) -> httpx.Client:
    """HTTP client pointed at a running relay.

    Self-signed certificates are the norm for device bridges, so TLS
    verification is off unless WSRELAY_VERIFY_TLS=1.
    """
    verify = os.environ.get("WSRELAY_VERIFY_TLS", "0") == "1"
    return httpx.Client(base_url=_relay_url(url), timeout=10.0, verify=verify)


def _ws_url(url: Optional[str]) -> str:
    base = _relay_url(url)
    if base.startswith("https://"):
        return "wss://" + base[len("https://"):]
    if base.startswith("http://"):
        return "ws://" + base[len("http://"):]
    return base


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _status_color(status: str) -> str:
    colors = {
        "ok": "green",
        "success": "green",
        "info": "yellow",
        "error": "red",
    }
    return colors.get(status, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="wsrelay")
def main():
    """wsrelay — broadcast HTTP triggers to connected WebSocket clients."""


# ---------------------------------------------------------------------------
# wsrelay serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Bind address (WSRELAY_HOST)")
@click.option("--port", type=int, help="HTTP / combined port (WSRELAY_PORT)")
@click.option("--ws-port", type=int, help="Separate WebSocket port (WSRELAY_WS_PORT)")
@click.option(
    "--policy",
    type=click.Choice([p.value for p in MessagePolicy]),
    help="What to do with client messages (WSRELAY_MESSAGE_POLICY)",
)
def serve(host: Optional[str], port: Optional[int], ws_port: Optional[int],
          policy: Optional[str]):
    """Run the relay until interrupted."""
    overrides = {
        k: v for k, v in {
            "host": host,
            "port": port,
            "ws_port": ws_port,
            "message_policy": policy,
        }.items()
        if v is not None
    }
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        click.secho(f"Invalid configuration:\n{e}", fg="red", err=True)
        sys.exit(1)

    from wsrelay.exceptions import StartupError
    from wsrelay.logging_config import configure_logging
    from wsrelay.server import serve as serve_relay

    configure_logging(settings)

    try:
        asyncio.run(serve_relay(settings))
    except StartupError as e:
        click.secho(f"Startup failed: {e}", fg="red", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


# ---------------------------------------------------------------------------
# wsrelay trigger
# ---------------------------------------------------------------------------


@main.command()
@click.argument("message")
@click.option("--url", help=f"Relay base URL (WSRELAY_URL, default {DEFAULT_RELAY_URL})")
def trigger(message: str, url: Optional[str]):
    """Broadcast MESSAGE to every connected client."""
    try:
        with _client(url) as c:
            r = c.post("/trigger", json={"message": message})
    except httpx.HTTPError as e:
        click.secho(f"Relay not reachable at {_relay_url(url)}: {e}", fg="red", err=True)
        sys.exit(1)

    body = r.json()
    status = body.get("status", "error")
    line = body.get("message", "")
    if "clientsCount" in body:
        line += f" ({body['clientsCount']} client(s))"
    click.secho(line, fg=_status_color(status))
    if r.status_code >= 400:
        sys.exit(1)


# ---------------------------------------------------------------------------
# wsrelay health
# ---------------------------------------------------------------------------


@main.command()
@click.option("--url", help=f"Relay base URL (WSRELAY_URL, default {DEFAULT_RELAY_URL})")
def health(url: Optional[str]):
    """Show relay health and connected client count."""
    try:
        with _client(url) as c:
            r = c.get("/health")
            r.raise_for_status()
    except httpx.HTTPError as e:
        click.secho(f"Relay not healthy at {_relay_url(url)}: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo(_pretty_json(r.json()))


# ---------------------------------------------------------------------------
# wsrelay listen
# ---------------------------------------------------------------------------


@main.command()
@click.option("--url", help="WebSocket URL (default: derived from WSRELAY_URL)")
def listen(url: Optional[str]):
    """Connect like a device and print every frame received."""
    target = url if url and url.startswith(("ws://", "wss://")) else _ws_url(url)
    try:
        asyncio.run(_listen_impl(target))
    except KeyboardInterrupt:
        pass
    except (OSError, websockets.exceptions.WebSocketException) as e:
        click.secho(f"Connection to {target} failed: {e}", fg="red", err=True)
        sys.exit(1)


async def _listen_impl(target: str):
    ssl_context = None
    if target.startswith("wss://") and os.environ.get("WSRELAY_VERIFY_TLS", "0") != "1":
        import ssl

        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE

    async with websockets.connect(target, ssl=ssl_context) as ws:
        click.secho(f"Connected to {target}", fg="green")
        try:
            async for frame in ws:
                if isinstance(frame, bytes):
                    click.echo(f"<{len(frame)} bytes> {frame!r}")
                else:
                    click.echo(frame)
        except websockets.exceptions.ConnectionClosedError:
            # Abnormal close; the code is still reported below.
            pass
        click.secho(f"Disconnected ({ws.close_code})", fg="yellow")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
