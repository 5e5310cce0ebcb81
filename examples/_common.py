"""
Shared helpers for wsrelay examples.

Checks that a relay is running and derives the WebSocket URL from the
HTTP one, so each example can focus on its own flow.
"""

import os
import sys

import httpx

BASE = os.environ.get("WSRELAY_URL", "http://localhost:3000").rstrip("/")


def ws_url(path: str = "/") -> str:
    if BASE.startswith("https://"):
        return "wss://" + BASE[len("https://"):] + path
    return "ws://" + BASE[len("http://"):] + path


def check_relay() -> dict:
    """Verify the relay is reachable and return its health document."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5, verify=False)
    except httpx.ConnectError:
        print(f"ERROR: Relay not reachable at {BASE}")
        print("Start it with:  wsrelay serve")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print(f"Relay health: {health['service']} v{health['version']}")
    print(f"  Clients connected: {health['clients']}")
    return health
