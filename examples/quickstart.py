#!/usr/bin/env python3
"""
wsrelay Quickstart — one device, one trigger, one delivery.

Connects a simulated device over WebSocket, fires POST /trigger, and
prints what the device receives.
Run with: python examples/quickstart.py

Requires: pip install httpx websockets
Relay must be running: wsrelay serve
"""

import asyncio
import json

import httpx
import websockets

from _common import BASE, check_relay, ws_url


async def main():
    check_relay()

    print("\n1. Connecting simulated device...")
    async with websockets.connect(ws_url()) as device:
        welcome = json.loads(await device.recv())
        print(f"   Welcome: {welcome['message']} ({welcome['timestamp']})")

        print("\n2. Firing trigger...")
        async with httpx.AsyncClient(base_url=BASE, verify=False) as client:
            resp = await client.post("/trigger", json={"message": "launch_app:12"})
        body = resp.json()
        print(f"   {resp.status_code} {body['status']}: {body['message']}")
        print(f"   Clients targeted: {body.get('clientsCount', 0)}")

        print("\n3. Device received:")
        print(f"   {await asyncio.wait_for(device.recv(), timeout=5)}")

    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
