"""wsrelay — WebSocket broadcast relay.

Bridges an HTTP trigger source and a pool of long-lived WebSocket
clients: a POST to /trigger is fanned out to every connected client.
Fire-and-forget, in-memory, single process.
"""

__version__ = "0.1.0"
