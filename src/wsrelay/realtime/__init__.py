"""Real-time infrastructure — connection registry + WebSocket acceptor.

Learn: Messages flow one way through two entry points:
1. POST /trigger → ConnectionRegistry.broadcast → every open WebSocket
2. WebSocket client → message policy → echo and/or broadcast to the others

The registry is the only shared mutable state. Everything that adds,
removes or iterates connections goes through it.
"""
