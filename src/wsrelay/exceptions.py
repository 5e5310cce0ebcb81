"""Relay error types.

Learn: Only StartupError is fatal. Everything else is contained at the
boundary where it happens: a bad trigger becomes a 400, a failed send
drops one connection, a transport error closes one connection.
"""


class RelayError(Exception):
    pass


class MissingPayloadError(RelayError):
    """Trigger request has no usable "message" field."""

    detail = 'The "message" field is required.'


class StartupError(RelayError):
    """Resource acquisition failed before serving (TLS files, bind, ...)."""
