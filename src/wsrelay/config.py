"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with WSRELAY_ prefix.
The plain PORT variable is also honoured for the HTTP listener.

Learn: the two deployment variants map onto settings, not code:
- combined (secure): one port, TLS on, welcome message, echo_broadcast
- split (plain): WSRELAY_WS_PORT set, WebSocket and HTTP on separate
  ports, message_policy=log
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings


class MessagePolicy(str, Enum):
    """What the relay does with a payload a client sends to it."""

    LOG = "log"
    ECHO = "echo"
    ECHO_BROADCAST = "echo_broadcast"


# ECDHE suites for modern clients, plus plain-RSA key exchange for
# clients whose TLS stack cannot do ECDHE (Roku's roku_modules TlsUtil).
DEFAULT_TLS_CIPHERS = ":".join([
    "ECDHE-ECDSA-AES128-GCM-SHA256",
    "ECDHE-RSA-AES128-GCM-SHA256",
    "ECDHE-ECDSA-AES256-GCM-SHA384",
    "ECDHE-RSA-AES256-GCM-SHA384",
    "RSA+AES128-GCM-SHA256",
    "RSA+AES256-GCM-SHA384",
    "RSA+AES128-SHA256",
    "RSA+AES256-SHA384",
])


class Settings(BaseSettings):
    """All app configuration. Set via WSRELAY_* env vars."""

    # Server
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("WSRELAY_PORT", "PORT"),
    )
    # Split mode: serve WebSocket on its own port
    ws_port: Optional[int] = None
    ws_path: str = "/"

    # Relay behaviour
    message_policy: MessagePolicy = MessagePolicy.ECHO
    echo_prefix: str = "Echo: "
    send_welcome: bool = True
    welcome_message: str = "Connected to WebSocket relay"
    service_name: str = "wsrelay"
    client_label: str = "Roku"

    # TLS
    tls_enabled: bool = False
    tls_certfile: str = "./ssl/certificate.pem"
    tls_keyfile: str = "./ssl/private-key.pem"
    tls_ciphers: str = DEFAULT_TLS_CIPHERS
    tls_honor_cipher_order: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "WSRELAY_", "populate_by_name": True}

    @model_validator(mode="after")
    def validate_listeners(self):
        """Reject listener combinations that cannot start."""
        if self.tls_enabled and not (self.tls_certfile and self.tls_keyfile):
            raise ValueError(
                "WSRELAY_TLS_CERTFILE and WSRELAY_TLS_KEYFILE must be set "
                "when WSRELAY_TLS_ENABLED is true"
            )
        if self.ws_port is not None and self.ws_port == self.port:
            raise ValueError(
                "WSRELAY_WS_PORT must differ from WSRELAY_PORT; "
                "unset it to serve WebSocket and HTTP on one port"
            )
        if not self.ws_path.startswith("/"):
            raise ValueError("WSRELAY_WS_PATH must start with '/'")
        return self

    @property
    def split_mode(self) -> bool:
        return self.ws_port is not None


@lru_cache
def load_settings() -> Settings:
    """Process-wide settings, read from the environment on first use.

    Nothing is validated at import time, so CLI commands that never
    need server settings keep working with a broken WSRELAY_* env.
    """
    return Settings()
