# stomplink/core/errors.py
from __future__ import annotations


class StompLinkError(Exception):
    """
    Base class for all expected operational errors in stomplink.
    """

    #: Stable machine-readable identifier (for exit mapping, service APIs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (no network access yet)
# ---------------------------------------------------------------------------

class ConfigError(StompLinkError):
    """
    Connection configuration is invalid or incomplete.

    Examples:
      - config file missing or not valid YAML
      - missing host
      - port out of range
      - non-positive handshake timeout
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Connection lifecycle errors
# ---------------------------------------------------------------------------

class ConnectError(StompLinkError):
    """
    Socket-level failure while establishing the connection.

    Examples:
      - host not resolvable
      - connection refused
      - CONNECT frame could not be written
      - broker closed the socket during the handshake
    """
    code = "connect_error"


class HandshakeTimeout(StompLinkError):
    """
    Socket is open but the broker did not answer CONNECT in time.
    """
    code = "handshake_timeout"

    def __init__(self, timeout_s: float, **kwargs):
        super().__init__(f"Did not connect in time ({timeout_s:g}s).", **kwargs)
        self.timeout_s = timeout_s


class HandshakeRejected(StompLinkError):
    """
    Broker answered CONNECT with an ERROR frame.

    `broker_message` carries the broker's text (the ERROR `message` header,
    or the body when the header is absent).
    """
    code = "handshake_rejected"

    def __init__(self, broker_message: str, **kwargs):
        super().__init__(broker_message, **kwargs)
        self.broker_message = broker_message
