from stomplink.app.config import ConnectionConfig, load_config
from stomplink.core.errors import (
    ConfigError,
    ConnectError,
    HandshakeRejected,
    HandshakeTimeout,
    StompLinkError,
)
from stomplink.protocol import Command, ErrorEvent, ErrorOrigin, Frame
from stomplink.runtime.connection import Connection

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionConfig", "load_config",
    "Command", "Frame", "ErrorEvent", "ErrorOrigin",
    "StompLinkError", "ConfigError", "ConnectError", "HandshakeRejected", "HandshakeTimeout",
]
