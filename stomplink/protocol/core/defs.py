from __future__ import annotations

from enum import Enum


class Command(str, Enum):
    """
    Frame commands known to the client.

    Frames carrying any other command are still decoded and dispatched; their
    command is kept as a plain string.
    """

    # client -> broker
    CONNECT = "CONNECT"
    SEND = "SEND"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    BEGIN = "BEGIN"
    COMMIT = "COMMIT"
    ABORT = "ABORT"
    ACK = "ACK"
    DISCONNECT = "DISCONNECT"

    # broker -> client
    CONNECTED = "CONNECTED"
    MESSAGE = "MESSAGE"
    RECEIPT = "RECEIPT"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def normalize(cls, command: "str | Command") -> str:
        """Return the wire name for a Command member or a raw command string."""
        if isinstance(command, Command):
            return command.value
        return str(command).strip().upper()


# Handshake header keys expected by the broker
HDR_LOGIN = "login"
HDR_PASSCODE = "passcode"
HDR_HOST = "host"

HDR_SESSION = "session"
HDR_MESSAGE = "message"
HDR_DESTINATION = "destination"
HDR_CONTENT_LENGTH = "content-length"

DEFAULT_PORT = 61613
ENCODING = "utf-8"
