# stomplink/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Base class for socket/stream failures below the protocol layer."""


class TransportOpenError(TransportError):
    """Socket could not be created or connected."""


class TransportIOError(TransportError):
    """Read/write/flush on the socket streams failed (or transport not open)."""
