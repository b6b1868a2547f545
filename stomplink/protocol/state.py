# stomplink/protocol/state.py
from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Mapping, Optional, Tuple

from .core.defs import HDR_MESSAGE
from .core.frame import Frame


class ErrorOrigin(str, Enum):
    LOCAL = "local"    # we failed to send / the stream broke under us
    REMOTE = "remote"  # the broker sent an ERROR frame


@dataclass(frozen=True)
class ErrorEvent:
    """
    One error announced on the connection's observation channel.

    Local failures and broker ERROR frames travel the same path; `origin`
    tells them apart.
    """
    message: str
    origin: ErrorOrigin
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    ts: float = field(default_factory=time.time)

    @property
    def is_local(self) -> bool:
        return self.origin == ErrorOrigin.LOCAL

    @classmethod
    def from_frame(cls, frame: Frame, origin: ErrorOrigin = ErrorOrigin.REMOTE) -> "ErrorEvent":
        message = frame.header(HDR_MESSAGE) or frame.body or "ERROR frame without message"
        return cls(
            message=message,
            origin=origin,
            headers=dict(frame.headers),
            body=frame.body,
        )


class HandshakeOutcome(str, Enum):
    CONNECTED = "connected"
    ERROR = "error"
    TIMEOUT = "timeout"


class ProtocolState:
    """
    Connection status shared between the receiver thread and callers.

    The receiver's dispatch callback is the writer; the handshake wait,
    the liveness check and any status query are readers. A Condition guards
    every field so readers blocked in wait_for_handshake() wake up on change.
    """

    def __init__(self, max_pending_errors: int = 100):
        self._cond = threading.Condition()
        self._connected = False
        self._session_id: Optional[str] = None
        self._last_error: Optional[ErrorEvent] = None
        self._handshake_error: Optional[ErrorEvent] = None
        self._pending_errors: Deque[ErrorEvent] = deque(maxlen=max_pending_errors)

    # --- readers ---
    @property
    def connected(self) -> bool:
        with self._cond:
            return self._connected

    @property
    def session_id(self) -> Optional[str]:
        with self._cond:
            return self._session_id

    @property
    def last_error(self) -> Optional[ErrorEvent]:
        with self._cond:
            return self._last_error

    @property
    def handshake_error(self) -> Optional[ErrorEvent]:
        """First error recorded while not yet connected; later errors never replace it."""
        with self._cond:
            return self._handshake_error

    def next_error(self) -> Optional[ErrorEvent]:
        """Pop the oldest error not yet consumed by a caller (None if none)."""
        with self._cond:
            if not self._pending_errors:
                return None
            return self._pending_errors.popleft()

    def wait_for_handshake(self, timeout_s: float) -> Tuple[HandshakeOutcome, Optional[ErrorEvent]]:
        """
        Block until CONNECTED was dispatched, an error was recorded, or
        `timeout_s` elapsed, whichever comes first.
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._connected or self._handshake_error is not None,
                timeout=timeout_s,
            )
            if self._connected:
                return HandshakeOutcome.CONNECTED, None
            if self._handshake_error is not None:
                return HandshakeOutcome.ERROR, self._handshake_error
            return HandshakeOutcome.TIMEOUT, None

    # --- writers ---
    def mark_connected(self, session_id: Optional[str] = None) -> None:
        with self._cond:
            self._connected = True
            self._session_id = session_id
            self._cond.notify_all()

    def mark_disconnected(self) -> None:
        with self._cond:
            self._connected = False
            self._cond.notify_all()

    def record_error(self, event: ErrorEvent, *, drop_connection: bool = False) -> None:
        with self._cond:
            self._last_error = event
            if self._handshake_error is None and not self._connected:
                self._handshake_error = event
            self._pending_errors.append(event)
            if drop_connection:
                self._connected = False
            self._cond.notify_all()
