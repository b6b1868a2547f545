# stomplink/interfaces/listeners.py
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol, Union

if TYPE_CHECKING:
    from stomplink.protocol.core.frame import Frame
    from stomplink.protocol.state import ErrorEvent


class FrameListener(Protocol):
    """Receives every inbound frame not consumed by the handshake (MESSAGE, RECEIPT, ...)."""
    def on_frame(self, frame: "Frame") -> None: ...


class ErrorListener(Protocol):
    """Receives every error event, local (send/stream failure) or remote (ERROR frame)."""
    def on_error(self, event: "ErrorEvent") -> None: ...


# Plain callables are accepted too
FrameCallback = Union[FrameListener, Callable[["Frame"], None]]
ErrorCallback = Union[ErrorListener, Callable[["ErrorEvent"], None]]
