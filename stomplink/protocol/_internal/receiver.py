# stomplink/protocol/_internal/receiver.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol as TypingProtocol

from ..core.frame import Frame
from ..core.parser import FrameParser


class InputStream(TypingProtocol):
    def read(self, n: int) -> bytes: ...


class FrameReceiver(threading.Thread):
    """
    Thread that continuously reads the input stream, decodes frames and hands
    each one to `on_frame`, in arrival order.

    Stops when cancel() was called or the stream ends/fails. A read that fails
    after cancel() is the expected wake-up from teardown and is not reported;
    otherwise `on_closed(reason)` is called once.
    """

    def __init__(
        self,
        source: InputStream,
        on_frame: Callable[[Frame], None],
        on_closed: Optional[Callable[[str], None]] = None,
        *,
        parser: Optional[FrameParser] = None,
        read_size: int = 4096,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(name="stomplink-receiver", daemon=True)
        self._source = source
        self._on_frame = on_frame
        self._on_closed = on_closed
        self._log = logger or logging.getLogger(__name__)
        self._parser = parser or FrameParser(logger=self._log)
        self._read_size = int(read_size)
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request stop; does not wait for the thread to exit."""
        self._cancel_event.set()

    def run(self) -> None:
        self._log.debug("RECEIVER_RUNNING")
        while not self._cancel_event.is_set():
            try:
                data = self._source.read(self._read_size)
            except Exception as e:
                if self._cancel_event.is_set():
                    break
                self._closed(f"read failed: {e}")
                break

            if not data:
                if not self._cancel_event.is_set():
                    self._closed("connection closed by peer")
                break

            self._parser.feed(data)
            self._drain()

        self._log.debug("RECEIVER_EXIT cancelled=%s", self._cancel_event.is_set())

    def _drain(self) -> None:
        while not self._cancel_event.is_set():
            frame = self._parser.get_frame()
            if frame is None:
                return
            try:
                self._on_frame(frame)
            except Exception:
                self._log.exception("RECEIVER_DISPATCH_ERROR cmd=%s", frame.command)

    def _closed(self, reason: str) -> None:
        self._log.info("RECEIVER_STREAM_CLOSED reason=%s", reason)
        if self._on_closed is None:
            return
        try:
            self._on_closed(reason)
        except Exception:
            self._log.exception("RECEIVER_ON_CLOSED_ERROR")
