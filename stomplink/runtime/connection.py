# stomplink/runtime/connection.py
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, List, Mapping, Optional

from stomplink.core.errors import ConnectError, HandshakeRejected, HandshakeTimeout
from stomplink.interfaces.listeners import ErrorCallback, FrameCallback
from stomplink.protocol._internal.receiver import FrameReceiver
from stomplink.protocol.core.codec import FrameCodec
from stomplink.protocol.core.defs import (
    DEFAULT_PORT,
    HDR_DESTINATION,
    HDR_HOST,
    HDR_LOGIN,
    HDR_MESSAGE,
    HDR_PASSCODE,
    HDR_SESSION,
    Command,
)
from stomplink.protocol.core.frame import Frame
from stomplink.protocol.state import ErrorEvent, ErrorOrigin, HandshakeOutcome, ProtocolState
from stomplink.transport.base import Transport
from stomplink.transport.errors import TransportError
from stomplink.transport.tcp import TcpTransport

if TYPE_CHECKING:
    from stomplink.app.config import ConnectionConfig


class Connection:
    """
    Client connection to a STOMP broker.

    Responsibilities:
      - own the transport (socket + input/output streams) and the receiver thread
      - run the CONNECT handshake with a bounded wait
      - send frames; report send failures on the error channel, never by raising
      - tear everything down on disconnect without waiting on the receiver
      - answer "connected?" (protocol flag) and "live?" (flag + fresh TCP probe)

    A Connection is single-use: build a new one with open() after disconnect().
    """

    def __init__(
        self,
        transport: Transport,
        *,
        codec: Optional[FrameCodec] = None,
        probe_timeout_s: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._transport = transport
        self._codec = codec or FrameCodec()
        self._log = logger or logging.getLogger(__name__)
        self.probe_timeout_s = float(probe_timeout_s)

        self._state = ProtocolState()
        self._receiver: Optional[FrameReceiver] = None

        self._send_lock = threading.Lock()
        self._teardown_lock = threading.Lock()
        self._closing = False
        self._release_lock = threading.Lock()
        self._released = False

        self._listeners_lock = threading.Lock()
        self._frame_listeners: List[FrameCallback] = []
        self._error_listeners: List[ErrorCallback] = []

    # ---------------- Factory ----------------
    @classmethod
    def open(
        cls,
        host: str,
        port: int = DEFAULT_PORT,
        login: str = "",
        passcode: str = "",
        virtual_host: str = "/",
        *,
        handshake_timeout_s: float = 2.0,
        connect_timeout_s: Optional[float] = None,
        probe_timeout_s: float = 1.0,
        transport: Optional[Transport] = None,
        on_frame: Optional[FrameCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "Connection":
        """
        Open the socket, start the receiver and perform the handshake.

        Raises ConnectError, HandshakeRejected or HandshakeTimeout; on failure
        every resource opened so far is released first.
        """
        transport = transport or TcpTransport(host, port, connect_timeout_s=connect_timeout_s)
        conn = cls(transport, probe_timeout_s=probe_timeout_s, logger=logger)
        if on_frame is not None:
            conn.add_frame_listener(on_frame)
        if on_error is not None:
            conn.add_error_listener(on_error)

        conn._handshake(login, passcode, virtual_host, float(handshake_timeout_s))
        return conn

    @classmethod
    def from_config(cls, cfg: "ConnectionConfig", **kwargs) -> "Connection":
        """Same as open(), with address, credentials and timeouts from a ConnectionConfig."""
        return cls.open(
            cfg.host,
            cfg.port,
            cfg.login,
            cfg.passcode,
            cfg.virtual_host,
            handshake_timeout_s=cfg.handshake_timeout_s,
            connect_timeout_s=cfg.connect_timeout_s,
            probe_timeout_s=cfg.probe_timeout_s,
            **kwargs,
        )

    # ---------------- Handshake ----------------
    def _handshake(self, login: str, passcode: str, virtual_host: str, timeout_s: float) -> None:
        details = {"transport": repr(self._transport), "virtual_host": virtual_host}

        try:
            self._transport.open()
        except TransportError as e:
            self._log.warning("CONNECT_FAILED err=%s", e)
            raise ConnectError(
                "Could not open connection to broker.",
                hint=str(e),
                details=details,
            ) from None

        try:
            # Receiver first: an ERROR sent right after CONNECT must not be missed.
            self._receiver = FrameReceiver(
                self._transport,
                self._on_frame,
                self._on_stream_closed,
                logger=self._log,
            )
            self._receiver.start()
            self._log.info("RECEIVER_STARTED")

            self.transmit(
                Command.CONNECT,
                {HDR_LOGIN: login, HDR_PASSCODE: passcode, HDR_HOST: virtual_host},
            )
            outcome, error = self._state.wait_for_handshake(timeout_s)
        except BaseException:
            self._abort()
            raise

        if outcome == HandshakeOutcome.CONNECTED:
            self._log.info("HANDSHAKE_OK session=%s", self._state.session_id)
            return

        self._abort()

        if outcome == HandshakeOutcome.ERROR and error is not None:
            if error.origin == ErrorOrigin.REMOTE:
                self._log.warning("HANDSHAKE_REJECTED message=%s", error.message)
                raise HandshakeRejected(
                    error.message,
                    hint="Check login, passcode and virtual host.",
                    details=dict(details, headers=dict(error.headers)),
                )
            self._log.warning("HANDSHAKE_FAILED err=%s", error.message)
            raise ConnectError(
                "Connection failed during handshake.",
                hint=error.message,
                details=details,
            )

        self._log.warning("HANDSHAKE_TIMEOUT timeout_s=%s", timeout_s)
        raise HandshakeTimeout(
            timeout_s,
            hint="Broker did not answer CONNECT; check the port speaks STOMP.",
            details=details,
        )

    def _abort(self) -> None:
        if self._receiver is not None:
            self._receiver.cancel()
        self._release_resources()
        self._state.mark_disconnected()

    # ---------------- Send API ----------------
    def transmit(
        self,
        command: "str | Command",
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
    ) -> None:
        """
        Send one frame.

        Failures are not raised: they are dispatched as an ERROR with
        origin=LOCAL, i.e. through the same channel as broker errors.
        """
        cmd = Command.normalize(command)
        try:
            with self._send_lock:
                self._codec.serialize(cmd, headers, body, self._transport)
        except Exception as e:
            msg = str(e) or type(e).__name__
            self._log.warning("TRANSMIT_FAILED cmd=%s err=%s", cmd, msg)
            self._on_frame(Frame(Command.ERROR, {HDR_MESSAGE: msg}, msg), origin=ErrorOrigin.LOCAL)
            return

        self._log.debug("TRANSMIT cmd=%s headers=%d", cmd, len(headers or {}))

    def send(self, destination: str, body: Optional[str] = None, headers: Optional[Mapping[str, str]] = None) -> None:
        h = dict(headers or {})
        h[HDR_DESTINATION] = destination
        self.transmit(Command.SEND, h, body)

    # ---------------- Teardown ----------------
    def disconnect(self, headers: Optional[Mapping[str, str]] = None) -> None:
        """
        Idempotent teardown: DISCONNECT (best effort), cancel receiver,
        close input, output and socket. No-op unless connected.
        """
        with self._teardown_lock:
            if not self._state.connected:
                return

            self._closing = True
            self._state.mark_disconnected()
            self._log.info("DISCONNECTING")

            try:
                self.transmit(Command.DISCONNECT, headers)
                if self._receiver is not None:
                    self._receiver.cancel()
            finally:
                self._release_resources()
                self._state.mark_disconnected()

            self._log.info("DISCONNECTED")

    def _release_resources(self) -> None:
        with self._release_lock:
            if self._released:
                return
            self._released = True

        # Each part independently; the socket shutdown also wakes the receiver.
        for part, close in (
            ("input", self._transport.close_input),
            ("output", self._transport.close_output),
            ("socket", self._transport.close_socket),
        ):
            try:
                close()
            except Exception as e:
                self._log.debug("CLOSE_FAILED part=%s err=%s", part, e)

    # ---------------- Status ----------------
    def is_connected(self) -> bool:
        return self._state.connected

    def is_closed(self) -> bool:
        """Has the primary socket been closed locally (says nothing about the broker)."""
        return self._transport.is_closed()

    def is_live(self) -> bool:
        """
        Protocol flag AND a fresh TCP connect to the broker's address succeeds.

        Blocking (up to probe_timeout_s) and advisory only: the broker can go
        away right after the probe. Never changes the connection's own state.
        """
        if not self._state.connected:
            return False
        up = self._transport.probe(self.probe_timeout_s)
        self._log.debug("LIVENESS_PROBE address=%s up=%s", self._transport.remote_address(), up)
        return up

    def is_receiving(self) -> bool:
        r = self._receiver
        return r is not None and r.is_alive() and not r.cancelled

    @property
    def session_id(self) -> Optional[str]:
        return self._state.session_id

    @property
    def last_error(self) -> Optional[ErrorEvent]:
        return self._state.last_error

    def next_error(self) -> Optional[ErrorEvent]:
        return self._state.next_error()

    # ---------------- Listeners ----------------
    def add_frame_listener(self, listener: FrameCallback) -> None:
        with self._listeners_lock:
            self._frame_listeners.append(listener)

    def remove_frame_listener(self, listener: FrameCallback) -> None:
        with self._listeners_lock:
            if listener in self._frame_listeners:
                self._frame_listeners.remove(listener)

    def add_error_listener(self, listener: ErrorCallback) -> None:
        with self._listeners_lock:
            self._error_listeners.append(listener)

    def remove_error_listener(self, listener: ErrorCallback) -> None:
        with self._listeners_lock:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

    # ---------------- Dispatch ----------------
    def _on_frame(self, frame: Frame, origin: ErrorOrigin = ErrorOrigin.REMOTE) -> None:
        if frame.is_command(Command.CONNECTED):
            if self._closing or self._released:
                self._log.debug("CONNECTED_IGNORED closing=%s", self._closing)
                return
            self._state.mark_connected(frame.header(HDR_SESSION))
            return

        if frame.is_command(Command.ERROR):
            event = ErrorEvent.from_frame(frame, origin)
            self._state.record_error(event)
            self._log.warning("ERROR_FRAME origin=%s message=%s", event.origin.value, event.message)
            self._notify_error(event)
            return

        with self._listeners_lock:
            listeners = list(self._frame_listeners)
        for listener in listeners:
            cb = getattr(listener, "on_frame", listener)
            try:
                cb(frame)
            except Exception:
                self._log.exception("FRAME_LISTENER_ERROR cmd=%s", frame.command)

    def _on_stream_closed(self, reason: str) -> None:
        if self._closing:
            return

        rejected = self._state.handshake_error
        if rejected is not None and rejected.origin == ErrorOrigin.REMOTE:
            # CONNECT was refused; the ERROR frame already reported it.
            self._log.debug("STREAM_CLOSED after rejection reason=%s", reason)
            self._release_resources()
            return

        event = ErrorEvent(message=reason, origin=ErrorOrigin.LOCAL)
        self._state.record_error(event, drop_connection=True)
        self._log.warning("CONNECTION_LOST reason=%s", reason)
        self._notify_error(event)
        self._release_resources()

    def _notify_error(self, event: ErrorEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._error_listeners)
        for listener in listeners:
            cb = getattr(listener, "on_error", listener)
            try:
                cb(event)
            except Exception:
                self._log.exception("ERROR_LISTENER_ERROR")

    # ---------------- Context manager ----------------
    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def __repr__(self) -> str:
        return (
            f"Connection(transport={self._transport!r}, connected={self._state.connected}, "
            f"session={self._state.session_id!r})"
        )
