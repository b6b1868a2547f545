# stomplink/transport/tcp.py
from __future__ import annotations

import socket
from typing import BinaryIO, Optional, Tuple

from .base import Transport
from .errors import TransportIOError, TransportOpenError


def probe_reachable(address: Tuple[str, int], timeout_s: float) -> bool:
    """
    Open a throwaway TCP connection to `address` and close it immediately.

    Advisory only: success says the port accepted a connection a moment ago,
    not that the next send on another socket will succeed.
    """
    try:
        with socket.create_connection(address, timeout=timeout_s):
            return True
    except OSError:
        return False


class TcpTransport(Transport):
    """
    Plain TCP transport.

    Notes:
      - The input side is an unbuffered socket reader so that closing it from
        another thread never waits on a buffer lock held by a blocked read.
      - The output side is buffered; write() + flush() always sends whole frames.
      - close_socket() shuts the socket down before closing it, which wakes up
        a read() blocked in the receiver thread with end-of-file.
    """

    def __init__(self, host: str, port: int, connect_timeout_s: Optional[float] = None):
        self.host = host
        self.port = int(port)
        self.connect_timeout_s = connect_timeout_s
        self.sock: Optional[socket.socket] = None
        self._input: Optional[BinaryIO] = None
        self._output: Optional[BinaryIO] = None
        self._remote: Optional[Tuple[str, int]] = None
        self._sock_closed = False

    def open(self) -> None:
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout_s)
        except OSError as e:
            raise TransportOpenError(f"could not connect to {self.host}:{self.port}: {e}") from None

        # connect timeout only; reads block until data or shutdown
        sock.settimeout(None)
        peer = sock.getpeername()

        self.sock = sock
        self._remote = (peer[0], peer[1])
        self._input = sock.makefile("rb", buffering=0)
        self._output = sock.makefile("wb")
        self._sock_closed = False

    def remote_address(self) -> Optional[Tuple[str, int]]:
        return self._remote

    def is_closed(self) -> bool:
        return self.sock is None or self._sock_closed

    def read(self, n: int) -> bytes:
        inp = self._input
        if inp is None:
            raise TransportIOError("read while transport not open")

        try:
            return inp.read(n) or b""
        except (OSError, ValueError) as e:
            raise TransportIOError(f"socket read failed: {e}") from None

    def write(self, data: bytes) -> int:
        out = self._output
        if out is None:
            raise TransportIOError("write while transport not open")

        try:
            return out.write(data)
        except (OSError, ValueError) as e:
            raise TransportIOError(str(e)) from None

    def flush(self) -> None:
        out = self._output
        if out is None:
            raise TransportIOError("flush while transport not open")

        try:
            out.flush()
        except (OSError, ValueError) as e:
            raise TransportIOError(str(e)) from None

    def close_input(self) -> None:
        inp, self._input = self._input, None
        if inp is not None:
            inp.close()

    def close_output(self) -> None:
        out, self._output = self._output, None
        if out is not None:
            out.close()

    def close_socket(self) -> None:
        sock = self.sock
        if sock is None or self._sock_closed:
            return

        self._sock_closed = True
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # peer already gone / never fully connected
        sock.close()

    def probe(self, timeout_s: float) -> bool:
        if self._remote is None:
            return False
        return probe_reachable(self._remote, timeout_s)

    def __repr__(self) -> str:
        return f"TcpTransport(host={self.host!r}, port={self.port}, closed={self.is_closed()})"
