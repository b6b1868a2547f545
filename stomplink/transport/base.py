from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple


class Transport(ABC):
    """
    Abstract stream transport for the connection (TCP today, TLS/test doubles later).

    Contract:
      - open() creates the socket plus one input and one output stream.
      - read(n) blocks until 1..n bytes are available; b"" means the peer
        closed the stream (end of file).
      - write(data) returns the number of bytes written; flush() pushes them out.
      - close_input(), close_output() and close_socket() release one resource
        each and may be called in any order. Closing something that is already
        closed is a no-op, not an error.
      - close_socket() must unblock a read() pending in another thread.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    @abstractmethod
    def flush(self) -> None: ...

    @abstractmethod
    def close_input(self) -> None: ...

    @abstractmethod
    def close_output(self) -> None: ...

    @abstractmethod
    def close_socket(self) -> None: ...

    @abstractmethod
    def is_closed(self) -> bool: ...

    @abstractmethod
    def remote_address(self) -> Optional[Tuple[str, int]]:
        """Resolved (ip, port) of the peer, captured when the socket was opened."""

    @abstractmethod
    def probe(self, timeout_s: float) -> bool:
        """Best-effort reachability check on a fresh socket to remote_address()."""

    def close(self) -> None:
        self.close_input()
        self.close_output()
        self.close_socket()

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
