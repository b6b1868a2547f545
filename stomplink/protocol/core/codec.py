from __future__ import annotations

from typing import Mapping, Optional, Protocol as TypingProtocol

from .defs import ENCODING, HDR_CONTENT_LENGTH, Command
from .frame import Frame


class OutputStream(TypingProtocol):
    def write(self, data: bytes) -> int: ...
    def flush(self) -> None: ...


class FrameCodec:
    """
    Stateless frame serializer.

    Wire layout (one frame):
        COMMAND\\n
        key:value\\n ...
        \\n
        body\\0

    `content-length` is added when the body itself contains NUL, so the
    receiving side does not stop at the embedded terminator.
    """

    def __init__(self, encoding: str = ENCODING):
        self.encoding = encoding

    def encode(self, frame: Frame) -> bytes:
        body = (frame.body or "").encode(self.encoding)

        headers = dict(frame.headers)
        if b"\x00" in body and HDR_CONTENT_LENGTH not in headers:
            headers[HDR_CONTENT_LENGTH] = str(len(body))

        lines = [frame.command]
        for key, value in headers.items():
            self._check_header(key, value)
            lines.append(f"{key}:{value}")

        head = ("\n".join(lines) + "\n\n").encode(self.encoding)
        return head + body + b"\x00"

    def serialize(
        self,
        command: "str | Command",
        headers: Optional[Mapping[str, str]],
        body: Optional[str],
        stream: OutputStream,
    ) -> None:
        """Encode one frame and write it to `stream`. Errors propagate to the caller."""
        raw = self.encode(Frame(command, headers or {}, body))
        stream.write(raw)
        stream.flush()

    @staticmethod
    def _check_header(key: str, value: str) -> None:
        if not key or ":" in key or "\n" in key or "\r" in key:
            raise ValueError(f"Invalid header name {key!r}")
        if "\n" in value or "\r" in value:
            raise ValueError(f"Invalid value for header {key!r}: line breaks are not allowed")
