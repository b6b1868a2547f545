from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Tuple

from .defs import ENCODING, HDR_CONTENT_LENGTH
from .frame import Frame

DEFAULT_MAX_FRAME_BYTES = 4 * 1024 * 1024

_HEAD_END = re.compile(rb"\r?\n\r?\n")


class FrameParser:
    """Incremental decoder: bytes in via feed(), complete frames out via get_frame()."""

    def __init__(
        self,
        *,
        encoding: str = ENCODING,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
        logger: Optional[logging.Logger] = None,
    ):
        self.encoding = encoding
        self.max_frame_bytes = int(max_frame_bytes)
        self.buffer = bytearray()
        self._resync = False
        self._log = logger or logging.getLogger(__name__)

    # ---------------- Public API ----------------
    def feed(self, data: bytes) -> None:
        """Feed raw bytes into the parser buffer."""
        self.buffer.extend(data)
        self._log.debug(
            "Parser fed %d bytes, buffer_len=%d",
            len(data),
            len(self.buffer),
        )

    def get_frame(self) -> Optional[Frame]:
        """Parse and return the next complete frame, if available."""
        while True:
            if self._resync and not self._drop_through_nul(0):
                return None  # Still inside a dropped frame

            self._skip_eols()
            if not self.buffer:
                return None

            # A head never spans a NUL.
            nul = self.buffer.find(b"\x00")
            m = _HEAD_END.search(self.buffer, 0, nul if nul >= 0 else len(self.buffer))
            if m is None:
                if nul >= 0:
                    self._log.warning("Frame head without blank line, dropping frame")
                    self._drop_through_nul(0)
                    continue
                if len(self.buffer) > self.max_frame_bytes:
                    self._log.warning(
                        "Frame header exceeds %d bytes, dropping frame",
                        self.max_frame_bytes,
                    )
                    self._drop_through_nul(0)
                    continue
                return None  # Wait for more bytes

            body_start = m.end()
            try:
                command, headers = self._parse_head(bytes(self.buffer[: m.start()]))
            except ValueError as e:
                self._log.warning("Malformed frame head (%s), dropping frame", e)
                self._drop_through_nul(body_start)
                continue

            length_raw = headers.get(HDR_CONTENT_LENGTH)
            if length_raw is not None:
                try:
                    length = int(length_raw)
                    if length < 0 or length > self.max_frame_bytes:
                        raise ValueError(length_raw)
                except ValueError:
                    self._log.warning("Invalid content-length %r, dropping frame", length_raw)
                    self._drop_through_nul(body_start)
                    continue

                body_end = body_start + length
                if len(self.buffer) < body_end + 1:
                    return None  # Wait for more bytes

                if self.buffer[body_end] != 0:
                    self._log.warning("Frame body not NUL-terminated at content-length, dropping frame")
                    self._drop_through_nul(body_end)
                    continue
            else:
                body_end = self.buffer.find(b"\x00", body_start)
                if body_end < 0:
                    if len(self.buffer) > self.max_frame_bytes:
                        self._log.warning(
                            "Frame body exceeds %d bytes, dropping frame",
                            self.max_frame_bytes,
                        )
                        self._drop_through_nul(body_start)
                        continue
                    return None  # Wait for more bytes

            body_bytes = bytes(self.buffer[body_start:body_end])

            # Remove processed bytes (body + NUL)
            del self.buffer[: body_end + 1]

            try:
                body = body_bytes.decode(self.encoding)
            except UnicodeDecodeError:
                self._log.warning("Undecodable body for %s frame, dropping frame", command)
                continue

            self._log.debug(
                "Parsed frame command=%s headers=%d body_len=%d",
                command,
                len(headers),
                len(body_bytes),
            )
            return Frame(command, headers, body)

    # ---------------- Helpers ----------------
    def _parse_head(self, head: bytes) -> Tuple[str, Dict[str, str]]:
        lines = head.decode(self.encoding).split("\n")
        command = lines[0].rstrip("\r").strip()
        if not command:
            raise ValueError("empty command line")

        headers: Dict[str, str] = {}
        for line in lines[1:]:
            line = line.rstrip("\r")
            key, sep, value = line.partition(":")
            if not sep or not key.strip():
                raise ValueError(f"bad header line {line!r}")
            # first occurrence of a repeated header wins
            headers.setdefault(key.strip(), value.strip())

        return command, headers

    def _skip_eols(self) -> None:
        """Drop heart-beat newlines between frames."""
        idx = 0
        while idx < len(self.buffer) and self.buffer[idx] in (0x0A, 0x0D):
            idx += 1
        if idx:
            del self.buffer[:idx]

    def _drop_through_nul(self, start: int) -> bool:
        """
        Discard bytes up to and including the next NUL at/after `start`.
        Returns False (and keeps discarding on later feeds) if no NUL is buffered yet.
        """
        nul = self.buffer.find(b"\x00", start)
        if nul < 0:
            self.buffer.clear()
            self._resync = True
            return False

        del self.buffer[: nul + 1]
        self._resync = False
        return True
