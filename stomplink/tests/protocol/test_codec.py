from __future__ import annotations

import io

import pytest

from stomplink.protocol.core.codec import FrameCodec
from stomplink.protocol.core.defs import Command
from stomplink.protocol.core.frame import Frame


class FakeStream:
    def __init__(self):
        self.buf = io.BytesIO()
        self.flushes = 0

    def write(self, data: bytes) -> int:
        return self.buf.write(data)

    def flush(self) -> None:
        self.flushes += 1


def test_encode_layout_command_headers_blank_line_body_nul():
    codec = FrameCodec()
    raw = codec.encode(Frame(Command.SEND, {"destination": "/queue/a"}, "hello"))

    assert raw == b"SEND\ndestination:/queue/a\n\nhello\x00"


def test_encode_without_body_or_headers():
    raw = FrameCodec().encode(Frame(Command.DISCONNECT))
    assert raw == b"DISCONNECT\n\n\x00"


def test_encode_adds_content_length_when_body_contains_nul():
    raw = FrameCodec().encode(Frame("SEND", {"destination": "/q"}, "a\x00b"))

    assert b"content-length:3\n" in raw
    assert raw.endswith(b"\n\na\x00b\x00")


def test_encode_utf8_body():
    raw = FrameCodec().encode(Frame("SEND", {}, "héllo"))
    assert raw.endswith("héllo".encode("utf-8") + b"\x00")


@pytest.mark.parametrize(
    "headers",
    [
        {"bad\nkey": "v"},
        {"a:b": "v"},
        {"": "v"},
        {"key": "line1\nline2"},
    ],
)
def test_encode_rejects_headers_that_would_break_framing(headers):
    with pytest.raises(ValueError):
        FrameCodec().encode(Frame("SEND", headers, "x"))


def test_serialize_writes_and_flushes_stream():
    stream = FakeStream()
    FrameCodec().serialize(
        Command.CONNECT,
        {"login": "guest", "passcode": "guest", "host": "/"},
        None,
        stream,
    )

    raw = stream.buf.getvalue()
    assert raw.startswith(b"CONNECT\n")
    assert b"login:guest\n" in raw
    assert b"passcode:guest\n" in raw
    assert b"host:/\n" in raw
    assert raw.endswith(b"\n\n\x00")
    assert stream.flushes == 1


def test_serialize_propagates_write_errors():
    class Broken(FakeStream):
        def write(self, data: bytes) -> int:
            raise OSError("broken pipe")

    with pytest.raises(OSError, match="broken pipe"):
        FrameCodec().serialize("SEND", {"destination": "/q"}, "x", Broken())
