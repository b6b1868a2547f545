from __future__ import annotations

import pytest

from stomplink.protocol.core.codec import FrameCodec
from stomplink.protocol.core.defs import Command
from stomplink.protocol.core.frame import Frame
from stomplink.protocol.core.parser import FrameParser


def test_get_frame_returns_none_until_nul_arrives():
    parser = FrameParser()

    parser.feed(b"CONNECTED\nsession:abc\n\n")
    assert parser.get_frame() is None

    parser.feed(b"\x00")
    frame = parser.get_frame()
    assert frame is not None
    assert frame.command == Command.CONNECTED
    assert frame.header("session") == "abc"
    assert frame.body == ""
    assert bytes(parser.buffer) == b""


def test_parses_frames_split_across_feeds_in_order():
    parser = FrameParser()
    raw = b"MESSAGE\ndestination:/q\n\none\x00MESSAGE\ndestination:/q\n\ntwo\x00"

    bodies = []
    for i in range(len(raw)):
        parser.feed(raw[i:i + 1])
        frame = parser.get_frame()
        if frame is not None:
            bodies.append(frame.body)

    assert bodies == ["one", "two"]


def test_heartbeat_newlines_between_frames_are_skipped():
    parser = FrameParser()
    parser.feed(b"\n\r\n\nRECEIPT\nreceipt-id:7\n\n\x00\n\n")

    frame = parser.get_frame()
    assert frame.command == "RECEIPT"
    assert frame.header("receipt-id") == "7"
    assert parser.get_frame() is None
    assert bytes(parser.buffer) == b""


def test_crlf_line_endings_are_accepted():
    parser = FrameParser()
    parser.feed(b"ERROR\r\nmessage:bad login\r\n\r\ndetails\x00")

    frame = parser.get_frame()
    assert frame.command == "ERROR"
    assert frame.header("message") == "bad login"
    assert frame.body == "details"


def test_content_length_body_may_contain_nul():
    parser = FrameParser()
    parser.feed(FrameCodec().encode(Frame("MESSAGE", {"destination": "/q"}, "a\x00b")))

    frame = parser.get_frame()
    assert frame.body == "a\x00b"
    assert frame.header("content-length") == "3"


def test_content_length_waits_for_full_body():
    parser = FrameParser()
    parser.feed(b"MESSAGE\ncontent-length:5\n\nab")
    assert parser.get_frame() is None

    parser.feed(b"\x00de\x00")
    assert parser.get_frame().body == "ab\x00de"


def test_first_repeated_header_wins():
    parser = FrameParser()
    parser.feed(b"MESSAGE\nfoo:1\nfoo:2\n\n\x00")
    assert parser.get_frame().header("foo") == "1"


def test_unknown_command_is_kept_as_string():
    parser = FrameParser()
    parser.feed(b"NACK\nid:1\n\n\x00")

    frame = parser.get_frame()
    assert frame.command == "NACK"


def test_malformed_header_drops_only_that_frame():
    parser = FrameParser()
    parser.feed(b"MESSAGE\nno-colon-here\n\nbad\x00RECEIPT\nreceipt-id:1\n\n\x00")

    frame = parser.get_frame()
    assert frame.command == "RECEIPT"


def test_head_without_blank_line_does_not_swallow_next_frame():
    parser = FrameParser()
    parser.feed(b"MESSAGE\nfoo:1\x00ERROR\nmessage:bad login\n\n\x00")

    frame = parser.get_frame()
    assert frame.command == "ERROR"
    assert frame.header("message") == "bad login"
    assert parser.get_frame() is None


def test_invalid_content_length_drops_frame():
    parser = FrameParser()
    parser.feed(b"MESSAGE\ncontent-length:abc\n\nxx\x00RECEIPT\n\n\x00")

    assert parser.get_frame().command == "RECEIPT"


def test_content_length_without_trailing_nul_drops_frame_and_resyncs():
    parser = FrameParser()
    parser.feed(b"MESSAGE\ncontent-length:2\n\nabXYZ\x00RECEIPT\n\n\x00")

    assert parser.get_frame().command == "RECEIPT"


def test_undecodable_body_is_dropped():
    parser = FrameParser()
    parser.feed(b"MESSAGE\n\n\xff\xfe\x00RECEIPT\n\n\x00")

    assert parser.get_frame().command == "RECEIPT"


def test_oversized_frame_is_dropped_and_parser_resyncs_on_later_feed():
    parser = FrameParser(max_frame_bytes=16)

    parser.feed(b"MESSAGE\n\n" + b"x" * 32)
    assert parser.get_frame() is None
    assert bytes(parser.buffer) == b""

    # tail of the dropped frame, then a good one
    parser.feed(b"yyy\x00RECEIPT\n\n\x00")
    assert parser.get_frame().command == "RECEIPT"


@pytest.mark.parametrize(
    "frame",
    [
        Frame(Command.CONNECTED, {"session": "s-1", "version": "1.0"}),
        Frame(Command.MESSAGE, {"destination": "/topic/x", "message-id": "m1"}, "payload"),
        Frame(Command.ERROR, {"message": "bad login"}, "The login was rejected"),
    ],
)
def test_parser_reads_what_codec_writes(frame):
    parser = FrameParser()
    parser.feed(FrameCodec().encode(frame))

    got = parser.get_frame()
    assert got.command == frame.command
    assert dict(got.headers) == dict(frame.headers)
    assert got.body == (frame.body or "")
