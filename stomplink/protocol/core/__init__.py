# protocol/core/__init__.py

from .defs import Command
from .frame import Frame
from .codec import FrameCodec
from .parser import FrameParser

__all__ = [
    "Command",
    "Frame",
    "FrameCodec",
    "FrameParser",
]
