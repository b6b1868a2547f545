# protocol/__init__.py

# Core classes
from .core import Command, Frame, FrameCodec, FrameParser
from .state import ErrorEvent, ErrorOrigin, HandshakeOutcome, ProtocolState

__all__ = [
    "Command", "Frame", "FrameCodec", "FrameParser",
    "ErrorEvent", "ErrorOrigin", "HandshakeOutcome", "ProtocolState"]
