from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .defs import Command


@dataclass(frozen=True)
class Frame:
    """One protocol message: command + headers + optional body."""

    command: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    def __post_init__(self) -> None:
        cmd = Command.normalize(self.command)
        if not cmd:
            raise ValueError("Frame command must not be empty")

        # frozen: bypass __setattr__ for normalization
        object.__setattr__(self, "command", cmd)
        object.__setattr__(
            self,
            "headers",
            MappingProxyType({str(k): str(v) for k, v in (self.headers or {}).items()}),
        )

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def is_command(self, command: "str | Command") -> bool:
        return self.command == Command.normalize(command)

    def as_dict(self) -> dict:
        return {
            "command": self.command,
            "headers": dict(self.headers),
            "body": self.body,
        }
