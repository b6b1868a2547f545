# stomplink/app/config.py
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from stomplink.core.errors import ConfigError
from stomplink.protocol.core.defs import DEFAULT_PORT


@dataclass(frozen=True)
class ConnectionConfig:
    host: str
    port: int = DEFAULT_PORT
    login: str = ""
    passcode: str = ""
    virtual_host: str = "/"
    handshake_timeout_s: float = 2.0          # 20 polls x 100 ms
    connect_timeout_s: Optional[float] = None  # None = OS default
    probe_timeout_s: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ConfigError(
                "Missing broker host.",
                hint="Set 'host' to the broker's name or IP address.",
                details={"host": self.host},
            )

        if isinstance(self.port, bool) or not isinstance(self.port, int) or not (0 < self.port < 65536):
            raise ConfigError(
                f"Invalid broker port {self.port!r}.",
                hint="Port must be an integer in 1..65535.",
                details={"port": self.port},
            )

        for name in ("handshake_timeout_s", "probe_timeout_s", "connect_timeout_s"):
            value = getattr(self, name)
            if value is None and name == "connect_timeout_s":
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(
                    f"Invalid value for '{name}': {value!r}.",
                    hint="Timeouts are seconds and must be > 0.",
                    details={"param": name, "value": value},
                )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConnectionConfig":
        """
        Build a config from a plain mapping (e.g. parsed YAML).

        Unknown keys are rejected so typos do not silently fall back to defaults.
        """
        known = {f.name: f for f in fields(cls)}

        for key in data:
            if key not in known:
                raise ConfigError(
                    f"Unknown connection setting '{key}'.",
                    hint=f"Valid settings: {sorted(known.keys())}",
                    details={"param": key},
                )

        kwargs = {}
        for name, value in data.items():
            try:
                kwargs[name] = _cast(name, value)
            except (TypeError, ValueError) as e:
                raise ConfigError(
                    f"Invalid value for '{name}'.",
                    hint=str(e),
                    details={"param": name, "value": value},
                ) from None

        if "host" not in kwargs:
            raise ConfigError(
                "Missing broker host.",
                hint="Set 'host' to the broker's name or IP address.",
            )

        return cls(**kwargs)


_STR_FIELDS = ("host", "login", "passcode", "virtual_host")


def _cast(name: str, value: Any) -> Any:
    if value is None:
        if name in _STR_FIELDS:
            raise TypeError("Expected str, got null")
        return None

    if name in _STR_FIELDS:
        if isinstance(value, (bool, dict, list)):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        # YAML turns numeric-looking passcodes into int
        return str(value)

    if name == "port":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected float, got {type(value).__name__}")
    return float(value)


def load_config(path: str | Path) -> ConnectionConfig:
    """
    Load a ConnectionConfig from YAML.

    Accepts either a flat mapping or one nested under a top-level `connection:` key.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(
            f"Config file not found: {path}",
            details={"path": str(path)},
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            "Failed to parse config file.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    if isinstance(doc, dict) and "connection" in doc:
        doc = doc["connection"]

    if not isinstance(doc, dict):
        raise ConfigError(
            "Config file must contain a mapping of connection settings.",
            details={"path": str(path)},
        )

    return ConnectionConfig.from_mapping(doc)
