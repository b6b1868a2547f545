from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from stomplink.app.config import ConnectionConfig, load_config
from stomplink.core.errors import ConfigError


def _write(p: Path, name: str, text: str) -> Path:
    path = p / name
    path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return path


def test_defaults():
    cfg = ConnectionConfig(host="broker.local")

    assert cfg.port == 61613
    assert cfg.virtual_host == "/"
    assert cfg.handshake_timeout_s == 2.0
    assert cfg.connect_timeout_s is None
    assert cfg.probe_timeout_s == 1.0


def test_load_flat_yaml(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "broker.yml",
        """
        host: localhost
        port: 9999
        login: guest
        passcode: guest
        virtual_host: /
        handshake_timeout_s: 2
        """,
    )

    cfg = load_config(path)

    assert cfg == ConnectionConfig(
        host="localhost",
        port=9999,
        login="guest",
        passcode="guest",
        virtual_host="/",
        handshake_timeout_s=2.0,
    )


def test_load_nested_under_connection_key_and_casts_numeric_passcode(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "app.yml",
        """
        connection:
          host: 10.0.0.5
          passcode: 1234
          connect_timeout_s: 0.5
        """,
    )

    cfg = load_config(path)

    assert cfg.host == "10.0.0.5"
    assert cfg.passcode == "1234"
    assert cfg.connect_timeout_s == 0.5


def test_missing_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as exc:
        load_config(tmp_path / "nope.yml")
    assert exc.value.code == "config_error"


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    path = _write(tmp_path, "bad.yml", "host: [unclosed\n")
    with pytest.raises(ConfigError) as exc:
        load_config(path)
    assert exc.value.hint


def test_non_mapping_document_raises(tmp_path: Path) -> None:
    path = _write(tmp_path, "list.yml", "- a\n- b\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_unknown_key_is_rejected_with_hint():
    with pytest.raises(ConfigError) as exc:
        ConnectionConfig.from_mapping({"host": "h", "prot": 1})

    assert "prot" in exc.value.message
    assert "port" in exc.value.hint


def test_missing_host_is_rejected():
    with pytest.raises(ConfigError):
        ConnectionConfig.from_mapping({"port": 61613})


@pytest.mark.parametrize("port", [0, 70000, True, "61613"])
def test_bad_port_is_rejected(port):
    with pytest.raises(ConfigError):
        ConnectionConfig.from_mapping({"host": "h", "port": port})


@pytest.mark.parametrize(
    "key,value",
    [
        ("handshake_timeout_s", 0),
        ("handshake_timeout_s", -1),
        ("probe_timeout_s", "fast"),
        ("connect_timeout_s", 0),
        ("handshake_timeout_s", None),
    ],
)
def test_bad_timeouts_are_rejected(key, value):
    with pytest.raises(ConfigError) as exc:
        ConnectionConfig.from_mapping({"host": "h", key: value})
    assert exc.value.details.get("param") == key


@pytest.mark.parametrize("key", ["login", "passcode", "virtual_host"])
def test_null_string_setting_is_rejected(tmp_path: Path, key: str) -> None:
    path = _write(tmp_path, "null.yml", f"host: localhost\n{key}: null\n")
    with pytest.raises(ConfigError) as exc:
        load_config(path)
    assert exc.value.details.get("param") == key
