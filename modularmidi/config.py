"""Locating the installation root and reading the ``modularMidi.conf`` file."""

from __future__ import annotations

import configparser
import sys
from dataclasses import dataclass
from pathlib import Path

CONF_FILE_NAME = "modularMidi.conf"

# Keys that appear before any section header belong to this section.
_ROOT_SECTION = "DEFAULT"
# Name configparser uses for its inherited-defaults section; never present in a file.
_NO_DEFAULTS = "\x00no-defaults"


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or lacks a key."""


@dataclass(frozen=True)
class HttpConfig:
    """Settings from the ``[http]`` section."""

    listen_port: str
    backend_api_port: str
    backend_api_host: str
    backend_api_protocol: str

    def backend_api_location(self) -> str:
        """Base URL of the backend API: ``protocol://host:listen_port``."""
        return f"{self.backend_api_protocol}://{self.backend_api_host}:{self.listen_port}"


@dataclass(frozen=True)
class UdpConfig:
    """Settings from the ``[udp]`` section."""

    listen_port: str
    send_port: str
    backend_host: str


def find_root_path() -> Path:
    """Return the parent of the directory holding the running program."""
    program = sys.argv[0] if sys.argv and sys.argv[0] else sys.executable
    return Path(program).resolve().parent.parent


def _default_conf_path() -> Path:
    return find_root_path() / CONF_FILE_NAME


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _read_ini(path: str | Path) -> configparser.ConfigParser:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config file: {exc}") from exc

    parser = configparser.ConfigParser(
        interpolation=None,
        strict=False,
        default_section=_NO_DEFAULTS,
        inline_comment_prefixes=("#", ";"),
    )
    parser.optionxform = str  # keys are case-sensitive
    try:
        parser.read_string(f"[{_ROOT_SECTION}]\n{text}", source=str(path))
    except configparser.Error as exc:
        raise ConfigError(f"Failed to read config file: {exc}") from exc
    return parser


def _get_key(parser: configparser.ConfigParser, section: str, key: str) -> str:
    if not parser.has_section(section) or not parser.has_option(section, key):
        raise ConfigError(f"Missing key [{section}] {key}")
    return _unquote(parser.get(section, key))


def load_http_config(path: str | Path | None = None) -> HttpConfig:
    """Read the ``[http]`` section; every key is required."""
    parser = _read_ini(path if path is not None else _default_conf_path())
    return HttpConfig(
        listen_port=_get_key(parser, "http", "listen_port"),
        backend_api_port=_get_key(parser, "http", "backend_api_port"),
        backend_api_host=_get_key(parser, "http", "backend_api_host"),
        backend_api_protocol=_get_key(parser, "http", "backend_api_protocol"),
    )


def load_udp_config(path: str | Path | None = None) -> UdpConfig:
    """Read the ``[udp]`` section; every key is required."""
    parser = _read_ini(path if path is not None else _default_conf_path())
    return UdpConfig(
        listen_port=_get_key(parser, "udp", "listen_port"),
        send_port=_get_key(parser, "udp", "send_port"),
        backend_host=_get_key(parser, "udp", "backend_host"),
    )