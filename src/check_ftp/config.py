"""Probe configuration model and validation."""

from __future__ import annotations

import math
import socket
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from .config_layering import load_layered_config
from .errors import ConfigError
from .timeutils import parse_duration

DEFAULT_TIMEOUT = 10.0
DEFAULT_HOSTNAME = "127.0.0.1"
DEFAULT_PORT = 21

DEFAULTS: dict[str, Any] = {
    "timeout": DEFAULT_TIMEOUT,
    "hostname": DEFAULT_HOSTNAME,
    "port": DEFAULT_PORT,
    "ssl": False,
    "sni": "",
    "explicit": False,
    "tcp4": False,
    "tcp6": False,
}


class AddressFamily(Enum):
    ANY = socket.AF_UNSPEC
    IPV4 = socket.AF_INET
    IPV6 = socket.AF_INET6


@dataclass(frozen=True, slots=True)
class ProbeConfig:
    """Validated, read-only settings for one probe run."""

    timeout: float = DEFAULT_TIMEOUT
    hostname: str = DEFAULT_HOSTNAME
    port: int = DEFAULT_PORT
    ssl: bool = False
    explicit: bool = False
    sni: str = ""
    family: AddressFamily = AddressFamily.ANY

    @property
    def address(self) -> tuple[str, int]:
        return (self.hostname, self.port)

    @property
    def server_name(self) -> str:
        """Name announced through SNI during the TLS handshake."""
        return self.sni or self.hostname

    @property
    def implicit_tls(self) -> bool:
        return self.ssl and not self.explicit

    @property
    def explicit_tls(self) -> bool:
        return self.ssl and self.explicit

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProbeConfig:
        """Construct from merged settings, coercing and validating each value.

        Raises ``ConfigError`` when both address-family restrictions are
        requested and ``ValueError`` for any other invalid value.
        """
        merged = {**DEFAULTS, **data}

        tcp4 = _coerce_bool("tcp4", merged["tcp4"])
        tcp6 = _coerce_bool("tcp6", merged["tcp6"])
        if tcp4 and tcp6:
            raise ConfigError("Both tcp4 and tcp6 are specified")
        family = AddressFamily.ANY
        if tcp4:
            family = AddressFamily.IPV4
        elif tcp6:
            family = AddressFamily.IPV6

        hostname = str(merged["hostname"]).strip()
        if not hostname:
            raise ValueError("hostname must not be empty")

        return cls(
            timeout=_coerce_timeout(merged["timeout"]),
            hostname=hostname,
            port=_coerce_port(merged["port"]),
            ssl=_coerce_bool("ssl", merged["ssl"]),
            explicit=_coerce_bool("explicit", merged["explicit"]),
            sni=str(merged["sni"] or "").strip(),
            family=family,
        )


def load_probe_config(
    config_path: str | Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ProbeConfig:
    """Layer defaults, TOML file, environment and CLI values into a ProbeConfig."""
    data = load_layered_config(DEFAULTS, config_path=config_path, cli_overrides=cli_overrides)
    return ProbeConfig.from_dict(data)


def _coerce_timeout(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"invalid timeout: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        seconds = parse_duration(str(value))
    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"timeout must be a positive duration, got {value!r}")
    return seconds


def _coerce_port(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid port: {value!r}")
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid port: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ("1", "true", "yes", "on"):
            return True
        if lower in ("", "0", "false", "no", "off"):
            return False
    raise ValueError(f"invalid boolean for {name}: {value!r}")
