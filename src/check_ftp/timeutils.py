"""Small time utilities used by the CLI and the report formatter."""

from __future__ import annotations

import re

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Longest units first so "ms" is not read as "m" followed by garbage.
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration such as ``10s``, ``1m30s`` or ``250ms`` into seconds.

    A bare number is taken as seconds. An optional leading sign is
    accepted; range checking is left to the caller.
    """
    raw = text.strip()
    if not raw:
        raise ValueError("invalid duration: empty string")

    sign = 1.0
    body = raw
    if body[0] in "+-":
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]

    try:
        return sign * float(body)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _COMPONENT.match(body, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ValueError(f"invalid duration: {text!r}")
    return sign * total


def format_seconds(value: float, places: int = 6) -> str:
    """Render seconds as fixed-point text with ``places`` decimals."""
    return f"{value:.{places}f}"
