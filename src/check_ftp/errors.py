"""Exception hierarchy for probe failures.

Every failure a probe run can produce is a :class:`ProbeError`; the
subclass decides how the report formatter classifies it.
"""

from __future__ import annotations


class ProbeError(RuntimeError):
    pass


class ConfigError(ProbeError):
    """Contradictory or invalid configuration; no network activity happened."""


class DialError(ProbeError):
    """DNS resolution, TCP connect or implicit TLS handshake failed."""


class ProtocolError(ProbeError):
    """The server banner exchange or the AUTH TLS upgrade failed."""


class ProbeTimeoutError(ProbeError):
    """The deadline elapsed before the session was established."""

    def __init__(self, message: str = "connection or tls handshake timeout") -> None:
        super().__init__(message)
