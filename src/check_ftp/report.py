"""Status codes and the single-line report emitted for monitoring frameworks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum

from .config import ProbeConfig
from .errors import ConfigError, DialError, ProbeTimeoutError, ProtocolError
from .timeutils import format_seconds

SERVICE = "FTP"
LINE_BREAK_ESCAPE = "\\n"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class StatusCode(IntEnum):
    OK = 0
    WARNING = 1  # reserved; no check currently produces it
    CRITICAL = 2
    UNKNOWN = 3


@dataclass(frozen=True, slots=True)
class ProbeReport:
    message: str
    code: StatusCode


@dataclass(slots=True)
class ProbeOutcome:
    """Result of one orchestration run."""

    transcript: str = ""
    error: BaseException | None = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def sanitize(text: str) -> str:
    """Collapse ``text`` onto one line.

    Trailing line breaks are dropped; every remaining CRLF, CR or LF
    becomes a literal ``\\n``.
    """
    return _LINE_BREAK.sub(LINE_BREAK_ESCAPE, text.rstrip("\r\n"))


def format_report(outcome: ProbeOutcome, config: ProbeConfig) -> ProbeReport:
    """Turn an orchestration outcome into the status line and exit code."""
    transcript = sanitize(outcome.transcript)
    if outcome.error is None:
        elapsed = outcome.elapsed
        message = (
            f"{SERVICE} OK - {format_seconds(elapsed, 3)} second response time "
            f"on {config.hostname} port {config.port} [{transcript}]"
            f"|time={format_seconds(elapsed)}s;;;0.000000;{format_seconds(config.timeout)}"
        )
        return ProbeReport(message, StatusCode.OK)

    if isinstance(outcome.error, ConfigError):
        return config_report(outcome.error)
    if not isinstance(outcome.error, (DialError, ProtocolError, ProbeTimeoutError)):
        return unexpected_report(outcome.error)

    error_text = sanitize(str(outcome.error))
    message = (
        f"{SERVICE} CRITICAL: {error_text} on {config.hostname} port {config.port} "
        f"[{transcript}]"
    )
    return ProbeReport(message, StatusCode.CRITICAL)


def unexpected_report(exc: BaseException) -> ProbeReport:
    message = f"{SERVICE} connection failed with unexpected error: {sanitize(str(exc))}"
    return ProbeReport(message, StatusCode.CRITICAL)


def config_report(exc: BaseException) -> ProbeReport:
    return ProbeReport(sanitize(str(exc)), StatusCode.UNKNOWN)
