"""Tests for the output sanitizer and status line formatting."""

from __future__ import annotations

import pytest

from check_ftp.config import ProbeConfig
from check_ftp.errors import ConfigError, DialError, ProbeTimeoutError, ProtocolError
from check_ftp.report import (
    ProbeOutcome,
    StatusCode,
    config_report,
    format_report,
    sanitize,
    unexpected_report,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("foo\nbar", "foo\\nbar"),
        ("foo\rbar", "foo\\nbar"),
        ("foo\r\nbar", "foo\\nbar"),
        ("foo", "foo"),
        ("", ""),
        ("220 ready\r\n", "220 ready"),
        ("a\r\n\r\nb\n", "a\\n\\nb"),
        ("a\n\rb", "a\\n\\nb"),
        ("a\n\r\n", "a"),
    ],
)
def test_sanitize(text: str, expected: str) -> None:
    assert sanitize(text) == expected


@pytest.mark.parametrize(
    "text",
    [
        "220-Welcome\r\n220 ready\r\n",
        "\r\n\n\r",
        "mixed\rline\nbreaks\r\n",
        "already\\nescaped",
    ],
)
def test_sanitize_is_single_line_and_idempotent(text: str) -> None:
    once = sanitize(text)
    assert "\r" not in once
    assert "\n" not in once
    assert sanitize(once) == once


def test_status_codes_keep_monitoring_values() -> None:
    assert [int(code) for code in StatusCode] == [0, 1, 2, 3]
    assert StatusCode.WARNING == 1


def test_format_report_success() -> None:
    config = ProbeConfig(timeout=10.0, hostname="ftp.example.net", port=21)
    outcome = ProbeOutcome(transcript="220-Hello\r\n220 ready\r\n", elapsed=0.0123456)

    report = format_report(outcome, config)

    assert report.code is StatusCode.OK
    assert report.message == (
        "FTP OK - 0.012 second response time on ftp.example.net port 21 "
        "[220-Hello\\n220 ready]|time=0.012346s;;;0.000000;10.000000"
    )


@pytest.mark.parametrize(
    "error",
    [
        DialError("dial tcp 192.0.2.1:21: connection refused"),
        ProtocolError("421 Too many connections"),
        ProbeTimeoutError(),
    ],
)
def test_format_report_failures_are_critical(error: Exception) -> None:
    config = ProbeConfig(hostname="192.0.2.1", port=21)
    outcome = ProbeOutcome(transcript="421 Too many connections\r\n", error=error, elapsed=0.5)

    report = format_report(outcome, config)

    assert report.code is StatusCode.CRITICAL
    assert report.message == (
        f"FTP CRITICAL: {error} on 192.0.2.1 port 21 [421 Too many connections]"
    )


def test_format_report_timeout_message() -> None:
    config = ProbeConfig(hostname="192.0.2.1", port=990)

    report = format_report(ProbeOutcome(error=ProbeTimeoutError()), config)

    assert report.message == (
        "FTP CRITICAL: connection or tls handshake timeout on 192.0.2.1 port 990 []"
    )


def test_format_report_unclassified_error_uses_generic_wrapper() -> None:
    report = format_report(ProbeOutcome(error=KeyError("surprise")), ProbeConfig())

    assert report.code is StatusCode.CRITICAL
    assert report.message.startswith("FTP connection failed with unexpected error:")
    assert "surprise" in report.message


def test_format_report_multiline_error_text_is_sanitized() -> None:
    error = ProtocolError("500 first\r\n500 second")
    report = format_report(ProbeOutcome(error=error), ProbeConfig())

    assert "\n" not in report.message
    assert "500 first\\n500 second" in report.message


def test_unexpected_report() -> None:
    report = unexpected_report(RuntimeError("boom"))
    assert report.code is StatusCode.CRITICAL
    assert report.message == "FTP connection failed with unexpected error: boom"


def test_config_report_is_unknown() -> None:
    report = config_report(ConfigError("Both tcp4 and tcp6 are specified"))
    assert report.code is StatusCode.UNKNOWN
    assert report.message == "Both tcp4 and tcp6 are specified"


def test_outcome_ok_flag() -> None:
    assert ProbeOutcome().ok is True
    assert ProbeOutcome(error=DialError("x")).ok is False
