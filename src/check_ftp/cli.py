"""Command-line entry point for the check-ftp monitoring probe."""

from __future__ import annotations

import argparse
import logging
import os
import platform
import sys
import time
from typing import Any, NoReturn, Sequence

from check_ftp import __version__
from check_ftp.config import DEFAULT_HOSTNAME, DEFAULT_PORT, DEFAULT_TIMEOUT, load_probe_config
from check_ftp.config_layering import CONFIG_ENV_VAR
from check_ftp.errors import ConfigError
from check_ftp.probe import run_probe
from check_ftp.report import StatusCode, config_report, sanitize, unexpected_report
from check_ftp.timeutils import parse_duration

PROG = "check-ftp"
LOG_LEVEL_ENV_VAR = "CHECK_FTP_LOG_LEVEL"
LOG_FILE_ENV_VAR = "CHECK_FTP_LOG_FILE"

logger = logging.getLogger(__name__)

_LOG_LEVEL_ALIASES: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class ArgumentParseError(Exception):
    pass


class _ProbeArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2.

    Monitoring frameworks read exit status 2 as CRITICAL, so parse
    failures are reported by ``main`` as UNKNOWN instead.
    """

    def error(self, message: str) -> NoReturn:
        raise ArgumentParseError(message)


def duration(text: str) -> float:
    return parse_duration(text)


def _version_banner() -> str:
    return (
        f"{PROG} {__version__} "
        f"({platform.python_implementation()} {platform.python_version()})"
    )


def _resolve_log_level(candidate: str | None) -> int:
    for value in (candidate, os.getenv(LOG_LEVEL_ENV_VAR)):
        if not value:
            continue
        stripped = value.strip()
        if not stripped:
            continue
        lower = stripped.lower()
        if lower in _LOG_LEVEL_ALIASES:
            return _LOG_LEVEL_ALIASES[lower]
        if stripped.isdigit():
            return int(stripped)
    return logging.WARNING


def _configure_logging(level_name: str | None) -> None:
    # stdout carries the status line only; diagnostics go to stderr.
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handlers: list[logging.Handler] = [stream_handler]

    log_file = os.getenv(LOG_FILE_ENV_VAR)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_formatter = logging.Formatter(
                "%(asctime)sZ %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
            file_formatter.converter = time.gmtime
            file_handler.setFormatter(file_formatter)
            handlers.append(file_handler)
        except OSError:
            # If we can't open the log file, continue without file logging.
            pass

    logging.basicConfig(
        level=_resolve_log_level(level_name),
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = _ProbeArgumentParser(
        prog=PROG,
        description="Check FTP service reachability, optionally over TLS.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog=(
            "Exit status: 0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN.\n\n"
            "Environment overrides:\n"
            "  CHECK_FTP_<OPTION>     Default for an option, e.g. CHECK_FTP_PORT=2121.\n"
            f"  {CONFIG_ENV_VAR}  TOML file whose [ftp] table supplies defaults.\n"
            f"  {LOG_LEVEL_ENV_VAR}    Logging level when --log-level is omitted.\n"
            f"  {LOG_FILE_ENV_VAR}     Also append log records to this file."
        ),
    )
    parser.add_argument(
        "-h", "--help", action="store_true", help="Show this help message and exit"
    )
    parser.add_argument(
        "--timeout",
        type=duration,
        help=f"Timeout to wait for connection, e.g. 10s or 500ms (default: {DEFAULT_TIMEOUT:g}s)",
    )
    parser.add_argument(
        "-H",
        "--hostname",
        help=f"IP address or host name (default: {DEFAULT_HOSTNAME})",
    )
    parser.add_argument(
        "-p", "--port", type=int, help=f"Port number (default: {DEFAULT_PORT})"
    )
    parser.add_argument(
        "-S", "--ssl", action="store_true", default=None, help="Use TLS"
    )
    parser.add_argument("--sni", help="Host name to send for SNI (default: --hostname)")
    parser.add_argument(
        "--explicit",
        action="store_true",
        default=None,
        help="Use explicit TLS (AUTH TLS) instead of implicit TLS",
    )
    parser.add_argument(
        "-4", dest="tcp4", action="store_true", default=None, help="Use IPv4 only"
    )
    parser.add_argument(
        "-6", dest="tcp6", action="store_true", default=None, help="Use IPv6 only"
    )
    parser.add_argument(
        "--config",
        help=f"Path to a TOML file with an [ftp] table of defaults (or set {CONFIG_ENV_VAR})",
    )
    parser.add_argument(
        "--log-level",
        help="Set log verbosity on stderr (DEBUG, INFO, WARNING, ERROR, CRITICAL or numeric)",
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show version and exit"
    )
    return parser


def _requested_early_exit(argv: Sequence[str]) -> tuple[bool, bool]:
    """Return ``(version, help)`` flags found in ``argv``.

    Scanned with a lenient parser so ``--version`` still works when the
    rest of the command line is invalid.
    """
    early = _ProbeArgumentParser(prog=PROG, add_help=False)
    early.add_argument("-v", "--version", action="store_true")
    early.add_argument("-h", "--help", action="store_true")
    # Other flag-only short options, so clusters such as -Sv expand here too.
    for flag in ("-S", "-4", "-6"):
        early.add_argument(flag, action="store_true")
    try:
        known, _ = early.parse_known_args(list(argv))
    except ArgumentParseError:
        return False, False
    return bool(known.version), bool(known.help)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "timeout": args.timeout,
        "hostname": args.hostname,
        "port": args.port,
        "ssl": args.ssl,
        "sni": args.sni,
        "explicit": args.explicit,
        "tcp4": args.tcp4,
        "tcp6": args.tcp6,
    }


def main(argv: Sequence[str] | None = None) -> int:
    """Run one probe and print its status line; return the exit code."""
    arguments = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()

    want_version, want_help = _requested_early_exit(arguments)
    if want_version:
        print(_version_banner())
        return int(StatusCode.OK)
    if want_help:
        parser.print_help(sys.stdout)
        return int(StatusCode.UNKNOWN)

    try:
        args = parser.parse_args(arguments)
    except ArgumentParseError as exc:
        print(f"{PROG}: error: {sanitize(str(exc))}")
        return int(StatusCode.UNKNOWN)

    if args.version:
        print(_version_banner())
        return int(StatusCode.OK)
    if args.help:
        parser.print_help(sys.stdout)
        return int(StatusCode.UNKNOWN)

    _configure_logging(args.log_level)

    try:
        config = load_probe_config(args.config, cli_overrides=_cli_overrides(args))
    except ConfigError as exc:
        report = config_report(exc)
        print(report.message)
        return int(report.code)
    except (OSError, ValueError) as exc:
        print(f"{PROG}: error: {sanitize(str(exc))}")
        return int(StatusCode.UNKNOWN)

    logger.debug("Probing %s:%s with %s", config.hostname, config.port, config)
    try:
        report = run_probe(config)
    except Exception as exc:
        logger.debug("Unexpected probe failure", exc_info=True)
        report = unexpected_report(exc)

    print(report.message)
    return int(report.code)


if __name__ == "__main__":
    sys.exit(main())
