"""Shared fixtures: loopback FTP responders for probe tests."""

from __future__ import annotations

import os
import socket
import ssl
import threading
import time
from pathlib import Path
from typing import Callable

import pytest

CERT_PATH = Path(__file__).parent / "data" / "server.pem"


@pytest.fixture(autouse=True)
def _clean_probe_env(monkeypatch) -> None:
    for key in list(os.environ):
        if key.startswith("CHECK_FTP_"):
            monkeypatch.delenv(key, raising=False)


def server_tls_context(seen_names: list | None = None) -> ssl.SSLContext:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(CERT_PATH)
    if seen_names is not None:

        def _record(_sslobj, server_name, _ctx):  # type: ignore[no-untyped-def]
            seen_names.append(server_name)

        context.sni_callback = _record
    return context


def start_server(responder: Callable[[socket.socket], None]) -> tuple[int, threading.Thread]:
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    server.settimeout(5.0)
    port = server.getsockname()[1]

    def _run() -> None:
        try:
            conn, _ = server.accept()
        except OSError:
            server.close()
            return
        conn.settimeout(5.0)
        try:
            responder(conn)
        except OSError:
            pass
        finally:
            conn.close()
            server.close()

    thread = threading.Thread(target=_run, daemon=True)
    thread.start()
    return port, thread


def unused_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def ftp_responder(
    banner: str | bytes = "220 test server ready",
    *,
    replies: dict[str, str] | None = None,
    implicit_tls: ssl.SSLContext | None = None,
    explicit_tls: ssl.SSLContext | None = None,
    received: list[str] | None = None,
    banner_delay: float = 0.0,
) -> Callable[[socket.socket], None]:
    """Build a minimal FTP control-channel responder.

    ``implicit_tls`` wraps the connection before the banner;
    ``explicit_tls`` answers ``AUTH TLS`` with 234 and then wraps.
    """

    def _respond(conn: socket.socket) -> None:
        if implicit_tls is not None:
            conn = implicit_tls.wrap_socket(conn, server_side=True)
        reader = conn.makefile("rb")
        try:
            if banner_delay:
                time.sleep(banner_delay)
            payload = banner if isinstance(banner, bytes) else banner.encode()
            conn.sendall(payload + b"\r\n")
            while True:
                line = reader.readline()
                if not line:
                    return
                command = line.decode("utf-8", errors="replace").strip()
                if received is not None:
                    received.append(command)
                verb = command.split(" ", 1)[0].upper()
                if verb == "QUIT":
                    conn.sendall(b"221 Goodbye\r\n")
                    return
                if verb == "AUTH" and explicit_tls is not None:
                    conn.sendall(b"234 AUTH TLS successful\r\n")
                    reader.close()
                    conn = explicit_tls.wrap_socket(conn, server_side=True)
                    reader = conn.makefile("rb")
                    continue
                reply = (replies or {}).get(verb, "502 Command not implemented")
                conn.sendall(reply.encode() + b"\r\n")
        finally:
            reader.close()
            conn.close()

    return _respond


def silent_responder(hold: float = 1.0) -> Callable[[socket.socket], None]:
    """Accept and never send a banner."""

    def _respond(_conn: socket.socket) -> None:
        time.sleep(hold)

    return _respond
