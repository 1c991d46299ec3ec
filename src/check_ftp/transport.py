"""Dial strategies: how one probe attempt opens its control connection."""

from __future__ import annotations

import logging
import socket
import ssl
from dataclasses import dataclass

from .config import AddressFamily, ProbeConfig
from .errors import DialError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def build_tls_context(config: ProbeConfig) -> ssl.SSLContext:
    """Client TLS context that accepts any certificate.

    The probe checks reachability and handshake success, not identity, so
    hostname checking and chain verification are both off. The SNI name
    is passed per connection (see ``ProbeConfig.server_name``).
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@dataclass(frozen=True, slots=True)
class DialStrategy:
    """Opens the transport for a single attempt.

    Call it with ``(host, port, timeout)``; the result is a connected
    socket, already TLS-wrapped in implicit mode.
    """

    config: ProbeConfig
    tls_context: ssl.SSLContext | None = None

    @property
    def wraps_implicitly(self) -> bool:
        return self.tls_context is not None and self.config.implicit_tls

    @property
    def upgrades_explicitly(self) -> bool:
        return self.tls_context is not None and self.config.explicit_tls

    def __call__(self, host: str, port: int, timeout: float) -> socket.socket:
        sock = open_tcp_connection(host, port, timeout, self.config.family)
        if self.tls_context is None or not self.config.implicit_tls:
            return sock
        server_name = self.config.server_name
        logger.debug("Starting implicit TLS handshake with %s (SNI %s)", _join(host, port), server_name)
        try:
            return self.tls_context.wrap_socket(sock, server_hostname=server_name)
        except (ssl.SSLError, OSError) as exc:
            sock.close()
            raise DialError(f"tls handshake with {_join(host, port)}: {exc}") from exc


def build_dial_strategy(config: ProbeConfig) -> DialStrategy:
    """Derive the dial strategy for ``config``.

    Plaintext and explicit mode dial raw TCP; in explicit mode the session
    upgrades with ``AUTH TLS`` using the same context.
    """
    tls_context = build_tls_context(config) if config.ssl else None
    strategy = DialStrategy(config=config, tls_context=tls_context)
    logger.debug(
        "Dial strategy for %s: family=%s implicit_tls=%s explicit_tls=%s",
        _join(config.hostname, config.port),
        config.family.name,
        strategy.wraps_implicitly,
        strategy.upgrades_explicitly,
    )
    return strategy


def open_tcp_connection(
    host: str, port: int, timeout: float, family: AddressFamily = AddressFamily.ANY
) -> socket.socket:
    """Connect to ``host:port`` restricted to ``family``.

    Every resolved address is tried in order until one connects. The
    returned socket keeps ``timeout`` for subsequent I/O.
    """
    address = _join(host, port)
    try:
        infos = socket.getaddrinfo(host, port, family.value, socket.SOCK_STREAM)
    except OSError as exc:
        raise DialError(f"dial tcp {address}: {exc}") from exc
    if not infos:
        raise DialError(f"dial tcp {address}: no addresses found")

    last_error: OSError | None = None
    for af, socktype, proto, _canonname, sockaddr in infos:
        sock = socket.socket(af, socktype, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(sockaddr)
        except OSError as exc:
            sock.close()
            logger.debug("Connect to %s failed: %s", sockaddr, exc)
            last_error = exc
            continue
        logger.debug("Connected to %s via %s", address, sockaddr)
        return sock

    raise DialError(f"dial tcp {address}: {last_error}") from last_error


def _join(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
