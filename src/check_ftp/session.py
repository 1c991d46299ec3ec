"""FTP control sessions that dial through a DialStrategy and keep a transcript.

The protocol itself is handled by :mod:`ftplib`; these subclasses only
replace how the control socket is opened, record every line exchanged and
send the configured SNI name during the ``AUTH TLS`` upgrade.
"""

from __future__ import annotations

import ftplib
import io
import logging
import ssl

from .errors import DialError, ProbeError, ProtocolError
from .transport import DialStrategy

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

CRLF = "\r\n"
# Banners are free text; servers often send Latin-1 welcome messages.
DECODE_ERRORS = "replace"


class TranscriptFTP(ftplib.FTP):
    """Plain FTP control session recording the exchange verbatim."""

    def __init__(self, strategy: DialStrategy, *, encoding: str = "utf-8") -> None:
        super().__init__(timeout=strategy.config.timeout, encoding=encoding)
        self.host = strategy.config.hostname
        self.port = strategy.config.port
        self._strategy = strategy
        self._transcript = io.StringIO()

    @property
    def transcript(self) -> str:
        return self._transcript.getvalue()

    def connect(self, host="", port=0, timeout=-999, source_address=None):  # type: ignore[override]
        if host != "":
            self.host = host
        if port > 0:
            self.port = port
        if timeout != -999:
            self.timeout = timeout
        self.sock = self._strategy(self.host, self.port, self.timeout)
        self.af = self.sock.family
        self.file = self.sock.makefile("r", encoding=self.encoding, errors=DECODE_ERRORS)
        self.welcome = self.getresp()
        return self.welcome

    def putline(self, line: str) -> None:
        self._transcript.write(line + CRLF)
        super().putline(line)

    def getline(self) -> str:
        line = self.file.readline(self.maxline + 1)
        self._transcript.write(line)
        if len(line) > self.maxline:
            raise ftplib.Error("got more than %d bytes" % self.maxline)
        if not line:
            raise EOFError
        if line[-2:] == CRLF:
            line = line[:-2]
        elif line[-1:] in CRLF:
            line = line[:-1]
        return line


class TranscriptFTPTLS(TranscriptFTP, ftplib.FTP_TLS):
    """Explicit-TLS session: plaintext banner, then ``AUTH TLS``."""

    def __init__(self, strategy: DialStrategy, *, encoding: str = "utf-8") -> None:
        super().__init__(strategy, encoding=encoding)
        if strategy.tls_context is None:
            raise ValueError("explicit TLS session requires a TLS context")
        self.context = strategy.tls_context

    def auth(self) -> str:
        if isinstance(self.sock, ssl.SSLSocket):
            raise ValueError("Already using TLS")
        resp = self.voidcmd("AUTH TLS")
        self.sock = self.context.wrap_socket(
            self.sock, server_hostname=self._strategy.config.server_name
        )
        self.file = self.sock.makefile(mode="r", encoding=self.encoding, errors=DECODE_ERRORS)
        return resp


def open_session(strategy: DialStrategy) -> TranscriptFTP:
    """Create an unconnected session matching the strategy's TLS mode."""
    if strategy.upgrades_explicitly:
        return TranscriptFTPTLS(strategy)
    return TranscriptFTP(strategy)


def establish(session: TranscriptFTP) -> str:
    """Dial, read the banner and, in explicit mode, upgrade to TLS.

    Returns the server welcome line. Failures are raised as ``DialError``
    (transport) or ``ProtocolError`` (banner or upgrade).
    """
    try:
        welcome = session.connect()
        logger.debug("Banner from %s:%s: %s", session.host, session.port, welcome)
        if isinstance(session, TranscriptFTPTLS):
            resp = session.auth()
            logger.debug("AUTH TLS accepted: %s", resp)
    except ProbeError:
        raise
    except ftplib.Error as exc:
        raise ProtocolError(str(exc) or exc.__class__.__name__) from exc
    except ssl.SSLError as exc:
        raise ProtocolError(f"tls upgrade: {exc}") from exc
    except EOFError as exc:
        raise ProtocolError("connection closed by server") from exc
    except OSError as exc:
        if session.sock is None:
            raise DialError(str(exc)) from exc
        raise ProtocolError(str(exc)) from exc
    return welcome


def close_session(session: TranscriptFTP) -> None:
    """Send QUIT and close; a server that already hung up is not an error."""
    try:
        session.quit()
    except ftplib.all_errors as exc:
        logger.debug("QUIT to %s:%s failed: %s", session.host, session.port, exc)
        try:
            session.close()
        except OSError:
            pass
