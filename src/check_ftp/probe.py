"""Connection orchestration: race one FTP session setup against a deadline.

The blocking dial, banner and optional TLS upgrade run on a daemon worker
thread. The worker hands a single :class:`ProbeOutcome` back through a
one-slot queue while the calling thread waits at most ``config.timeout``
seconds for it. Whichever of the two resolves first decides the report;
a worker that finishes after the deadline is abandoned and its result is
never read.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from queue import Empty, Queue

from .config import ProbeConfig
from .errors import ProbeTimeoutError
from .report import ProbeOutcome, ProbeReport, format_report
from .session import TranscriptFTP, close_session, establish, open_session
from .transport import build_dial_strategy

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class ProbeState(Enum):
    IDLE = "idle"
    DIALING = "dialing"
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


def _connect_worker(config: ProbeConfig, results: "Queue[ProbeOutcome]") -> None:
    session: TranscriptFTP | None = None
    try:
        strategy = build_dial_strategy(config)
        session = open_session(strategy)
        establish(session)
    except Exception as exc:  # classified by the report formatter
        transcript = ""
        if session is not None:
            transcript = session.transcript
            try:
                session.close()
            except OSError:
                pass
        results.put_nowait(ProbeOutcome(transcript=transcript, error=exc))
        return

    results.put_nowait(ProbeOutcome(transcript=session.transcript))
    close_session(session)


def execute(config: ProbeConfig) -> ProbeOutcome:
    """Run the session setup on a worker thread, bounded by ``config.timeout``."""
    results: "Queue[ProbeOutcome]" = Queue(maxsize=1)
    state = ProbeState.IDLE
    logger.debug("Probe %s:%s state=%s", config.hostname, config.port, state.value)

    start = time.perf_counter()
    worker = threading.Thread(
        target=_connect_worker,
        args=(config, results),
        name="check_ftp_connect",
        daemon=True,
    )
    worker.start()
    state = ProbeState.DIALING
    logger.debug("Probe %s:%s state=%s", config.hostname, config.port, state.value)

    try:
        outcome = results.get(timeout=config.timeout)
    except Empty:
        outcome = ProbeOutcome(error=ProbeTimeoutError())
        state = ProbeState.TIMED_OUT
    else:
        state = ProbeState.SUCCESS if outcome.ok else ProbeState.FAILED
    outcome.elapsed = time.perf_counter() - start

    logger.debug(
        "Probe %s:%s state=%s after %.6fs",
        config.hostname,
        config.port,
        state.value,
        outcome.elapsed,
    )
    if state is ProbeState.SUCCESS:
        # Give the worker the rest of the budget to send QUIT; the report
        # is already decided.
        worker.join(timeout=max(0.0, config.timeout - outcome.elapsed))
    return outcome


def run_probe(config: ProbeConfig) -> ProbeReport:
    """Probe the configured endpoint once and classify the result."""
    outcome = execute(config)
    report = format_report(outcome, config)
    if outcome.error is not None:
        logger.info("Probe of %s:%s failed: %s", config.hostname, config.port, outcome.error)
    return report
