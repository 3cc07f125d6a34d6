"""Run one profiling session from the command line, with signal handling.

Begins a session, waits until SIGTERM/SIGINT or the duration limit, then
ends the session and writes the report.
"""

from __future__ import annotations

import signal
import sys
import time
from typing import TYPE_CHECKING

from .session import Profiler

if TYPE_CHECKING:
    from pathlib import Path

    from .config import ProfilerConfig


# Granularity of the wait loop, in seconds
_POLL_INTERVAL = 0.2

_shutdown_requested = False


def _signal_handler(signum: int, frame: object) -> None:
    """Handle SIGTERM/SIGINT by ending the session."""
    global _shutdown_requested
    _shutdown_requested = True


def wait_for_shutdown(duration: int) -> None:
    """Block until a shutdown signal arrives or *duration* seconds pass."""
    start_mono = time.monotonic()
    while not _shutdown_requested:
        if duration > 0:
            elapsed = time.monotonic() - start_mono
            if elapsed >= duration:
                print(f"\nDuration limit reached ({duration}s).", file=sys.stderr)
                return
        time.sleep(_POLL_INTERVAL)


def run_profiler(
    config: ProfilerConfig,
    profiler: Profiler | None = None,
) -> Path | None:
    """Profile CPU time-in-state between now and shutdown.

    Returns:
        Path of the written report, or ``None`` if the session never began.
    """
    global _shutdown_requested
    _shutdown_requested = False

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    if profiler is None:
        profiler = Profiler.from_config(config)

    print("Capturing baseline...", file=sys.stderr)
    session = profiler.begin_session()
    if session is None:
        print("No readable time_in_state counters, not profiling.", file=sys.stderr)
        return None

    print(
        f"  Cores: {len(session.baseline)} of {session.core_count} readable",
        file=sys.stderr,
    )
    if config.duration > 0:
        print(f"  Duration: {config.duration}s", file=sys.stderr)
    print("  Press Ctrl+C to stop.\n", file=sys.stderr)

    start_mono = time.monotonic()
    wait_for_shutdown(config.duration)

    print("Capturing final snapshot...", file=sys.stderr)
    report_path = profiler.end_session(session)

    total_elapsed = time.monotonic() - start_mono
    print(f"\nDone. {total_elapsed:.1f}s profiled ({report_path})", file=sys.stderr)
    return report_path
