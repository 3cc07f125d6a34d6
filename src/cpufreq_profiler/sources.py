"""Adapters that fetch raw counter and topology text, and persist reports.

The default adapters read sysfs directly.  The command adapters shell out
to ``cat``/``ls`` (optionally behind a prefix such as ``adb shell``) for
hosts whose sysfs is only reachable through a remote shell.  Every read is
bounded by a timeout so a hung kernel interface cannot stall a session.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Protocol

from .errors import ReadTimeoutError

log = logging.getLogger(__name__)

DEFAULT_SYSFS_ROOT = "/sys/devices/system/cpu"
DEFAULT_TIMEOUT = 2.0


class CounterSource(Protocol):
    """Returns the raw lines of one core's time_in_state table."""

    def read_lines(self, core_id: int) -> list[str]: ...


class TopologyLister(Protocol):
    """Returns the entry names under the CPU topology root."""

    def list_entries(self) -> list[str]: ...


class ReportSink(Protocol):
    """Persists report text at a path."""

    def write_text(self, path: Path, text: str) -> None: ...


def time_in_state_path(sysfs_root: str, core_id: int) -> str:
    """Return the time_in_state path for *core_id* under *sysfs_root*."""
    return f"{sysfs_root.rstrip('/')}/cpu{core_id}/cpufreq/stats/time_in_state"


def _read_text_bounded(path: Path, timeout: float) -> str:
    """Read *path* in a daemon thread, giving up after *timeout* seconds.

    A sysfs read that never returns leaves the daemon thread behind; it
    does not keep the interpreter alive.
    """
    outcome: dict[str, object] = {}

    def _target() -> None:
        try:
            outcome["text"] = path.read_text()
        except OSError as exc:
            outcome["error"] = exc

    thread = threading.Thread(target=_target, name=f"read-{path}", daemon=True)
    thread.start()
    thread.join(timeout)

    if thread.is_alive():
        raise ReadTimeoutError(f"reading {path} did not finish within {timeout}s")
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["text"]  # type: ignore[return-value]


def _run_bounded(cmd: list[str], timeout: float) -> str:
    """Run *cmd* and return its stdout, raising OSError on failure."""
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise ReadTimeoutError(
            f"{' '.join(cmd)} did not finish within {timeout}s"
        ) from exc

    if result.returncode != 0:
        raise OSError(
            f"{' '.join(cmd)} exited with {result.returncode}: "
            f"{result.stderr.strip()}"
        )
    return result.stdout


class SysfsCounterSource:
    """Read ``cpu{N}/cpufreq/stats/time_in_state`` straight from sysfs."""

    def __init__(
        self,
        sysfs_root: str = DEFAULT_SYSFS_ROOT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._sysfs_root = sysfs_root
        self._timeout = timeout

    def read_lines(self, core_id: int) -> list[str]:
        path = Path(time_in_state_path(self._sysfs_root, core_id))
        log.debug("Reading %s", path)
        return _read_text_bounded(path, self._timeout).splitlines()


class SysfsTopologyLister:
    """List the CPU topology root directory."""

    def __init__(self, sysfs_root: str = DEFAULT_SYSFS_ROOT) -> None:
        self._root = Path(sysfs_root)

    def list_entries(self) -> list[str]:
        return sorted(entry.name for entry in self._root.iterdir())


class CommandCounterSource:
    """Read time_in_state by running ``cat`` in a subprocess.

    Args:
        sysfs_root: CPU topology root as seen by the command.
        timeout: Seconds before the command is abandoned.
        prefix: Command prefix, e.g. ``["adb", "shell"]``.
    """

    def __init__(
        self,
        sysfs_root: str = DEFAULT_SYSFS_ROOT,
        timeout: float = DEFAULT_TIMEOUT,
        prefix: list[str] | None = None,
    ) -> None:
        self._sysfs_root = sysfs_root
        self._timeout = timeout
        self._prefix = list(prefix or [])

    def read_lines(self, core_id: int) -> list[str]:
        cmd = [*self._prefix, "cat", time_in_state_path(self._sysfs_root, core_id)]
        return _run_bounded(cmd, self._timeout).splitlines()


class CommandTopologyLister:
    """List the CPU topology root by running ``ls`` in a subprocess."""

    def __init__(
        self,
        sysfs_root: str = DEFAULT_SYSFS_ROOT,
        timeout: float = DEFAULT_TIMEOUT,
        prefix: list[str] | None = None,
    ) -> None:
        self._sysfs_root = sysfs_root
        self._timeout = timeout
        self._prefix = list(prefix or [])

    def list_entries(self) -> list[str]:
        cmd = [*self._prefix, "ls", self._sysfs_root]
        return _run_bounded(cmd, self._timeout).split()


class FileReportSink:
    """Write report files, refusing to replace an existing one."""

    def write_text(self, path: Path, text: str) -> None:
        with open(path, "x", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
