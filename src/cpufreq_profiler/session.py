"""Begin/end profiling sessions.

A session is an explicit object: :meth:`Profiler.begin_session` captures
the baseline and returns it, :meth:`Profiler.end_session` takes it back,
captures the final snapshot and writes the report.  Sessions share no
state, so several may be open at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .delta import compute_deltas
from .errors import CollectionError, ValidationError
from .report import ReportWriter
from .snapshot import collect_snapshot
from .sources import (
    CommandCounterSource,
    CommandTopologyLister,
    SysfsCounterSource,
    SysfsTopologyLister,
)
from .time_in_state import FrequencyTableParser
from .topology import enumerate_cores

if TYPE_CHECKING:
    from .config import ProfilerConfig
    from .delta import CoreDelta
    from .snapshot import Snapshot
    from .sources import CounterSource, TopologyLister

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfilingSession:
    """An open session: the core count and baseline taken at its start."""

    core_count: int
    baseline: Snapshot

    @property
    def started_at(self) -> float:
        return self.baseline.captured_at


@dataclass(frozen=True)
class SessionResult:
    """Both snapshots of a finished session and the deltas between them."""

    core_count: int
    initial: Snapshot
    final: Snapshot
    core_deltas: tuple[CoreDelta, ...]

    @property
    def started_at(self) -> float:
        return self.initial.captured_at

    @property
    def ended_at(self) -> float:
        return self.final.captured_at

    @property
    def rejected(self) -> list[CoreDelta]:
        """Cores whose delta failed validation."""
        return [c for c in self.core_deltas if not c.ok]


class Profiler:
    """Wire a counter source, topology lister and report writer together."""

    def __init__(
        self,
        source: CounterSource,
        lister: TopologyLister,
        writer: ReportWriter,
    ) -> None:
        self._source = source
        self._lister = lister
        self._writer = writer

    @classmethod
    def from_config(cls, config: ProfilerConfig) -> Profiler:
        """Build a profiler reading sysfs directly or through a shell."""
        source: CounterSource
        lister: TopologyLister
        if config.use_shell:
            source = CommandCounterSource(
                config.sysfs_root, config.read_timeout, config.shell_prefix
            )
            lister = CommandTopologyLister(
                config.sysfs_root, config.read_timeout, config.shell_prefix
            )
        else:
            source = SysfsCounterSource(config.sysfs_root, config.read_timeout)
            lister = SysfsTopologyLister(config.sysfs_root)
        return cls(source, lister, ReportWriter(config))

    def _snapshot(self, core_count: int) -> Snapshot:
        parser = FrequencyTableParser(self._source, core_count)
        return collect_snapshot(parser, core_count)

    def begin_session(self) -> ProfilingSession | None:
        """Count cores and capture the baseline.

        Returns:
            The open session, or ``None`` if no core could be read.
        """
        core_count = enumerate_cores(self._lister)
        try:
            baseline = self._snapshot(core_count)
        except CollectionError as exc:
            log.error("Cpu profiling not started: %s", exc)
            return None

        log.info(
            "Cpu profiling started (%d of %d core(s) readable)",
            len(baseline),
            core_count,
        )
        return ProfilingSession(core_count=core_count, baseline=baseline)

    def finish(self, session: ProfilingSession) -> SessionResult:
        """Capture the final snapshot and compute the deltas.

        Raises:
            CollectionError: No core could be read at session end.
            ValidationError: The number of readable cores changed.
        """
        final = self._snapshot(session.core_count)
        core_deltas = compute_deltas(session.baseline, final)
        return SessionResult(
            core_count=session.core_count,
            initial=session.baseline,
            final=final,
            core_deltas=tuple(core_deltas),
        )

    def end_session(self, session: ProfilingSession | None) -> Path | None:
        """Finish *session* and write its report.

        A session that never began (``None``) is a no-op.

        Returns:
            Path of the written report, or ``None`` for the no-op.

        Raises:
            CollectionError: No core could be read at session end.
            ValidationError: The core count changed; no report is written.
            ReportWriteError: The report could not be persisted.
        """
        if session is None:
            log.info("No baseline captured, nothing to report")
            return None

        try:
            result = self.finish(session)
        except (CollectionError, ValidationError) as exc:
            log.error("Cpu profiling aborted, no report written: %s", exc)
            raise

        if result.rejected:
            log.warning(
                "%d of %d core(s) left out of the report",
                len(result.rejected),
                len(result.core_deltas),
            )
        return self._writer.write(result)
