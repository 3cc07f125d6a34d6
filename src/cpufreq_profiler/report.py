"""Delimiter-separated time_in_state report with metadata JSON sidecar.

Each core that produced a valid delta gets one section::

    CPU,0
    Frequency,Time
    300000,30
    600000,30
    <blank line>

Reports are named after the session end time,
``time_in_state_logs_<DDMMYYYY>_<HHMMSS>.csv``, and never overwrite an
earlier report.
"""

from __future__ import annotations

import contextlib
import csv
import io
import json
import logging
import os
import platform
import socket
import time
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import FormatError, ReportWriteError
from .sources import FileReportSink

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .config import ProfilerConfig
    from .delta import CoreDelta
    from .session import SessionResult
    from .sources import ReportSink

log = logging.getLogger(__name__)

REPORT_PREFIX = "time_in_state_logs_"
CORE_TAG = "CPU"
HEADER = ("Frequency", "Time")


def report_filename(timestamp: float, suffix: str = "") -> str:
    """Return the report file name for a session ending at *timestamp*."""
    stamp = time.strftime("%d%m%Y_%H%M%S", time.localtime(timestamp))
    return f"{REPORT_PREFIX}{stamp}{suffix}.csv"


def format_report(core_deltas: Iterable[CoreDelta], delimiter: str = ",") -> str:
    """Serialize the valid core deltas into the report layout.

    Cores carrying a validation error are left out and logged.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")

    for core in core_deltas:
        if not core.ok:
            log.error("cpu%d: left out of report, %s", core.core_id, core.error)
            continue
        writer.writerow([CORE_TAG, core.core_id])
        writer.writerow(HEADER)
        for label, value in core.deltas.items():
            writer.writerow([label, value])
        writer.writerow([])

    return buf.getvalue()


def parse_report(text: str, delimiter: str = ",") -> list[tuple[int, str, int]]:
    """Read a report back into ``(core_id, label, delta)`` triples.

    Raises:
        FormatError: A row does not fit the report layout.
    """
    triples: list[tuple[int, str, int]] = []
    core_id: int | None = None

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    for row in reader:
        line_number = reader.line_num
        if not row:
            core_id = None
            continue
        if len(row) != 2:
            raise FormatError(
                f"line {line_number}: expected 2 fields, got {len(row)}",
                line_number=line_number,
            )
        if row[0] == CORE_TAG:
            try:
                core_id = int(row[1])
            except ValueError:
                raise FormatError(
                    f"line {line_number}: bad core id {row[1]!r}",
                    line_number=line_number,
                ) from None
            continue
        if tuple(row) == HEADER:
            continue
        if core_id is None:
            raise FormatError(
                f"line {line_number}: row outside a CPU section",
                line_number=line_number,
            )
        try:
            value = int(row[1])
        except ValueError:
            raise FormatError(
                f"line {line_number}: bad delta {row[1]!r}",
                line_number=line_number,
            ) from None
        triples.append((core_id, row[0], value))

    return triples


class ReportWriter:
    """Write a session's deltas, plus a metadata sidecar, to the report dir."""

    def __init__(
        self,
        config: ProfilerConfig,
        sink: ReportSink | None = None,
    ) -> None:
        self._config = config
        self._sink = sink if sink is not None else FileReportSink()

    @property
    def report_dir(self) -> Path:
        """Directory the reports are written to."""
        return self._config.report_dir

    def _unique_path(self, timestamp: float) -> Path:
        """Pick a report path for *timestamp* that does not exist yet."""
        path = self.report_dir / report_filename(timestamp)
        attempt = 1
        while path.exists():
            path = self.report_dir / report_filename(timestamp, f"_{attempt}")
            attempt += 1
        return path

    def write(self, result: SessionResult) -> Path:
        """Persist *result* and return the report path.

        Raises:
            ReportWriteError: The directory or file could not be written.
        """
        text = format_report(result.core_deltas, self._config.delimiter)

        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            path = self._unique_path(result.ended_at)
            self._sink.write_text(path, text)
        except OSError as exc:
            raise ReportWriteError(
                f"cannot write report to {self.report_dir}: {exc}"
            ) from exc

        log.info("Report written to %s", path)

        if self._config.write_metadata:
            self._write_metadata(path, result)
        return path

    def _write_metadata(self, report_path: Path, result: SessionResult) -> None:
        """Write ``<report>.meta.json`` with host and session details.

        The sidecar is written to a temporary file and renamed into place.
        A failure is logged and leaves no sidecar; the report stands.
        """
        meta_path = report_path.with_suffix(".meta.json")
        config = asdict(self._config)
        config["output_dir"] = str(config["output_dir"])

        meta = {
            "hostname": socket.gethostname(),
            "platform": platform.platform(),
            "kernel": platform.release(),
            "python_version": platform.python_version(),
            "start_time_utc": _utc(result.started_at),
            "end_time_utc": _utc(result.ended_at),
            "duration_s": round(result.ended_at - result.started_at, 3),
            "report_file": report_path.name,
            "core_count": result.core_count,
            "cores_reported": [c.core_id for c in result.core_deltas if c.ok],
            "omitted_cores": {
                "initial": result.initial.omitted_cores,
                "final": result.final.omitted_cores,
            },
            "rejected_cores": {
                str(c.core_id): str(c.error) for c in result.core_deltas if not c.ok
            },
            "negative_deltas": {
                str(c.core_id): c.negative_labels
                for c in result.core_deltas
                if c.negative_labels
            },
            "config": config,
            "pid": os.getpid(),
        }

        tmp_path = meta_path.with_name(meta_path.name + ".tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(meta, f, indent=2)
            os.replace(tmp_path, meta_path)
        except OSError as exc:
            log.warning("Metadata not written for %s: %s", report_path.name, exc)
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)


def _utc(timestamp: float) -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(timestamp))
