"""Tests for report formatting and writing."""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from cpufreq_profiler.config import ProfilerConfig
from cpufreq_profiler.delta import CoreDelta, compute_deltas
from cpufreq_profiler.errors import FormatError, ReportWriteError, ValidationError
from cpufreq_profiler.report import (
    ReportWriter,
    format_report,
    parse_report,
    report_filename,
)
from cpufreq_profiler.session import SessionResult
from cpufreq_profiler.snapshot import Snapshot


def _snapshot(
    tables: list[dict[str, int]],
    captured_at: float = 0.0,
) -> Snapshot:
    """Snapshot where core i produced tables[i]."""
    return Snapshot(
        core_ids=tuple(range(len(tables))),
        tables=tuple(tables),
        core_count=len(tables),
        captured_at=captured_at,
    )


_MOD = "cpufreq_profiler.report"

END_TIME = time.mktime((2024, 3, 7, 9, 5, 3, 0, 0, -1))


def _result(
    initial_tables: list[dict[str, int]],
    final_tables: list[dict[str, int]],
) -> SessionResult:
    initial = _snapshot(initial_tables, captured_at=END_TIME - 60)
    final = _snapshot(final_tables, captured_at=END_TIME)
    return SessionResult(
        core_count=len(initial_tables),
        initial=initial,
        final=final,
        core_deltas=tuple(compute_deltas(initial, final)),
    )


class FailingSink:
    def write_text(self, path: Path, text: str) -> None:
        raise OSError("storage unavailable")


class TestReportFilename:
    """Tests for report_filename()."""

    def test_zero_padded_timestamp(self) -> None:
        assert report_filename(END_TIME) == "time_in_state_logs_07032024_090503.csv"

    def test_suffix(self) -> None:
        assert report_filename(END_TIME, "_1").endswith("_090503_1.csv")


class TestFormatReport:
    """Tests for format_report()."""

    def test_layout(self) -> None:
        deltas = [
            CoreDelta(core_id=0, deltas={"300000": 30, "600000": 30}),
            CoreDelta(core_id=1, deltas={"200000": 15}),
        ]
        assert format_report(deltas) == (
            "CPU,0\n"
            "Frequency,Time\n"
            "300000,30\n"
            "600000,30\n"
            "\n"
            "CPU,1\n"
            "Frequency,Time\n"
            "200000,15\n"
            "\n"
        )

    def test_custom_delimiter(self) -> None:
        text = format_report([CoreDelta(core_id=2, deltas={"300000": -4})], ";")
        assert text == "CPU;2\nFrequency;Time\n300000;-4\n\n"

    def test_rejected_core_left_out(self) -> None:
        deltas = [
            CoreDelta(core_id=0, error=ValidationError("frequency set mismatch")),
            CoreDelta(core_id=1, deltas={"200000": 15}),
        ]
        text = format_report(deltas)
        assert "CPU,0" not in text
        assert text.startswith("CPU,1\n")

    def test_empty(self) -> None:
        assert format_report([]) == ""


class TestParseReport:
    """Tests for parse_report()."""

    def test_recovers_triples(self) -> None:
        deltas = [
            CoreDelta(core_id=0, deltas={"300000": 30, "600000": -7}),
            CoreDelta(core_id=3, deltas={"200000": 2**63}),
        ]
        assert parse_report(format_report(deltas)) == [
            (0, "300000", 30),
            (0, "600000", -7),
            (3, "200000", 2**63),
        ]

    def test_row_outside_section(self) -> None:
        with pytest.raises(FormatError, match="outside a CPU section"):
            parse_report("300000,5\n")

    def test_bad_delta(self) -> None:
        with pytest.raises(FormatError, match="bad delta"):
            parse_report("CPU,0\nFrequency,Time\n300000,x\n")

    def test_wrong_field_count(self) -> None:
        with pytest.raises(FormatError):
            parse_report("CPU,0,1\n")


class TestReportWriter:
    """Tests for ReportWriter.write()."""

    def test_writes_report_under_subdir(self, tmp_path: Path) -> None:
        writer = ReportWriter(ProfilerConfig(output_dir=tmp_path))
        path = writer.write(_result([{"300000": 100}], [{"300000": 130}]))

        assert path.parent == tmp_path / "cpu_frequencies"
        assert re.fullmatch(r"time_in_state_logs_\d{8}_\d{6}\.csv", path.name)
        assert path.read_text() == "CPU,0\nFrequency,Time\n300000,30\n\n"

    def test_does_not_overwrite(self, tmp_path: Path) -> None:
        writer = ReportWriter(ProfilerConfig(output_dir=tmp_path))
        result = _result([{"a": 1}], [{"a": 2}])
        first = writer.write(result)
        second = writer.write(result)

        assert first != second
        assert second.name.endswith("_1.csv")
        assert first.read_text() == second.read_text()

    def test_metadata_sidecar(self, tmp_path: Path) -> None:
        writer = ReportWriter(ProfilerConfig(output_dir=tmp_path))
        result = _result(
            [{"a": 1, "b": 9}, {"x": 1}, {"a": 5}],
            [{"a": 3, "b": 2}, {"y": 1}, {"a": 6}],
        )
        path = writer.write(result)

        meta = json.loads(path.with_suffix(".meta.json").read_text())
        assert meta["report_file"] == path.name
        assert meta["core_count"] == 3
        assert meta["cores_reported"] == [0, 2]
        assert meta["rejected_cores"] == {"1": "frequency set mismatch"}
        assert meta["negative_deltas"] == {"0": ["b"]}
        assert meta["duration_s"] == pytest.approx(60.0)
        assert meta["config"]["output_dir"] == str(tmp_path)

    def test_metadata_disabled(self, tmp_path: Path) -> None:
        writer = ReportWriter(ProfilerConfig(output_dir=tmp_path, write_metadata=False))
        path = writer.write(_result([{"a": 1}], [{"a": 2}]))
        assert not path.with_suffix(".meta.json").exists()

    def test_metadata_failure_keeps_report(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        writer = ReportWriter(ProfilerConfig(output_dir=tmp_path))
        with patch(f"{_MOD}.json.dump", side_effect=OSError("disk full")):
            with caplog.at_level(logging.WARNING, logger=_MOD):
                path = writer.write(_result([{"a": 1}], [{"a": 2}]))

        assert path.read_text() == "CPU,0\nFrequency,Time\na,1\n\n"
        assert "disk full" in caplog.text
        assert list(path.parent.glob("*.json*")) == []

    def test_sink_failure_raises(self, tmp_path: Path) -> None:
        writer = ReportWriter(ProfilerConfig(output_dir=tmp_path), sink=FailingSink())
        with pytest.raises(ReportWriteError, match="storage unavailable"):
            writer.write(_result([{"a": 1}], [{"a": 2}]))

    def test_unwritable_directory_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        writer = ReportWriter(ProfilerConfig(output_dir=blocker))
        with pytest.raises(ReportWriteError) as info:
            writer.write(_result([{"a": 1}], [{"a": 2}]))
        assert isinstance(info.value, OSError)
