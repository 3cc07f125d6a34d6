"""Tests for ProfilerConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from cpufreq_profiler.config import ProfilerConfig


class TestProfilerConfig:
    def test_defaults(self) -> None:
        config = ProfilerConfig()
        assert config.output_dir == Path.home()
        assert config.report_dir == Path.home() / "cpu_frequencies"
        assert config.sysfs_root == "/sys/devices/system/cpu"
        assert config.read_timeout == 2.0
        assert config.delimiter == ","
        assert not config.use_shell

    def test_output_dir_coerced_to_path(self, tmp_path: Path) -> None:
        config = ProfilerConfig(output_dir=str(tmp_path))  # type: ignore[arg-type]
        assert isinstance(config.output_dir, Path)

    def test_shell_prefix_implies_shell(self) -> None:
        assert ProfilerConfig(shell_prefix=["adb", "shell"]).use_shell

    @pytest.mark.parametrize("delimiter", ["", ",,", " ", "\n"])
    def test_bad_delimiter(self, delimiter: str) -> None:
        with pytest.raises(ValueError):
            ProfilerConfig(delimiter=delimiter)

    @pytest.mark.parametrize("timeout", [0, -1.0])
    def test_bad_timeout(self, timeout: float) -> None:
        with pytest.raises(ValueError):
            ProfilerConfig(read_timeout=timeout)

    def test_bad_duration(self) -> None:
        with pytest.raises(ValueError):
            ProfilerConfig(duration=-5)
