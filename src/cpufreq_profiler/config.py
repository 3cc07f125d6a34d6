"""Configuration for the time-in-state profiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ProfilerConfig:
    """Runtime configuration for a profiling session."""

    # Base directory for reports; they land in output_dir / report_subdir
    output_dir: Path = field(default_factory=Path.home)

    # Fixed subdirectory holding the reports
    report_subdir: str = "cpu_frequencies"

    # CPU topology root holding cpu{N}/cpufreq/stats/time_in_state
    sysfs_root: str = "/sys/devices/system/cpu"

    # Upper bound in seconds for one counter source read
    read_timeout: float = 2.0

    # Column separator of the report
    delimiter: str = ","

    # Session length in seconds (0 = until SIGINT/SIGTERM)
    duration: int = 0

    # Read counters through `cat`/`ls` subprocesses instead of direct reads
    use_shell: bool = False

    # Command prefix for shell reads, e.g. ["adb", "shell"]
    shell_prefix: list[str] = field(default_factory=list)

    # Whether to write the .meta.json sidecar next to the report
    write_metadata: bool = True

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        if len(self.delimiter) != 1:
            raise ValueError(
                f"delimiter must be a single character, got {self.delimiter!r}"
            )
        if self.delimiter.isspace() or self.delimiter in "\r\n":
            raise ValueError("delimiter must not be whitespace")
        if self.read_timeout <= 0:
            raise ValueError(f"read_timeout must be positive, got {self.read_timeout}")
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")
        if self.shell_prefix:
            self.use_shell = True

    @property
    def report_dir(self) -> Path:
        """Directory the reports are written to."""
        return self.output_dir / self.report_subdir
