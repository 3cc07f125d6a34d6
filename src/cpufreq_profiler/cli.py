"""Command-line interface for the time-in-state profiler."""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path

from .config import ProfilerConfig
from .errors import ProfilerError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpufreq-profiler",
        description=(
            "Record per-CPU cpufreq time_in_state at start and end of a "
            "session and write the per-frequency deltas as CSV"
        ),
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path.home(),
        help="Base directory; reports go to <dir>/cpu_frequencies (default: ~)",
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=int,
        default=0,
        help="Session length in seconds, 0 to stop on Ctrl+C (default: 0)",
    )
    parser.add_argument(
        "--sysfs-root",
        default="/sys/devices/system/cpu",
        help="CPU topology root (default: /sys/devices/system/cpu)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=2.0,
        help="Seconds allowed for each counter read (default: 2.0)",
    )
    parser.add_argument(
        "--delimiter",
        default=",",
        help="Report column separator (default: ',')",
    )
    parser.add_argument(
        "--shell",
        action="store_true",
        help="Read counters through cat/ls subprocesses",
    )
    parser.add_argument(
        "--shell-prefix",
        default="",
        help="Command prefix for shell reads, e.g. 'adb shell' (implies --shell)",
    )
    parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Skip the .meta.json sidecar",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print per-core residency percentages after writing the report",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def parse_args(
    argv: list[str] | None = None,
) -> tuple[ProfilerConfig, argparse.Namespace]:
    """Parse command-line arguments.

    Returns:
        The ProfilerConfig and the raw namespace (for CLI-only flags).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = ProfilerConfig(
            output_dir=args.output_dir,
            sysfs_root=args.sysfs_root,
            read_timeout=args.timeout,
            delimiter=args.delimiter,
            duration=args.duration,
            use_shell=args.shell,
            shell_prefix=shlex.split(args.shell_prefix),
            write_metadata=not args.no_metadata,
        )
    except ValueError as exc:
        parser.error(str(exc))
    return config, args


def main(argv: list[str] | None = None) -> None:
    """Entry point for the cpufreq-profiler CLI."""
    config, args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Import here so --help works without touching sysfs-related modules
    from .profiler import run_profiler

    try:
        report_path = run_profiler(config)
    except ProfilerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if report_path is None:
        sys.exit(1)

    print(report_path)

    if args.summary:
        from .analysis import format_summary, load_report, residency_share

        frame = load_report(report_path, config.delimiter)
        print(format_summary(residency_share(frame)))
