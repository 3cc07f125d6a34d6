"""Load time_in_state reports into pandas for residency summaries."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from .report import parse_report

COLUMNS = ["cpu", "frequency", "time"]


def load_report(path: Path, delimiter: str = ",") -> pd.DataFrame:
    """Read a report file into a long ``cpu, frequency, time`` frame."""
    text = Path(path).read_text()
    return pd.DataFrame(parse_report(text, delimiter), columns=COLUMNS)


def residency_share(frame: pd.DataFrame) -> pd.DataFrame:
    """Percentage of each core's profiled time spent at each frequency.

    Returns:
        Frame indexed by cpu with one column per frequency label, ordered
        numerically where labels are numbers.  Negative deltas (counter
        resets) are excluded from the shares.
    """
    valid = frame[frame["time"] >= 0]
    if valid.empty:
        return pd.DataFrame()
    table = valid.pivot_table(
        index="cpu", columns="frequency", values="time", aggfunc="sum", fill_value=0
    )
    totals = table.sum(axis=1).replace(0, float("nan"))
    shares = table.div(totals, axis=0).mul(100.0).fillna(0.0)

    numeric = pd.to_numeric(shares.columns.to_series(), errors="coerce")
    if not numeric.isna().any():
        shares = shares[numeric.sort_values().index]
    shares.columns.name = "frequency"
    return shares


def format_summary(shares: pd.DataFrame) -> str:
    """Render residency shares as a fixed-width text table."""
    if shares.empty:
        return "(no residency data)"
    return shares.round(1).to_string()
