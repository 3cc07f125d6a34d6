"""Parse cpufreq ``time_in_state`` tables.

The kernel exposes one line per supported frequency in
/sys/devices/system/cpu/cpu{N}/cpufreq/stats/time_in_state::

    300000 12873
    576000 1502
    748800 990

The first field is the frequency (KHz), the second the cumulative time
spent at it in 10 ms units since boot.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import EmptyTableError, FormatError, ReadTimeoutError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .sources import CounterSource

log = logging.getLogger(__name__)

# Frequency label -> cumulative time-in-state counter
FrequencyTable = dict[str, int]

# Counters are unsigned 64-bit in the kernel
_MAX_COUNTER = 2**64 - 1


def parse_time_in_state(lines: Iterable[str]) -> FrequencyTable:
    """Parse time_in_state lines into a frequency table.

    A label that appears twice keeps its last value.  Every line,
    blank ones included, must hold exactly two whitespace-separated
    fields, the second a non-negative integer, or the whole table is
    rejected.

    Args:
        lines: Raw lines, with or without trailing newlines.

    Returns:
        Mapping of frequency label to counter, in source order.

    Raises:
        FormatError: A line does not have the two-field shape or its time
            field is not a non-negative 64-bit integer.
        EmptyTableError: The source held no lines at all.
    """
    table: FrequencyTable = {}

    for line_number, line in enumerate(lines, start=1):
        fields = line.split()
        if len(fields) != 2:
            raise FormatError(
                f"line {line_number}: expected 2 fields, got {len(fields)}",
                line_number=line_number,
                line=line,
            )

        label, raw_time = fields
        if not (raw_time.isascii() and raw_time.isdigit()):
            raise FormatError(
                f"line {line_number}: time {raw_time!r} is not a non-negative integer",
                line_number=line_number,
                line=line,
            )
        value = int(raw_time)
        if value > _MAX_COUNTER:
            raise FormatError(
                f"line {line_number}: time {raw_time} exceeds 64 bits",
                line_number=line_number,
                line=line,
            )
        table[label] = value

    if not table:
        raise EmptyTableError("no frequency lines read")
    return table


class FrequencyTableParser:
    """Read and parse per-core time_in_state tables from a counter source.

    Args:
        source: Provider of the raw lines for a core.
        core_count: Declared number of cores; valid ids are
            ``0..core_count-1``.
    """

    def __init__(self, source: CounterSource, core_count: int) -> None:
        self._source = source
        self._core_count = core_count

    @property
    def core_count(self) -> int:
        return self._core_count

    def parse_core(self, core_id: int) -> FrequencyTable:
        """Return the frequency table of *core_id*.

        Raises:
            ValueError: *core_id* is outside ``[0, core_count)``.
            FormatError: The table is malformed.
            EmptyTableError: The table is empty or its source is unreadable
                (core offline, cpufreq stats disabled).
            ReadTimeoutError: The source read did not finish in time.
        """
        if not 0 <= core_id < self._core_count:
            raise ValueError(
                f"core id {core_id} outside [0, {self._core_count})"
            )

        try:
            lines = self._source.read_lines(core_id)
        except ReadTimeoutError:
            raise
        except OSError as exc:
            raise EmptyTableError(f"counter source unreadable: {exc}") from exc

        table = parse_time_in_state(lines)
        log.debug("cpu%d: %d frequencies", core_id, len(table))
        return table
