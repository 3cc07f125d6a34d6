"""Full-system time_in_state snapshots."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .errors import CollectionError, EmptyTableError, FormatError, ReadTimeoutError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .time_in_state import FrequencyTableParser

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Frequency tables of every core that could be read at one instant.

    ``tables[i]`` belongs to core ``core_ids[i]``.  Cores that failed to
    parse are absent, so ``core_ids`` may have gaps.
    """

    core_ids: tuple[int, ...]
    tables: tuple[Mapping[str, int], ...]
    core_count: int
    captured_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if len(self.core_ids) != len(self.tables):
            raise ValueError(
                f"{len(self.core_ids)} core ids for {len(self.tables)} tables"
            )
        if len(self.tables) > self.core_count:
            raise ValueError(
                f"{len(self.tables)} tables exceed core count {self.core_count}"
            )
        # Freeze the tables so a captured snapshot cannot drift
        frozen = tuple(MappingProxyType(dict(t)) for t in self.tables)
        object.__setattr__(self, "tables", frozen)

    def __len__(self) -> int:
        return len(self.tables)

    def __getitem__(self, index: int) -> Mapping[str, int]:
        return self.tables[index]

    def __iter__(self) -> Iterator[Mapping[str, int]]:
        return iter(self.tables)

    @property
    def omitted_cores(self) -> list[int]:
        """Core ids below ``core_count`` that produced no table."""
        captured = set(self.core_ids)
        return [i for i in range(self.core_count) if i not in captured]


def collect_snapshot(parser: FrequencyTableParser, core_count: int) -> Snapshot:
    """Parse every core in ``0..core_count-1`` into one snapshot.

    A core whose table is malformed, empty or times out is logged and left
    out; the remaining cores are still collected.

    Raises:
        CollectionError: Not a single core produced a table.
    """
    core_ids: list[int] = []
    tables: list[Mapping[str, int]] = []

    for core_id in range(core_count):
        try:
            table = parser.parse_core(core_id)
        except (FormatError, EmptyTableError, ReadTimeoutError) as exc:
            log.warning("cpu%d: skipped, %s: %s", core_id, type(exc).__name__, exc)
            continue
        core_ids.append(core_id)
        tables.append(table)

    if not tables:
        raise CollectionError("no usable cores")

    return Snapshot(
        core_ids=tuple(core_ids),
        tables=tuple(tables),
        core_count=core_count,
    )
