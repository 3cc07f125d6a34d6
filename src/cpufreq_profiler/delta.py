"""Per-core, per-frequency differences between two snapshots."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .errors import ValidationError

if TYPE_CHECKING:
    from .snapshot import Snapshot

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoreDelta:
    """Time spent at each frequency by one core during a session.

    Exactly one of ``deltas`` (non-empty) and ``error`` is set.  Deltas are
    ``final - initial`` and may be negative when a counter was reset, e.g.
    a core going offline and back online mid-session.
    """

    core_id: int
    deltas: Mapping[str, int] = field(default_factory=dict)
    error: ValidationError | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "deltas", MappingProxyType(dict(self.deltas)))

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def negative_labels(self) -> list[str]:
        """Frequency labels whose counter went backwards."""
        return [label for label, value in self.deltas.items() if value < 0]


def compute_core_delta(
    core_id: int,
    initial: Mapping[str, int],
    final: Mapping[str, int],
) -> CoreDelta:
    """Subtract *initial* from *final* for one core.

    A mismatch between the two label sets yields a :class:`CoreDelta`
    carrying a :class:`ValidationError` instead of deltas.
    """
    if initial.keys() != final.keys():
        missing = sorted(initial.keys() - final.keys())
        added = sorted(final.keys() - initial.keys())
        log.warning(
            "cpu%d: frequency set changed (missing %s, added %s)",
            core_id,
            missing,
            added,
        )
        return CoreDelta(
            core_id=core_id,
            error=ValidationError("frequency set mismatch"),
        )

    deltas = {label: final[label] - initial[label] for label in initial}
    result = CoreDelta(core_id=core_id, deltas=deltas)
    if result.negative_labels:
        log.warning(
            "cpu%d: counter went backwards for %s (reset?)",
            core_id,
            ", ".join(result.negative_labels),
        )
    return result


def compute_deltas(initial: Snapshot, final: Snapshot) -> list[CoreDelta]:
    """Compute the delta of every core between two snapshots.

    Snapshots are compared position by position.  A core whose id or label
    set differs between the two gets an error entry while its siblings are
    still computed.

    Raises:
        ValidationError: The snapshots hold a different number of cores.
    """
    if len(initial) != len(final):
        raise ValidationError(
            f"core count mismatch ({len(initial)} initial, {len(final)} final)"
        )

    results: list[CoreDelta] = []
    for index in range(len(initial)):
        core_id = initial.core_ids[index]
        if final.core_ids[index] != core_id:
            log.warning(
                "Position %d holds cpu%d initially but cpu%d finally",
                index,
                core_id,
                final.core_ids[index],
            )
            results.append(
                CoreDelta(core_id=core_id, error=ValidationError("core id mismatch"))
            )
            continue
        results.append(compute_core_delta(core_id, initial[index], final[index]))

    return results
