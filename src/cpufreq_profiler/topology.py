"""Count the CPU cores exposed under the sysfs topology root.

A core shows up as a ``cpu{N}`` entry in /sys/devices/system/cpu/, next to
non-core entries such as ``cpufreq``, ``cpuidle`` or ``online``.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sources import TopologyLister

log = logging.getLogger(__name__)

# Fallback when the topology cannot be read: every system has cpu0
DEFAULT_CORE_COUNT = 1

_CORE_ENTRY = re.compile(r"cpu[0-9]+")


def is_core_entry(name: str) -> bool:
    """Return True for ``cpu`` followed only by ASCII digits."""
    return _CORE_ENTRY.fullmatch(name.strip()) is not None


def count_cores(lister: TopologyLister) -> int:
    """Count ``cpu{N}`` entries reported by *lister*.

    Returns:
        Number of core entries, or 0 if the listing could not be obtained.
        0 means "unknown"; see :func:`resolve_core_count`.
    """
    try:
        entries = lister.list_entries()
    except OSError as exc:
        log.warning("Could not list CPU topology: %s", exc)
        return 0

    return sum(1 for name in entries if is_core_entry(name))


def resolve_core_count(count: int) -> int:
    """Map an unknown (0) core count to :data:`DEFAULT_CORE_COUNT`."""
    if count > 0:
        return count
    log.warning("Core count unknown, assuming %d", DEFAULT_CORE_COUNT)
    return DEFAULT_CORE_COUNT


def enumerate_cores(lister: TopologyLister) -> int:
    """Count cores, falling back to the safe default when unknown."""
    return resolve_core_count(count_cores(lister))
