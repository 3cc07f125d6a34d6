"""Exception taxonomy for the time-in-state profiler.

Every failure the profiler can report derives from :class:`ProfilerError`,
so callers can catch the whole family at a session boundary while still
telling a malformed counter file apart from an unwritable report.
"""

from __future__ import annotations


class ProfilerError(Exception):
    """Base class for all profiler failures."""


class FormatError(ProfilerError):
    """A time_in_state line did not have the ``<label> <time>`` shape."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        line: str | None = None,
    ) -> None:
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class EmptyTableError(ProfilerError):
    """A core's counter source produced no frequency lines."""


class CollectionError(ProfilerError):
    """No core produced a usable frequency table."""


class ValidationError(ProfilerError):
    """Initial and final snapshots cannot be compared."""


class ReportWriteError(ProfilerError, OSError):
    """The report destination could not be created or written."""


class ReadTimeoutError(ProfilerError, TimeoutError):
    """A counter source read did not complete within its time bound."""
