"""Sort engine for the process list."""

import math
from collections.abc import Callable
from functools import cmp_to_key

from proctop.models import ProcessEntry, SortColumn

# Columns whose natural order puts the smallest value first.
ASCENDING_NATURAL = frozenset({SortColumn.NAME, SortColumn.PID})

_FIELDS: dict[SortColumn, Callable[[ProcessEntry], object]] = {
    SortColumn.CPU: lambda e: e.cpu_percent,
    SortColumn.MEMORY: lambda e: e.memory_bytes,
    SortColumn.NAME: lambda e: e.name.lower(),
    SortColumn.PID: lambda e: e.pid,
    SortColumn.PRIORITY: lambda e: e.priority,
    SortColumn.THREADS: lambda e: e.thread_count,
    SortColumn.HANDLES: lambda e: e.handle_count,
    SortColumn.UPTIME: lambda e: e.uptime_seconds,
    SortColumn.DISK_READ_RATE: lambda e: e.disk_read_rate,
    SortColumn.DISK_WRITE_RATE: lambda e: e.disk_write_rate,
}


def _compare(a: object, b: object) -> int:
    """Three-way compare; NaN compares equal to anything."""
    if isinstance(a, float) and math.isnan(a) or isinstance(b, float) and math.isnan(b):
        return 0
    if a < b:  # type: ignore[operator]
        return -1
    if a > b:  # type: ignore[operator]
        return 1
    return 0


def comparator(column: SortColumn, ascending: bool) -> Callable[[ProcessEntry, ProcessEntry], int]:
    """
    Build a comparator for one column.

    Usage columns default to highest first, Name and PID to lowest first;
    the ascending flag reverses whichever order is the default.
    """
    field = _FIELDS[column]
    sign = 1 if column in ASCENDING_NATURAL else -1
    if ascending:
        sign = -sign

    def compare(a: ProcessEntry, b: ProcessEntry) -> int:
        return sign * _compare(field(a), field(b))

    return compare


def sort_entries(
    entries: list[ProcessEntry], column: SortColumn, ascending: bool = False
) -> list[ProcessEntry]:
    """Return a new list ordered by column."""
    return sorted(entries, key=cmp_to_key(comparator(column, ascending)))
