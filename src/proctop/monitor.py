"""Refresh pipeline: turns provider snapshots into process entries."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from proctop.metrics import CpuTracker
from proctop.models import DiskCounters, Priority, ProcessEntry, ProcessRecord
from proctop.providers import EnumerationProvider, MetricsProvider, SystemCpuProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RefreshResult:
    """Outcome of one refresh pass."""

    entries: list[ProcessEntry]
    system_cpu: float
    elapsed_seconds: float


def disk_rate(current: int, previous: int, elapsed: float) -> float:
    """Bytes per second between two cumulative readings; never negative."""
    if elapsed <= 0:
        return 0.0
    return max(0, current - previous) / elapsed


def _or_unknown(priority: Priority | None) -> Priority:
    return Priority.UNKNOWN if priority is None else priority


class ProcessMonitor:
    """
    Collects a full set of process entries on each call to refresh().

    Owns the CPU delta tracker and the previous disk I/O snapshots. Every
    per-process query may fail on its own; a failure only blanks that field.
    """

    def __init__(
        self,
        enumeration: EnumerationProvider,
        metrics: MetricsProvider,
        system: SystemCpuProvider,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            enumeration: Source of the flat process list.
            metrics: Per-process metric queries.
            system: System-wide CPU counters.
            clock: Monotonic clock used for rate calculation.
            wall_clock: Epoch clock used for process uptime.
        """
        self._enumeration = enumeration
        self._metrics = metrics
        self._clock = clock
        self._wall_clock = wall_clock
        self._cpu = CpuTracker(system, metrics)
        self._prev_disk: dict[int, DiskCounters] = {}
        self._last_refresh = clock()

    @property
    def cpu_tracker(self) -> CpuTracker:
        return self._cpu

    @property
    def tracked_disk_pids(self) -> set[int]:
        return set(self._prev_disk)

    def refresh(self) -> RefreshResult:
        """
        Collect a new list of entries.

        Raises:
            EnumerationError: The process list could not be read. Tracker
                state is left as it was.
        """
        now = self._clock()
        elapsed = now - self._last_refresh

        system_cpu = self._cpu.system_cpu_usage()
        records = self._enumeration.enumerate()
        self._last_refresh = now

        wall_now = self._wall_clock()
        new_disk: dict[int, DiskCounters] = {}
        entries = [self._build_entry(record, elapsed, wall_now, new_disk) for record in records]

        self._prev_disk = new_disk
        self._cpu.cleanup_stale({record.pid for record in records})
        return RefreshResult(entries=entries, system_cpu=system_cpu, elapsed_seconds=elapsed)

    def _build_entry(
        self,
        record: ProcessRecord,
        elapsed: float,
        wall_now: float,
        new_disk: dict[int, DiskCounters],
    ) -> ProcessEntry:
        pid = record.pid
        metrics = self._metrics

        cpu_percent = self._cpu.process_cpu_usage(pid)
        counters = metrics.disk_counters(pid)
        disk = counters or DiskCounters()

        # An unreadable pid keeps no baseline, so its next reading starts at 0.
        previous = self._prev_disk.get(pid)
        if counters is None or previous is None:
            read_rate = write_rate = 0.0
        else:
            read_rate = disk_rate(disk.read_bytes, previous.read_bytes, elapsed)
            write_rate = disk_rate(disk.write_bytes, previous.write_bytes, elapsed)
        if counters is not None:
            new_disk[pid] = counters

        start_time = metrics.start_time(pid)
        uptime = int(max(0.0, wall_now - start_time)) if start_time is not None else 0

        return ProcessEntry(
            record=record,
            cpu_percent=cpu_percent,
            memory_bytes=metrics.memory(pid) or 0,
            disk_read=disk.read_bytes,
            disk_write=disk.write_bytes,
            disk_read_rate=read_rate,
            disk_write_rate=write_rate,
            priority=_or_unknown(metrics.priority(pid)),
            uptime_seconds=uptime,
            handle_count=metrics.handle_count(pid) or 0,
            path=metrics.path(pid),
        )
