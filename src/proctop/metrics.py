"""CPU usage delta tracking.

Usage figures are derived from two readings of cumulative counters. Process
usage is expressed as a share of total system CPU time (all cores), the
same convention task managers use.
"""

import logging
from dataclasses import dataclass

from proctop.models import CpuTimes, ProcessCpuTimes
from proctop.providers import MetricsProvider, SystemCpuProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class _ProcessSample:
    """Last-seen process counters and the system total they were read against."""

    process_total: float = 0.0
    system_total: float = 0.0
    observed: bool = False


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, value))


class CpuTracker:
    """Tracks previous CPU snapshots to turn counters into percentages."""

    def __init__(self, system: SystemCpuProvider, metrics: MetricsProvider) -> None:
        self._system = system
        self._metrics = metrics
        self._prev_system = system.system_times() or CpuTimes()
        self._prev_processes: dict[int, _ProcessSample] = {}

    @property
    def tracked_pids(self) -> set[int]:
        return set(self._prev_processes)

    def system_cpu_usage(self) -> float:
        """Return busy time as a percentage of elapsed system time since the last call."""
        current = self._system.system_times()
        if current is None:
            logger.debug("System CPU times unavailable")
            return 0.0

        previous = self._prev_system
        self._prev_system = current

        idle_delta = max(0.0, current.idle - previous.idle)
        total_delta = max(0.0, current.total - previous.total)
        if total_delta == 0:
            return 0.0
        busy_delta = max(0.0, total_delta - idle_delta)
        return _clamp_percent(busy_delta / total_delta * 100.0)

    def process_cpu_usage(self, pid: int) -> float:
        """
        Return the CPU usage of one process since its previous sample.

        The first observation of a pid always yields 0.0. A failed read stores
        an unobserved sample, so usage appears from the cycle after the
        process becomes readable.
        """
        system_now = self._system.system_times()
        if system_now is None:
            self._prev_processes[pid] = _ProcessSample()
            return 0.0

        times: ProcessCpuTimes | None = self._metrics.cpu_times(pid)
        previous = self._prev_processes.get(pid)

        if times is None:
            self._prev_processes[pid] = _ProcessSample(system_total=system_now.total)
            return 0.0

        self._prev_processes[pid] = _ProcessSample(
            process_total=times.total,
            system_total=system_now.total,
            observed=True,
        )
        if previous is None or not previous.observed:
            return 0.0

        system_delta = system_now.total - previous.system_total
        if system_delta <= 0:
            return 0.0
        process_delta = max(0.0, times.total - previous.process_total)
        return _clamp_percent(process_delta / system_delta * 100.0)

    def cleanup_stale(self, active_pids: set[int]) -> None:
        """Forget snapshots of pids that are no longer running."""
        stale = [pid for pid in self._prev_processes if pid not in active_pids]
        for pid in stale:
            del self._prev_processes[pid]
        if stale:
            logger.debug("Dropped CPU snapshots for %d exited processes", len(stale))
