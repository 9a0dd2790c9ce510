"""OS collaborators used by the engine, and their psutil implementation."""

import ctypes
import logging
import os
import socket
from collections.abc import Callable
from typing import Protocol, TypeVar

import psutil

from proctop.errors import (
    AccessDenied,
    ControlError,
    EnumerationError,
    InvalidParameter,
    ProcessNotFound,
    UnsupportedOperation,
)
from proctop.models import (
    AffinityInfo,
    CpuTimes,
    DiskCounters,
    Priority,
    ProcessCpuTimes,
    ProcessRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EnumerationProvider(Protocol):
    def enumerate(self) -> list[ProcessRecord]: ...


class MetricsProvider(Protocol):
    """Per-process queries. Every method returns None when the value is unavailable."""

    def cpu_times(self, pid: int) -> ProcessCpuTimes | None: ...

    def memory(self, pid: int) -> int | None: ...

    def disk_counters(self, pid: int) -> DiskCounters | None: ...

    def priority(self, pid: int) -> Priority | None: ...

    def handle_count(self, pid: int) -> int | None: ...

    def path(self, pid: int) -> str | None: ...

    def start_time(self, pid: int) -> float | None: ...

    def affinity(self, pid: int) -> AffinityInfo | None: ...

    def command_line(self, pid: int) -> str | None: ...

    def username(self, pid: int) -> str | None: ...

    def status(self, pid: int) -> str | None: ...

    def connections(self, pid: int) -> list[str] | None: ...

    def modules(self, pid: int) -> list[str] | None: ...


class SystemCpuProvider(Protocol):
    def system_times(self) -> CpuTimes | None: ...

    def core_count(self) -> int: ...

    def available_affinity_mask(self) -> int: ...

    def is_elevated(self) -> bool: ...


class ControlProvider(Protocol):
    """Process control. Failures raise a ControlError subclass."""

    def terminate(self, pid: int) -> None: ...

    def suspend(self, pid: int) -> None: ...

    def resume(self, pid: int) -> None: ...

    def set_priority(self, pid: int, priority: Priority) -> None: ...

    def set_affinity(self, pid: int, mask: int) -> None: ...


# Linux cpu_times fields that duplicate time already in user/nice.
GUEST_FIELDS = frozenset({"guest", "guest_nice"})

# Upper bound on mapped files listed in the detail view.
MAX_MODULES = 200

# POSIX nice values standing in for the priority ladder.
NICE_BY_PRIORITY = {
    Priority.IDLE: 19,
    Priority.BELOW_NORMAL: 10,
    Priority.NORMAL: 0,
    Priority.ABOVE_NORMAL: -5,
    Priority.HIGH: -10,
    Priority.REALTIME: -20,
}


def priority_from_nice(nice: int) -> Priority:
    """Map a POSIX nice value onto the nearest priority level."""
    if nice >= 15:
        return Priority.IDLE
    if nice >= 5:
        return Priority.BELOW_NORMAL
    if nice > -5:
        return Priority.NORMAL
    if nice > -10:
        return Priority.ABOVE_NORMAL
    if nice > -20:
        return Priority.HIGH
    return Priority.REALTIME


def _windows_priority_classes() -> dict[Priority, int]:
    return {
        Priority.IDLE: psutil.IDLE_PRIORITY_CLASS,
        Priority.BELOW_NORMAL: psutil.BELOW_NORMAL_PRIORITY_CLASS,
        Priority.NORMAL: psutil.NORMAL_PRIORITY_CLASS,
        Priority.ABOVE_NORMAL: psutil.ABOVE_NORMAL_PRIORITY_CLASS,
        Priority.HIGH: psutil.HIGH_PRIORITY_CLASS,
        Priority.REALTIME: psutil.REALTIME_PRIORITY_CLASS,
    }


def is_elevated() -> bool:
    """True when running as root, or as an administrator on Windows."""
    if psutil.WINDOWS:
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    try:
        return os.geteuid() == 0
    except AttributeError:
        return False


def mask_from_cores(cores: list[int]) -> int:
    """Bit mask with one bit set per core index."""
    mask = 0
    for core in cores:
        mask |= 1 << core
    return mask


def cores_from_mask(mask: int) -> list[int]:
    """Core indexes whose bits are set in mask."""
    return [i for i in range(mask.bit_length()) if mask >> i & 1]


class PsutilProvider:
    """
    Implements every OS collaborator on top of psutil.

    Process handles from the latest enumeration are cached so repeated
    per-metric queries in one refresh reuse the same psutil.Process.
    """

    def __init__(self) -> None:
        self._procs: dict[int, psutil.Process] = {}

    # Enumeration

    def enumerate(self) -> list[ProcessRecord]:
        """Snapshot every process visible to psutil."""
        records: list[ProcessRecord] = []
        procs: dict[int, psutil.Process] = {}
        try:
            for proc in psutil.process_iter(attrs=["pid", "ppid", "name", "num_threads", "nice"]):
                info = proc.info
                procs[proc.pid] = proc
                nice = info.get("nice")
                records.append(
                    ProcessRecord(
                        pid=proc.pid,
                        parent_pid=info.get("ppid") or 0,
                        name=info.get("name") or "",
                        thread_count=info.get("num_threads") or 0,
                        base_priority=nice if isinstance(nice, int) else 0,
                    )
                )
        except (psutil.Error, OSError) as exc:
            raise EnumerationError(str(exc)) from exc
        self._procs = procs
        return records

    # Per-process metrics

    def _process(self, pid: int) -> psutil.Process:
        proc = self._procs.get(pid)
        if proc is None:
            proc = psutil.Process(pid)
            self._procs[pid] = proc
        return proc

    def _query(self, pid: int, getter: Callable[[psutil.Process], T]) -> T | None:
        try:
            return getter(self._process(pid))
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as exc:
            logger.debug("Query on pid %d failed: %s", pid, exc)
            return None
        except (AttributeError, NotImplementedError, OSError):
            # Metric not available on this platform
            return None

    def cpu_times(self, pid: int) -> ProcessCpuTimes | None:
        """Cumulative kernel and user seconds."""
        times = self._query(pid, lambda p: p.cpu_times())
        if times is None:
            return None
        return ProcessCpuTimes(kernel=times.system, user=times.user)

    def memory(self, pid: int) -> int | None:
        """Resident set size in bytes."""
        return self._query(pid, lambda p: p.memory_info().rss)

    def disk_counters(self, pid: int) -> DiskCounters | None:
        """Cumulative bytes read and written."""
        counters = self._query(pid, lambda p: p.io_counters())
        if counters is None:
            return None
        return DiskCounters(read_bytes=counters.read_bytes, write_bytes=counters.write_bytes)

    def priority(self, pid: int) -> Priority | None:
        """Scheduling priority mapped from the nice value or priority class."""
        nice = self._query(pid, lambda p: p.nice())
        if nice is None:
            return None
        if psutil.WINDOWS:
            for level, value in _windows_priority_classes().items():
                if int(nice) == int(value):
                    return level
            return Priority.UNKNOWN
        return priority_from_nice(nice)

    def handle_count(self, pid: int) -> int | None:
        """Open handles on Windows, file descriptors elsewhere."""
        if psutil.WINDOWS:
            return self._query(pid, lambda p: p.num_handles())
        return self._query(pid, lambda p: p.num_fds())

    def path(self, pid: int) -> str | None:
        """Executable path."""
        return self._query(pid, lambda p: p.exe()) or None

    def start_time(self, pid: int) -> float | None:
        """Creation time as a Unix timestamp."""
        return self._query(pid, lambda p: p.create_time())

    def affinity(self, pid: int) -> AffinityInfo | None:
        """Allowed cores for the process and for the system."""
        cores = self._query(pid, lambda p: p.cpu_affinity())
        if not cores:
            return None
        return AffinityInfo(
            process_mask=mask_from_cores(cores),
            system_mask=self.available_affinity_mask(),
            total_cores=self.core_count(),
        )

    def command_line(self, pid: int) -> str | None:
        """Full command line joined by spaces."""
        cmdline = self._query(pid, lambda p: p.cmdline())
        return " ".join(cmdline) if cmdline else None

    def username(self, pid: int) -> str | None:
        """Owning user name."""
        return self._query(pid, lambda p: p.username())

    def status(self, pid: int) -> str | None:
        """psutil status string such as "running" or "sleeping"."""
        return self._query(pid, lambda p: p.status())

    def connections(self, pid: int) -> list[str] | None:
        """Internet sockets formatted one per line."""
        conns = self._query(pid, lambda p: p.net_connections(kind="inet"))
        if conns is None:
            return None
        lines = []
        for conn in conns:
            local = f"{conn.laddr.ip}:{conn.laddr.port}" if conn.laddr else "-"
            remote = f"{conn.raddr.ip}:{conn.raddr.port}" if conn.raddr else "-"
            proto = "TCP" if conn.type == socket.SOCK_STREAM else "UDP"
            lines.append(f"{proto:<4} {local:<24} {remote:<24} {conn.status}")
        return lines

    def modules(self, pid: int) -> list[str] | None:
        """Paths of mapped files such as the executable and shared libraries."""
        maps = self._query(pid, lambda p: p.memory_maps(grouped=True))
        if maps is None:
            return None
        paths: list[str] = []
        seen: set[str] = set()
        for mmap in maps:
            path = mmap.path
            # Skip anonymous regions such as [heap], [stack] and [vdso].
            if not path or path.startswith("[") or path in seen:
                continue
            seen.add(path)
            paths.append(path)
            if len(paths) >= MAX_MODULES:
                break
        return paths

    # System-wide

    def system_times(self) -> CpuTimes | None:
        """System-wide CPU counters with idle folded into kernel time."""
        try:
            times = psutil.cpu_times()
        except (psutil.Error, OSError) as exc:
            logger.debug("cpu_times failed: %s", exc)
            return None
        fields = times._asdict()
        # guest and guest_nice are already counted in user and nice.
        total = sum(value for name, value in fields.items() if name not in GUEST_FIELDS)
        user = fields.get("user", 0.0) + fields.get("nice", 0.0)
        idle = fields.get("idle", 0.0) + fields.get("iowait", 0.0)
        # Kernel time counts idle time, so kernel + user covers every tick.
        return CpuTimes(idle=idle, kernel=total - user, user=user)

    def core_count(self) -> int:
        """Logical CPU count."""
        return psutil.cpu_count() or 1

    def available_affinity_mask(self) -> int:
        """Mask covering every logical CPU."""
        return (1 << self.core_count()) - 1

    def is_elevated(self) -> bool:
        """Whether this process runs with elevated rights."""
        return is_elevated()

    # Control

    def _control(self, pid: int, operation: str, action: Callable[[psutil.Process], object]) -> None:
        try:
            action(psutil.Process(pid))
        except psutil.NoSuchProcess as exc:
            raise ProcessNotFound(pid) from exc
        except psutil.AccessDenied as exc:
            raise AccessDenied(pid) from exc
        except ValueError as exc:
            raise InvalidParameter(str(exc)) from exc
        except AttributeError as exc:
            raise UnsupportedOperation(operation) from exc
        except (psutil.Error, OSError) as exc:
            raise ControlError(f"{operation} failed: {exc}") from exc

    def terminate(self, pid: int) -> None:
        """Kill the process."""
        self._control(pid, "Terminate", lambda p: p.terminate())

    def suspend(self, pid: int) -> None:
        """Stop the process."""
        self._control(pid, "Suspend", lambda p: p.suspend())

    def resume(self, pid: int) -> None:
        """Continue a stopped process."""
        self._control(pid, "Resume", lambda p: p.resume())

    def set_priority(self, pid: int, priority: Priority) -> None:
        """Apply a priority level."""
        if priority is Priority.UNKNOWN:
            raise InvalidParameter("unknown priority level")
        if psutil.WINDOWS:
            value = _windows_priority_classes()[priority]
        else:
            value = NICE_BY_PRIORITY[priority]
        self._control(pid, "Set priority", lambda p: p.nice(value))

    def set_affinity(self, pid: int, mask: int) -> None:
        """Restrict the process to the cores in mask."""
        cores = cores_from_mask(mask)
        self._control(pid, "Set affinity", lambda p: p.cpu_affinity(cores))
