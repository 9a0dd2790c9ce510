"""Data models for proctop."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

# Kernel/system pids that control operations refuse to touch.
SYSTEM_PIDS = frozenset({0, 4})


class Priority(IntEnum):
    """Bounded scheduling priority ladder."""

    UNKNOWN = -1
    IDLE = 0
    BELOW_NORMAL = 1
    NORMAL = 2
    ABOVE_NORMAL = 3
    HIGH = 4
    REALTIME = 5

    def higher(self) -> "Priority":
        """Return the next higher level, saturating at REALTIME."""
        if self is Priority.UNKNOWN:
            return Priority.NORMAL
        return Priority(min(self.value + 1, Priority.REALTIME.value))

    def lower(self) -> "Priority":
        """Return the next lower level, saturating at IDLE."""
        if self is Priority.UNKNOWN:
            return Priority.NORMAL
        return Priority(max(self.value - 1, Priority.IDLE.value))

    @property
    def label(self) -> str:
        return _PRIORITY_LABELS[self]

    @property
    def short_label(self) -> str:
        return _PRIORITY_SHORT_LABELS[self]


_PRIORITY_LABELS = {
    Priority.UNKNOWN: "Unknown",
    Priority.IDLE: "Idle",
    Priority.BELOW_NORMAL: "Below Normal",
    Priority.NORMAL: "Normal",
    Priority.ABOVE_NORMAL: "Above Normal",
    Priority.HIGH: "High",
    Priority.REALTIME: "Realtime",
}

_PRIORITY_SHORT_LABELS = {
    Priority.UNKNOWN: "??",
    Priority.IDLE: "Idle",
    Priority.BELOW_NORMAL: "BelowN",
    Priority.NORMAL: "Normal",
    Priority.ABOVE_NORMAL: "AboveN",
    Priority.HIGH: "High",
    Priority.REALTIME: "RT",
}


class SortColumn(Enum):
    """Sort columns for the process list, in cycle order."""

    CPU = "cpu"
    MEMORY = "memory"
    NAME = "name"
    PID = "pid"
    PRIORITY = "priority"
    THREADS = "threads"
    HANDLES = "handles"
    UPTIME = "uptime"
    DISK_READ_RATE = "read"
    DISK_WRITE_RATE = "write"

    def next(self) -> "SortColumn":
        """Return the successor column, wrapping around."""
        columns = list(SortColumn)
        return columns[(columns.index(self) + 1) % len(columns)]

    @property
    def label(self) -> str:
        return _SORT_LABELS[self]


_SORT_LABELS = {
    SortColumn.CPU: "CPU%",
    SortColumn.MEMORY: "Memory",
    SortColumn.NAME: "Name",
    SortColumn.PID: "PID",
    SortColumn.PRIORITY: "Priority",
    SortColumn.THREADS: "Threads",
    SortColumn.HANDLES: "Handles",
    SortColumn.UPTIME: "Uptime",
    SortColumn.DISK_READ_RATE: "Read/s",
    SortColumn.DISK_WRITE_RATE: "Write/s",
}


class ViewMode(Enum):
    """Mutually exclusive input/display modes."""

    PROCESS_LIST = "process_list"
    FILTER_INPUT = "filter_input"
    CONFIRM_KILL = "confirm_kill"
    DETAIL_VIEW = "detail_view"
    HELP = "help"
    AFFINITY = "affinity"


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Raw process identity as returned by the enumeration provider."""

    pid: int
    parent_pid: int
    name: str
    thread_count: int
    base_priority: int


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """A process record enriched with computed metrics."""

    record: ProcessRecord
    cpu_percent: float = 0.0  # 0.0 - 100.0 of total system CPU
    memory_bytes: int = 0  # Working set / RSS
    disk_read: int = 0  # Cumulative bytes
    disk_write: int = 0
    disk_read_rate: float = 0.0  # Bytes per second
    disk_write_rate: float = 0.0
    priority: Priority = Priority.UNKNOWN
    uptime_seconds: int = 0
    handle_count: int = 0
    path: str | None = None
    tree_depth: int = 0

    @property
    def pid(self) -> int:
        return self.record.pid

    @property
    def parent_pid(self) -> int:
        return self.record.parent_pid

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def thread_count(self) -> int:
        return self.record.thread_count


@dataclass(slots=True, frozen=True)
class CpuTimes:
    """System-wide cumulative CPU counters. Kernel time includes idle time."""

    idle: float = 0.0
    kernel: float = 0.0
    user: float = 0.0

    @property
    def total(self) -> float:
        return self.kernel + self.user


@dataclass(slots=True, frozen=True)
class ProcessCpuTimes:
    """Per-process cumulative CPU counters."""

    kernel: float = 0.0
    user: float = 0.0

    @property
    def total(self) -> float:
        return self.kernel + self.user


@dataclass(slots=True, frozen=True)
class DiskCounters:
    """Cumulative disk I/O byte totals of a process."""

    read_bytes: int = 0
    write_bytes: int = 0


@dataclass(slots=True, frozen=True)
class AffinityInfo:
    """CPU affinity of a process."""

    process_mask: int
    system_mask: int
    total_cores: int

    @property
    def cores(self) -> list[int]:
        return [i for i in range(self.process_mask.bit_length()) if self.process_mask >> i & 1]

    def describe(self) -> str:
        """Human-readable summary, e.g. "4/8 cores (Cores: 0, 1, 2, 3)"."""
        allowed = len(self.cores)
        if allowed == 0:
            return "Unknown"
        if allowed == self.total_cores:
            return f"{allowed}/{self.total_cores} cores (All cores)"
        core_list = ", ".join(str(core) for core in self.cores)
        return f"{allowed}/{self.total_cores} cores (Cores: {core_list})"


@dataclass(slots=True)
class ProcessDetails:
    """Extended information shown in the detail view."""

    pid: int
    name: str
    path: str | None
    command_line: str | None
    username: str | None
    status: str | None
    cpu_percent: float
    memory_bytes: int
    thread_count: int
    handle_count: int
    priority: Priority
    uptime_seconds: int
    disk_read_rate: float
    disk_write_rate: float
    cpu_affinity: str | None
    connections: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)

    def lines(self) -> list[str]:
        """Render the details as display lines."""
        lines = [
            f"Name:        {self.name}",
            f"PID:         {self.pid}",
            f"Path:        {self.path or 'N/A'}",
            f"Command:     {self.command_line or 'N/A'}",
            f"User:        {self.username or 'N/A'}",
            f"Status:      {self.status or 'N/A'}",
            f"CPU:         {self.cpu_percent:.1f}%",
            f"Memory:      {self.memory_bytes / (1024**2):.1f} MB",
            f"Threads:     {self.thread_count}",
            f"Handles:     {self.handle_count}",
            f"Priority:    {self.priority.label}",
            f"Uptime:      {self.uptime_seconds}s",
            f"Disk read:   {self.disk_read_rate:.0f} B/s",
            f"Disk write:  {self.disk_write_rate:.0f} B/s",
            f"Affinity:    {self.cpu_affinity or 'N/A'}",
            "",
            f"Connections ({len(self.connections)})",
            "-" * 40,
        ]
        lines.extend(self.connections)
        lines.extend(["", f"Loaded Modules ({len(self.modules)})", "-" * 40])
        if self.modules:
            lines.extend(f"  {path}" for path in self.modules)
        else:
            lines.append("  No modules (access denied or system process)")
        return lines


@dataclass(slots=True, frozen=True)
class PendingKill:
    """Target of a kill awaiting confirmation."""

    pid: int
    name: str


@dataclass(slots=True)
class DetailState:
    """State captured while the detail view is open."""

    pid: int
    name: str
    details: ProcessDetails | None
    scroll_offset: int = 0


@dataclass(slots=True)
class AffinityEditState:
    """State of the interactive affinity editor."""

    pid: int
    name: str
    mask: int
    total_cores: int
    cursor: int = 0

    def is_selected(self, core: int) -> bool:
        return bool(self.mask >> core & 1)
