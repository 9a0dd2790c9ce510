"""Shared fixtures: an in-memory stand-in for every OS provider."""

import pytest

from proctop.config import Settings
from proctop.engine import TaskEngine
from proctop.errors import EnumerationError
from proctop.models import (
    AffinityInfo,
    CpuTimes,
    DiskCounters,
    Priority,
    ProcessCpuTimes,
    ProcessRecord,
)


class FakeProvider:
    """Scriptable provider. Tests mutate the attributes between refreshes."""

    def __init__(self) -> None:
        self.records: list[ProcessRecord] = []
        self.fail_enumeration = False
        self.system = CpuTimes(idle=100.0, kernel=200.0, user=100.0)
        self.cpu: dict[int, ProcessCpuTimes] = {}
        self.memory_bytes: dict[int, int] = {}
        self.disk: dict[int, DiskCounters] = {}
        self.priorities: dict[int, Priority] = {}
        self.handles: dict[int, int] = {}
        self.paths: dict[int, str] = {}
        self.start_times: dict[int, float] = {}
        self.masks: dict[int, int] = {}
        self.module_paths: dict[int, list[str]] = {}
        self.elevated = False
        self.cores = 4
        self.calls: list[tuple] = []
        self.failures: dict[tuple[str, int], Exception] = {}

    def add(self, pid: int, name: str, parent_pid: int = 0, threads: int = 1) -> None:
        self.records.append(ProcessRecord(pid, parent_pid, name, threads, 0))

    # Enumeration

    def enumerate(self) -> list[ProcessRecord]:
        if self.fail_enumeration:
            raise EnumerationError("snapshot failed")
        return list(self.records)

    # Metrics

    def cpu_times(self, pid):
        return self.cpu.get(pid)

    def memory(self, pid):
        return self.memory_bytes.get(pid)

    def disk_counters(self, pid):
        return self.disk.get(pid)

    def priority(self, pid):
        return self.priorities.get(pid)

    def handle_count(self, pid):
        return self.handles.get(pid)

    def path(self, pid):
        return self.paths.get(pid)

    def start_time(self, pid):
        return self.start_times.get(pid)

    def affinity(self, pid):
        if pid not in self.masks:
            return None
        return AffinityInfo(self.masks[pid], self.available_affinity_mask(), self.cores)

    def command_line(self, pid):
        return None

    def username(self, pid):
        return "tester"

    def status(self, pid):
        return "running"

    def connections(self, pid):
        return []

    def modules(self, pid):
        return self.module_paths.get(pid)

    # System

    def system_times(self):
        return self.system

    def core_count(self):
        return self.cores

    def available_affinity_mask(self):
        return (1 << self.cores) - 1

    def is_elevated(self):
        return self.elevated

    # Control

    def _call(self, op: str, pid: int, *args) -> None:
        self.calls.append((op, pid, *args))
        error = self.failures.get((op, pid))
        if error is not None:
            raise error

    def terminate(self, pid):
        self._call("terminate", pid)
        self.records = [r for r in self.records if r.pid != pid]

    def suspend(self, pid):
        self._call("suspend", pid)

    def resume(self, pid):
        self._call("resume", pid)

    def set_priority(self, pid, priority):
        self._call("set_priority", pid, priority)
        self.priorities[pid] = priority

    def set_affinity(self, pid, mask):
        self._call("set_affinity", pid, mask)
        self.masks[pid] = mask


@pytest.fixture
def provider() -> FakeProvider:
    fake = FakeProvider()
    fake.add(1, "init")
    fake.add(100, "bash", parent_pid=1)
    fake.add(200, "Chrome", parent_pid=1, threads=30)
    fake.add(201, "chrome-renderer", parent_pid=200, threads=12)
    fake.memory_bytes.update({1: 1_000, 100: 5_000, 200: 90_000, 201: 40_000})
    fake.priorities.update({1: Priority.NORMAL, 100: Priority.NORMAL, 200: Priority.HIGH})
    fake.masks.update({100: 0b1111, 200: 0b0011})
    return fake


@pytest.fixture
def engine(provider: FakeProvider) -> TaskEngine:
    engine = TaskEngine.from_provider(provider, Settings(export_dir="."))
    engine.refresh()
    return engine
