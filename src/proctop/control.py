"""Process control orchestration: kill, suspend/resume, priority and affinity."""

import logging
from dataclasses import dataclass

from proctop.errors import (
    AlreadyInState,
    ControlError,
    InvalidCoreSelection,
    NoCoresSelected,
    SystemProcessProtected,
)
from proctop.models import SYSTEM_PIDS, Priority
from proctop.providers import ControlProvider, SystemCpuProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ControlResult:
    """Outcome of a control operation, with a status-line message."""

    ok: bool
    message: str


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


class ProcessController:
    """
    Validates and applies control operations.

    Tracks the pids this controller has suspended. The OS offers no reliable
    "is suspended" query, so a process suspended or resumed by another tool
    is not reflected here until it is toggled through this controller.
    """

    def __init__(self, control: ControlProvider, system: SystemCpuProvider) -> None:
        self._control = control
        self._system = system
        self._suspended: set[int] = set()

    @property
    def suspended(self) -> frozenset[int]:
        """Snapshot of pids suspended through this controller."""
        return frozenset(self._suspended)

    def is_suspended(self, pid: int) -> bool:
        """Whether the pid was suspended here and not yet resumed."""
        return pid in self._suspended

    def forget_exited(self, active_pids: set[int]) -> None:
        """Drop suspended pids that no longer exist."""
        self._suspended &= active_pids

    def _guard(self, pid: int) -> None:
        if pid in SYSTEM_PIDS:
            raise SystemProcessProtected(pid)

    def kill(self, pid: int, name: str) -> ControlResult:
        """Terminate a process; system pids are refused."""
        try:
            self._guard(pid)
            self._control.terminate(pid)
        except ControlError as exc:
            logger.warning("Terminate %s (%d) failed: %s", name, pid, exc)
            return ControlResult(False, f"Failed to terminate {name} (PID {pid}): {exc}")
        self._suspended.discard(pid)
        logger.info("Terminated %s (%d)", name, pid)
        return ControlResult(True, f"Terminated process: {name} (PID {pid})")

    def suspend(self, pid: int, name: str) -> ControlResult:
        """Suspend a running process."""
        try:
            self._guard(pid)
            if pid in self._suspended:
                raise AlreadyInState("suspended")
            self._control.suspend(pid)
        except ControlError as exc:
            logger.warning("Suspend %s (%d) failed: %s", name, pid, exc)
            return ControlResult(False, f"Failed: {exc}")
        self._suspended.add(pid)
        logger.info("Suspended %s (%d)", name, pid)
        return ControlResult(True, f"Suspended: {name} (PID {pid})")

    def resume(self, pid: int, name: str) -> ControlResult:
        """Resume a process suspended by this controller."""
        try:
            self._guard(pid)
            if pid not in self._suspended:
                raise AlreadyInState("running")
            self._control.resume(pid)
        except ControlError as exc:
            logger.warning("Resume %s (%d) failed: %s", name, pid, exc)
            return ControlResult(False, f"Failed: {exc}")
        self._suspended.discard(pid)
        logger.info("Resumed %s (%d)", name, pid)
        return ControlResult(True, f"Resumed: {name} (PID {pid})")

    def toggle_suspend(self, pid: int, name: str) -> ControlResult:
        """Resume if suspended, otherwise suspend."""
        if pid in self._suspended:
            return self.resume(pid, name)
        return self.suspend(pid, name)

    def raise_priority(self, pid: int, name: str, current: Priority) -> ControlResult:
        """Move one priority level up."""
        target = current.higher()
        if target == current:
            return ControlResult(False, f"{name} is already at maximum priority")
        return self._set_priority(pid, name, current, target, "raise")

    def lower_priority(self, pid: int, name: str, current: Priority) -> ControlResult:
        """Move one priority level down."""
        target = current.lower()
        if target == current:
            return ControlResult(False, f"{name} is already at minimum priority")
        return self._set_priority(pid, name, current, target, "lower")

    def _set_priority(
        self, pid: int, name: str, current: Priority, target: Priority, verb: str
    ) -> ControlResult:
        try:
            self._guard(pid)
            self._control.set_priority(pid, target)
        except ControlError as exc:
            logger.warning("Priority change on %s (%d) failed: %s", name, pid, exc)
            return ControlResult(False, f"Failed to {verb} priority: {exc}")
        logger.info("Priority of %s (%d): %s -> %s", name, pid, current.label, target.label)
        return ControlResult(True, f"{name}: {current.label} → {target.label}")

    def set_affinity(self, pid: int, mask: int) -> ControlResult:
        """Restrict a process to the cores in ``mask`` that exist on this system."""
        try:
            if mask == 0:
                raise NoCoresSelected()
            self._guard(pid)
            valid = mask & self._system.available_affinity_mask()
            if valid == 0:
                raise InvalidCoreSelection(mask)
            self._control.set_affinity(pid, valid)
        except ControlError as exc:
            logger.warning("Set affinity on %d to %#x failed: %s", pid, mask, exc)
            return ControlResult(False, str(exc))
        count = bin(valid).count("1")
        logger.info("Affinity of %d set to %#x", pid, valid)
        return ControlResult(True, f"Set affinity to {_plural(count, 'core')}")
