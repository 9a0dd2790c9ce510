"""Tests for process control orchestration."""

import pytest

from proctop.control import ProcessController
from proctop.errors import AccessDenied, ProcessNotFound
from proctop.models import Priority


@pytest.fixture
def controller(provider):
    return ProcessController(provider, provider)


class TestKill:
    """Tests for terminating processes."""

    def test_kill(self, controller, provider):
        """Test a successful kill reports the name and PID."""
        result = controller.kill(100, "bash")

        assert result.ok
        assert result.message == "Terminated process: bash (PID 100)"
        assert ("terminate", 100) in provider.calls

    @pytest.mark.parametrize("pid", [0, 4])
    def test_system_process_protected(self, controller, provider, pid):
        """Test system PIDs are refused without touching the OS."""
        result = controller.kill(pid, "System")

        assert not result.ok
        assert "Cannot perform operation on system processes" in result.message
        assert provider.calls == []

    def test_vanished_process(self, controller, provider):
        """Test a process that exited is reported, not raised."""
        provider.failures[("terminate", 100)] = ProcessNotFound(100)
        result = controller.kill(100, "bash")

        assert not result.ok
        assert result.message == "Failed to terminate bash (PID 100): Process 100 not found or has terminated"


class TestSuspend:
    """Tests for suspend/resume tracking."""

    def test_toggle_twice(self, controller, provider):
        """Test suspend then resume leaves the process untracked."""
        first = controller.toggle_suspend(200, "Chrome")
        assert first.ok
        assert first.message.startswith("Suspended")
        assert controller.is_suspended(200)

        second = controller.toggle_suspend(200, "Chrome")
        assert second.ok
        assert second.message.startswith("Resumed")
        assert not controller.is_suspended(200)
        assert [c[0] for c in provider.calls] == ["suspend", "resume"]

    def test_resume_not_suspended(self, controller, provider):
        """Test resuming a running process is rejected."""
        result = controller.resume(200, "Chrome")

        assert not result.ok
        assert result.message == "Failed: Process is already running"
        assert provider.calls == []

    def test_failure_leaves_set_unchanged(self, controller, provider):
        """Test a denied suspend does not mark the process suspended."""
        provider.failures[("suspend", 200)] = AccessDenied(200)
        result = controller.suspend(200, "Chrome")

        assert not result.ok
        assert "Access denied" in result.message
        assert controller.suspended == frozenset()

    def test_forget_exited(self, controller):
        """Test exited processes drop out of the suspended set."""
        controller.suspend(100, "bash")
        controller.suspend(200, "Chrome")
        controller.forget_exited({200})
        assert controller.suspended == frozenset({200})

    def test_kill_clears_suspension(self, controller):
        """Test killing a suspended process forgets it."""
        controller.suspend(100, "bash")
        controller.kill(100, "bash")
        assert not controller.is_suspended(100)


class TestPriority:
    """Tests for priority changes."""

    def test_raise(self, controller, provider):
        """Test raising moves one level up."""
        result = controller.raise_priority(100, "bash", Priority.NORMAL)

        assert result.ok
        assert result.message == "bash: Normal → Above Normal"
        assert provider.priorities[100] == Priority.ABOVE_NORMAL

    def test_raise_at_realtime_is_noop(self, controller, provider):
        """Test raising at the top makes no OS call."""
        result = controller.raise_priority(100, "bash", Priority.REALTIME)

        assert not result.ok
        assert result.message == "bash is already at maximum priority"
        assert provider.calls == []

    def test_lower_at_idle_is_noop(self, controller, provider):
        """Test lowering at the bottom makes no OS call."""
        result = controller.lower_priority(100, "bash", Priority.IDLE)

        assert result.message == "bash is already at minimum priority"
        assert provider.calls == []

    def test_unknown_priority_is_set_to_normal(self, controller, provider):
        """Test an unreadable priority is changed to Normal."""
        controller.lower_priority(201, "renderer", Priority.UNKNOWN)
        assert provider.calls == [("set_priority", 201, Priority.NORMAL)]

    def test_access_denied(self, controller, provider):
        """Test a denied change is reported."""
        provider.failures[("set_priority", 200)] = AccessDenied(200)
        result = controller.raise_priority(200, "Chrome", Priority.HIGH)

        assert not result.ok
        assert result.message.startswith("Failed to raise priority: Access denied")


class TestAffinity:
    """Tests for affinity changes."""

    def test_set_affinity(self, controller, provider):
        """Test a valid mask is applied."""
        result = controller.set_affinity(100, 0b0011)

        assert result.ok
        assert result.message == "Set affinity to 2 cores"
        assert provider.masks[100] == 0b0011

    def test_mask_is_trimmed_to_available_cores(self, controller, provider):
        """Test bits for cores that do not exist are dropped."""
        result = controller.set_affinity(100, 0b110001)

        assert result.message == "Set affinity to 1 core"
        assert provider.masks[100] == 0b0001

    def test_zero_mask(self, controller, provider):
        """Test an empty selection is rejected."""
        result = controller.set_affinity(100, 0)

        assert not result.ok
        assert result.message == "At least one core must be selected"
        assert provider.calls == []

    def test_no_overlap_is_a_different_error(self, controller, provider):
        """Test a mask outside the available cores is an invalid selection."""
        result = controller.set_affinity(100, 0b110000)

        assert not result.ok
        assert result.message == "Invalid core selection"
        assert provider.calls == []

    def test_system_process(self, controller):
        """Test system PIDs are refused."""
        assert not controller.set_affinity(4, 0b1).ok
