"""Task engine: process list state, view modes and operator actions."""

import logging
from pathlib import Path

from proctop.config import (
    Settings,
    faster_refresh_ms,
    format_refresh_ms,
    slower_refresh_ms,
)
from proctop.control import ControlResult, ProcessController
from proctop.errors import ProctopError
from proctop.export import export_to_csv
from proctop.models import (
    SYSTEM_PIDS,
    AffinityEditState,
    DetailState,
    PendingKill,
    ProcessDetails,
    ProcessEntry,
    SortColumn,
    ViewMode,
)
from proctop.monitor import ProcessMonitor
from proctop.providers import MetricsProvider, SystemCpuProvider
from proctop.sorting import sort_entries
from proctop.tree import build_tree, filter_entries, flatten

logger = logging.getLogger(__name__)


class TaskEngine:
    """
    All state behind the process monitor UI.

    The presentation layer reads the public attributes and calls the methods
    below; no method raises on a provider failure; problems are reported
    through ``message`` instead.
    """

    def __init__(
        self,
        monitor: ProcessMonitor,
        controller: ProcessController,
        metrics: MetricsProvider,
        system: SystemCpuProvider,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self._monitor = monitor
        self._controller = controller
        self._metrics = metrics
        self._system = system

        self.processes: list[ProcessEntry] = []
        self.displayed: list[ProcessEntry] = []
        self.selected_index = 0
        self.system_cpu = 0.0
        self.message: str | None = None
        self.elevated = system.is_elevated()

        self.sort_column: SortColumn = settings.sort_column
        self.ascending = settings.ascending
        self.filter_text = settings.filter_text
        self.tree_view = settings.tree_view
        self.refresh_ms = settings.refresh_ms
        self.export_dir = settings.export_dir

        self.view_mode = ViewMode.PROCESS_LIST
        self.pending_kill: PendingKill | None = None
        self.detail: DetailState | None = None
        self.affinity: AffinityEditState | None = None
        self.help_scroll = 0

    @classmethod
    def from_provider(cls, provider, settings: Settings | None = None) -> "TaskEngine":
        """Build an engine around one object implementing every provider protocol."""
        monitor = ProcessMonitor(provider, provider, provider)
        controller = ProcessController(provider, provider)
        return cls(monitor, controller, provider, provider, settings)

    @property
    def controller(self) -> ProcessController:
        """The controller used for kill, suspend and priority actions."""
        return self._controller

    @property
    def selected(self) -> ProcessEntry | None:
        """Entry under the cursor, or None when the list is empty."""
        if not self.displayed:
            return None
        return self.displayed[self.selected_index]

    @property
    def refresh_label(self) -> str:
        """Current interval, formatted for the header."""
        return format_refresh_ms(self.refresh_ms)

    def is_suspended(self, pid: int) -> bool:
        """Whether the pid is marked suspended."""
        return self._controller.is_suspended(pid)

    # Refresh pipeline

    def refresh(self) -> bool:
        """Run one refresh pass. Returns False if the process list could not be read."""
        try:
            result = self._monitor.refresh()
        except ProctopError as exc:
            logger.warning("Refresh failed: %s", exc)
            self.message = f"Failed to enumerate processes: {exc}"
            return False

        self.system_cpu = result.system_cpu
        self.processes = result.entries
        self._controller.forget_exited({entry.pid for entry in self.processes})
        self._sort()
        self.apply_filter()

        if self.view_mode is ViewMode.DETAIL_VIEW:
            self.refresh_detail()
        return True

    def _sort(self) -> None:
        self.processes = sort_entries(self.processes, self.sort_column, self.ascending)

    def apply_filter(self) -> None:
        """Rebuild the displayed list from the sorted list."""
        visible = filter_entries(self.processes, self.filter_text)
        self.displayed = build_tree(visible) if self.tree_view else flatten(visible)
        self._clamp_selection()

    def _clamp_selection(self) -> None:
        self.selected_index = max(0, min(self.selected_index, len(self.displayed) - 1))

    # Sorting and view options

    def cycle_sort(self) -> None:
        """Advance to the next sort column."""
        self.sort_column = self.sort_column.next()
        self._sort()
        self.apply_filter()

    def toggle_sort_order(self) -> None:
        """Flip between ascending and descending order."""
        self.ascending = not self.ascending
        self._sort()
        self.apply_filter()

    def toggle_tree_view(self) -> None:
        """Switch between the flat list and the process tree."""
        self.tree_view = not self.tree_view
        self.selected_index = 0
        self.apply_filter()

    def slower_refresh(self) -> None:
        """Step the refresh interval up the ladder."""
        self.refresh_ms = slower_refresh_ms(self.refresh_ms)

    def faster_refresh(self) -> None:
        """Step the refresh interval down the ladder."""
        self.refresh_ms = faster_refresh_ms(self.refresh_ms)

    # Navigation

    def move_up(self) -> None:
        """Move the cursor one row up."""
        if self.selected_index > 0:
            self.selected_index -= 1

    def move_down(self) -> None:
        """Move the cursor one row down."""
        if self.selected_index < len(self.displayed) - 1:
            self.selected_index += 1

    def page_up(self, rows: int) -> None:
        """Move the cursor up by a page."""
        self.selected_index = max(0, self.selected_index - rows)

    def page_down(self, rows: int) -> None:
        """Move the cursor down by a page."""
        self.selected_index = min(self.selected_index + rows, max(0, len(self.displayed) - 1))

    def jump_to_start(self) -> None:
        """Select the first row."""
        self.selected_index = 0

    def jump_to_end(self) -> None:
        """Select the last row."""
        self.selected_index = max(0, len(self.displayed) - 1)

    # Filter input

    def start_filter_input(self) -> None:
        """Enter filter input mode."""
        self.view_mode = ViewMode.FILTER_INPUT

    def finish_filter_input(self) -> None:
        """Leave filter input mode, keeping the text."""
        self.view_mode = ViewMode.PROCESS_LIST
        self.apply_filter()

    def filter_append(self, char: str) -> None:
        """Append a character and re-filter."""
        self.filter_text += char
        self.apply_filter()

    def filter_backspace(self) -> None:
        """Remove the last character and re-filter."""
        self.filter_text = self.filter_text[:-1]
        self.apply_filter()

    def clear_filter(self) -> None:
        """Drop the filter and show every process."""
        self.filter_text = ""
        self.apply_filter()

    # Help

    def open_help(self) -> None:
        """Show the help screen."""
        self.view_mode = ViewMode.HELP
        self.help_scroll = 0

    def close_help(self) -> None:
        """Return from the help screen."""
        self.view_mode = ViewMode.PROCESS_LIST
        self.help_scroll = 0

    def scroll_help(self, delta: int, line_count: int) -> None:
        """Scroll help by delta lines within line_count."""
        self.help_scroll = max(0, min(self.help_scroll + delta, line_count - 1))

    # Kill confirmation

    def request_kill(self) -> None:
        """Ask for confirmation before killing the selected process."""
        entry = self.selected
        if entry is None:
            return
        self.pending_kill = PendingKill(pid=entry.pid, name=entry.name)
        self.view_mode = ViewMode.CONFIRM_KILL
        self.message = f"Kill {entry.name} (PID {entry.pid})? Press Y to confirm, N to cancel"

    def confirm_kill(self) -> None:
        """Kill the pending target and return to the previous view."""
        pending = self.pending_kill
        if pending is None:
            self.cancel_kill()
            return
        result = self._controller.kill(pending.pid, pending.name)
        self.message = result.message
        self.cancel_kill()
        self.refresh()

    def cancel_kill(self) -> None:
        """Abandon the pending kill."""
        self.pending_kill = None
        self.view_mode = ViewMode.PROCESS_LIST

    # Suspend and priority

    def _report(self, result: ControlResult) -> None:
        self.message = result.message
        self.refresh()

    def toggle_suspend(self) -> None:
        """Suspend or resume the selected process."""
        entry = self.selected
        if entry is None:
            return
        self._report(self._controller.toggle_suspend(entry.pid, entry.name))

    def raise_priority(self) -> None:
        """Raise the selected process priority."""
        entry = self.selected
        if entry is None:
            return
        self._report(self._controller.raise_priority(entry.pid, entry.name, entry.priority))

    def lower_priority(self) -> None:
        """Lower the selected process priority."""
        entry = self.selected
        if entry is None:
            return
        self._report(self._controller.lower_priority(entry.pid, entry.name, entry.priority))

    # Detail view

    def _fetch_details(self, entry: ProcessEntry) -> ProcessDetails:
        pid = entry.pid
        affinity = self._metrics.affinity(pid)
        return ProcessDetails(
            pid=pid,
            name=entry.name,
            path=entry.path,
            command_line=self._metrics.command_line(pid),
            username=self._metrics.username(pid),
            status=self._metrics.status(pid),
            cpu_percent=entry.cpu_percent,
            memory_bytes=entry.memory_bytes,
            thread_count=entry.thread_count,
            handle_count=entry.handle_count,
            priority=entry.priority,
            uptime_seconds=entry.uptime_seconds,
            disk_read_rate=entry.disk_read_rate,
            disk_write_rate=entry.disk_write_rate,
            cpu_affinity=affinity.describe() if affinity else None,
            connections=self._metrics.connections(pid) or [],
            modules=[] if pid in SYSTEM_PIDS else self._metrics.modules(pid) or [],
        )

    def open_detail(self) -> None:
        """Open the detail view for the selected process."""
        entry = self.selected
        if entry is None:
            return
        self.detail = DetailState(pid=entry.pid, name=entry.name, details=self._fetch_details(entry))
        self.view_mode = ViewMode.DETAIL_VIEW

    def close_detail(self) -> None:
        """Close the detail view."""
        self.detail = None
        self.affinity = None
        self.view_mode = ViewMode.PROCESS_LIST

    def refresh_detail(self) -> None:
        """Re-read the detail snapshot; close the view if the process is gone."""
        if self.detail is None:
            return
        entry = next((e for e in self.processes if e.pid == self.detail.pid), None)
        if entry is None:
            self.message = "Process no longer exists"
            self.close_detail()
            return
        self.detail.details = self._fetch_details(entry)

    def detail_line_count(self) -> int:
        """Number of rendered detail lines."""
        if self.detail is None or self.detail.details is None:
            return 0
        return len(self.detail.details.lines())

    def scroll_detail(self, delta: int) -> None:
        """Scroll the detail view, clamped to its content."""
        if self.detail is None:
            return
        last = max(0, self.detail_line_count() - 1)
        self.detail.scroll_offset = max(0, min(self.detail.scroll_offset + delta, last))

    def kill_from_detail(self) -> None:
        """Ask to kill the process shown in the detail view."""
        self.close_detail()
        self.request_kill()

    # Affinity editor

    def open_affinity(self) -> None:
        """Open the affinity editor for the detailed process."""
        if self.detail is None:
            return
        info = self._metrics.affinity(self.detail.pid)
        if info is None:
            self.message = "Cannot read process affinity"
            return
        self.affinity = AffinityEditState(
            pid=self.detail.pid,
            name=self.detail.name,
            mask=info.process_mask,
            total_cores=self._system.core_count(),
        )
        self.view_mode = ViewMode.AFFINITY

    def close_affinity(self) -> None:
        """Return to the detail view without applying."""
        self.affinity = None
        self.view_mode = ViewMode.DETAIL_VIEW if self.detail else ViewMode.PROCESS_LIST

    def affinity_move_left(self) -> None:
        """Move the core cursor left."""
        if self.affinity and self.affinity.cursor > 0:
            self.affinity.cursor -= 1

    def affinity_move_right(self) -> None:
        """Move the core cursor right."""
        if self.affinity and self.affinity.cursor < self.affinity.total_cores - 1:
            self.affinity.cursor += 1

    def toggle_affinity_core(self) -> None:
        """Toggle the core under the cursor, keeping at least one selected."""
        state = self.affinity
        if state is None or state.cursor >= state.total_cores:
            return
        state.mask ^= 1 << state.cursor
        if state.mask == 0:
            state.mask |= 1 << state.cursor
            self.message = "At least one core must be selected"

    def select_all_cores(self) -> None:
        """Select every available core."""
        if self.affinity:
            self.affinity.mask = (1 << self.affinity.total_cores) - 1

    def select_single_core(self) -> None:
        """Select only the core under the cursor."""
        if self.affinity:
            self.affinity.mask = 1

    def apply_affinity(self) -> None:
        """Apply the edited mask and return to the detail view."""
        state = self.affinity
        if state is None:
            self.close_affinity()
            return
        result = self._controller.set_affinity(state.pid, state.mask)
        self.message = result.message
        self.close_affinity()
        self.refresh()

    # Export

    def export(self) -> Path | None:
        """Write the displayed list to CSV and report the outcome."""
        entries = self.displayed
        try:
            path = export_to_csv(entries, self.export_dir)
        except OSError as exc:
            logger.warning("Export failed: %s", exc)
            self.message = f"Export failed: {exc}"
            return None
        self.message = f"Exported {len(entries)} processes to {path}"
        return path
