"""proctop - Main Textual application."""

import logging
import time

from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.timer import Timer
from textual.widgets import DataTable, Static

from proctop.config import Settings
from proctop.engine import TaskEngine
from proctop.keys import HELP_LINES, KeyAction, handle_key
from proctop.models import ProcessEntry, ViewMode
from proctop.providers import PsutilProvider

logger = logging.getLogger(__name__)

# Indentation levels drawn in tree view; deeper nodes share the last level.
MAX_TREE_INDENT = 5


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_rate(rate: float) -> str:
    """Format a bytes/second rate, blank when idle."""
    if rate <= 0:
        return "-"
    return f"{format_bytes(rate).strip()}/s"


def format_uptime(seconds: int) -> str:
    """Format uptime as "3d 04:05:06" or "04:05:06"."""
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if days > 0:
        return f"{days}d {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def cpu_bar(percent: float, width: int = 20) -> str:
    """Markup for a usage bar."""
    filled = min(int(percent / (100 / width)), width)
    return "[green]█[/green]" * filled + "[dim]░[/dim]" * (width - filled)


def tree_prefix(depth: int) -> str:
    if depth == 0:
        return ""
    return "  " * (min(depth, MAX_TREE_INDENT) - 1) + "└─ "


class HeaderStats(Static):
    """Header widget showing system CPU and list settings."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def update_stats(self, engine: TaskEngine) -> None:
        """Update the header from the engine state."""
        self.update(header_text(engine))


def header_text(engine: TaskEngine) -> str:
    """Markup for the header line."""
    order = "asc" if engine.ascending else "desc"
    if engine.elevated:
        privilege = "[green]\\[Administrator][/green]"
    else:
        privilege = "[yellow]\\[User][/yellow]"
    parts = [
        privilege,
        f"CPU \\[{cpu_bar(engine.system_cpu)}] {engine.system_cpu:5.1f}%",
        f"Processes: {len(engine.displayed)}/{len(engine.processes)}",
        f"Sort: {engine.sort_column.label} ({order})",
        f"Refresh: {engine.refresh_label}",
    ]
    if engine.tree_view:
        parts.append("[cyan]Tree[/cyan]")
    if engine.filter_text or engine.view_mode is ViewMode.FILTER_INPUT:
        cursor = "_" if engine.view_mode is ViewMode.FILTER_INPUT else ""
        parts.append(f"Filter: {escape(engine.filter_text)}{cursor}")
    return "  ".join(parts)


class ProcessGrid(DataTable, can_focus=False):
    """Process rows; keys are handled by the engine, not the table."""


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    COLUMNS = [
        ("PID", "pid", 8),
        ("Name", "name", 32),
        ("CPU%", "cpu", 7),
        ("Memory", "mem", 8),
        ("Read/s", "read", 10),
        ("Write/s", "write", 10),
        ("Prio", "prio", 7),
        ("Thr", "threads", 5),
        ("Hnd", "handles", 6),
        ("Uptime", "uptime", 13),
        ("S", "state", 2),
    ]

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield ProcessGrid(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        for label, key, width in self.COLUMNS:
            table.add_column(label, key=key, width=width)

    def update_processes(self, engine: TaskEngine) -> None:
        """Rebuild the rows in display order and move the cursor to the selection."""
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for entry in engine.displayed:
            table.add_row(*self._cells(entry, engine.is_suspended(entry.pid)), key=str(entry.pid))
        if engine.displayed:
            table.move_cursor(row=engine.selected_index)

    @staticmethod
    def _cells(entry: ProcessEntry, suspended: bool) -> list[Text]:
        name = tree_prefix(entry.tree_depth) + entry.name
        return [
            Text(str(entry.pid)),
            Text(name[:40]),
            Text(f"{entry.cpu_percent:5.1f}"),
            Text(format_bytes(entry.memory_bytes)),
            Text(format_rate(entry.disk_read_rate)),
            Text(format_rate(entry.disk_write_rate)),
            Text(entry.priority.short_label),
            Text(str(entry.thread_count)),
            Text(str(entry.handle_count)),
            Text(format_uptime(entry.uptime_seconds)),
            Text("Z" if suspended else ""),
        ]


def overlay_text(engine: TaskEngine, rows: int) -> str | None:
    """Plain text for the dialog of the active mode, or None in list modes."""
    mode = engine.view_mode
    if mode is ViewMode.HELP:
        lines = HELP_LINES[engine.help_scroll : engine.help_scroll + rows]
        return "Keyboard shortcuts\n\n" + "\n".join(lines)
    if mode is ViewMode.CONFIRM_KILL and engine.pending_kill:
        kill = engine.pending_kill
        return f"Kill {kill.name} (PID {kill.pid})?\n\n[Y] confirm   [N] cancel"
    if mode is ViewMode.DETAIL_VIEW and engine.detail and engine.detail.details:
        lines = engine.detail.details.lines()
        start = engine.detail.scroll_offset
        footer = "\n\n[Esc] back  [k] kill  [a] affinity"
        return "\n".join(lines[start : start + rows]) + footer
    if mode is ViewMode.AFFINITY and engine.affinity:
        state = engine.affinity
        cells = []
        for core in range(state.total_cores):
            mark = "x" if state.is_selected(core) else " "
            cell = f"[{mark}]{core}"
            cells.append(f">{cell}<" if core == state.cursor else f" {cell} ")
        grid = "\n".join("".join(cells[i : i + 8]) for i in range(0, len(cells), 8))
        return (
            f"CPU affinity for {state.name} (PID {state.pid})\n\n{grid}\n\n"
            "[Left/Right] move  [Space] toggle  [a] all  [1] core 0 only\n"
            "[Enter] apply  [Esc] cancel"
        )
    return None


class ProctopApp(App):
    """Main proctop application."""

    TITLE = "proctop"
    SUB_TITLE = "Process monitor and controller"

    CSS = """
    Screen {
        layout: vertical;
    }

    #overlay {
        height: auto;
        max-height: 60%;
        border: round $accent;
        padding: 0 1;
        display: none;
    }

    #status {
        height: 1;
        padding: 0 1;
        background: $boost;
    }
    """

    def __init__(self, engine: TaskEngine | None = None, settings: Settings | None = None) -> None:
        """Initialize the ProctopApp."""
        super().__init__()
        self.engine = engine or TaskEngine.from_provider(PsutilProvider(), settings)
        self._refresh_timer: Timer | None = None
        self._last_refresh = time.monotonic()

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield Static("", id="overlay", markup=False)
        yield Static("", id="status", markup=False)

    def on_mount(self) -> None:
        """Load the first process list once the widgets are mounted."""
        logger.info("Starting with refresh interval %s", self.engine.refresh_label)
        self.call_after_refresh(self._refresh)

    def _refresh(self) -> None:
        self.engine.refresh()
        self._last_refresh = time.monotonic()
        self._render_engine()
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        """Arm the timer for the time left in the current interval."""
        if self._refresh_timer is not None:
            self._refresh_timer.stop()
        interval = self.engine.refresh_ms / 1000
        remaining = max(0.0, interval - (time.monotonic() - self._last_refresh))
        self._refresh_timer = self.set_timer(remaining, self._refresh)

    def _page_rows(self) -> int:
        try:
            return max(1, self.query_one(ProcessTable).size.height - 3)
        except NoMatches:
            return 10

    def on_key(self, event: events.Key) -> None:
        """Forward key presses to the engine."""
        key = event.character if event.is_printable and event.character else event.key
        if key == "space":
            key = " "
        event.stop()
        event.prevent_default()
        if handle_key(self.engine, key, self._page_rows()) is KeyAction.EXIT:
            self.action_quit()
            return
        self._render_engine()
        self._schedule_refresh()

    def _render_engine(self) -> None:
        """Update every widget from the engine state."""
        engine = self.engine
        self.query_one("#header-stats", HeaderStats).update_stats(engine)
        self.query_one(ProcessTable).update_processes(engine)

        overlay = self.query_one("#overlay", Static)
        text = overlay_text(engine, rows=max(5, self.size.height // 2))
        overlay.display = text is not None
        overlay.update(text or "")

        status = self.query_one("#status", Static)
        status.update(engine.message or "q quit  ? help  / filter  k kill  Enter details")

    def action_quit(self) -> None:
        """Stop the refresh timer and exit."""
        if self._refresh_timer is not None:
            self._refresh_timer.stop()
        self.exit()

