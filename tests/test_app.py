"""Tests for the proctop application."""

import pytest
from textual.widgets import DataTable, Static

from proctop.app import (
    HeaderStats,
    ProcessTable,
    ProctopApp,
    format_bytes,
    format_rate,
    format_uptime,
    header_text,
    overlay_text,
    tree_prefix,
)
from proctop.config import Settings
from proctop.engine import TaskEngine
from proctop.models import SortColumn, ViewMode


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert "B" in format_bytes(500)


def test_format_bytes_kilobytes():
    """Test format_bytes with kilobyte values."""
    assert "K" in format_bytes(2048)


def test_format_bytes_gigabytes():
    """Test format_bytes with gigabyte values."""
    assert "G" in format_bytes(1073741824)


def test_format_rate():
    """Test idle rates render as a dash."""
    assert format_rate(0.0) == "-"
    assert format_rate(2048.0) == "2.0K/s"


def test_format_uptime():
    """Test uptime with and without days."""
    assert format_uptime(3661) == "01:01:01"
    assert format_uptime(90061) == "1d 01:01:01"


def test_tree_prefix():
    """Test roots have no prefix and deep nodes share one indent."""
    assert tree_prefix(0) == ""
    assert tree_prefix(1) == "└─ "
    assert tree_prefix(9) == tree_prefix(5)


class TestHeaderText:
    """Tests for header_text."""

    def test_user_indicator(self, engine):
        """Test an unprivileged session is labelled as a user."""
        text = header_text(engine)
        assert text.startswith("[yellow]\\[User][/yellow]")
        assert "Processes: 4/4" in text

    def test_administrator_indicator(self, provider):
        """Test an elevated session is labelled as administrator."""
        provider.elevated = True
        engine = TaskEngine.from_provider(provider, Settings())
        engine.refresh()
        assert "[green]\\[Administrator][/green]" in header_text(engine)

    def test_filter_is_escaped(self, engine):
        """Test filter text cannot inject markup."""
        engine.filter_text = "[bold]"
        engine.apply_filter()
        assert "Filter: \\[bold]" in header_text(engine)


class TestOverlay:
    """Tests for overlay_text."""

    def test_list_mode_has_no_overlay(self, engine):
        """Test the process list shows no dialog."""
        assert overlay_text(engine, rows=10) is None

    def test_confirm_overlay(self, engine):
        """Test the kill dialog names the process."""
        engine.request_kill()
        assert "Kill init (PID 1)?" in overlay_text(engine, rows=10)

    def test_affinity_overlay_marks_cursor(self, engine):
        """Test the affinity grid marks selected cores and the cursor."""
        engine.selected_index = 2
        engine.open_detail()
        engine.open_affinity()
        text = overlay_text(engine, rows=10)
        assert ">[x]0<" in text
        assert " [ ]3 " in text


@pytest.fixture
def app(engine):
    return ProctopApp(engine=engine)


@pytest.mark.asyncio
async def test_app_creation(app):
    """Test ProctopApp can be instantiated."""
    assert app.title == "proctop"
    assert app.sub_title == "Process monitor and controller"


@pytest.mark.asyncio
async def test_app_compose(app):
    """Test ProctopApp composes correctly."""
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#header-stats") is not None
        assert pilot.app.query_one("#process-table") is not None
        assert pilot.app.query_one("#status") is not None


@pytest.mark.asyncio
async def test_app_shows_processes(app):
    """Test the first refresh fills the table."""
    async with app.run_test() as pilot:
        await pilot.pause()
        table = pilot.app.query_one("#process-table", DataTable)
        assert table.row_count == 4


@pytest.mark.asyncio
async def test_app_quit_binding(app):
    """Test that 'q' quits."""
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert pilot.app._exit


@pytest.mark.asyncio
async def test_app_sort_binding(app):
    """Test that 's' cycles the sort column."""
    async with app.run_test() as pilot:
        await pilot.press("s")
        assert app.engine.sort_column is SortColumn.MEMORY


@pytest.mark.asyncio
async def test_app_filter_input(app):
    """Test typing a filter narrows the table."""
    async with app.run_test() as pilot:
        await pilot.pause()
        await pilot.press("slash", "b", "a", "s", "h", "enter")
        table = pilot.app.query_one("#process-table", DataTable)
        assert app.engine.filter_text == "bash"
        assert table.row_count == 1


@pytest.mark.asyncio
async def test_app_kill_dialog(app, provider):
    """Test k opens the dialog and y terminates the process."""
    async with app.run_test() as pilot:
        await pilot.pause()
        await pilot.press("down", "k")
        overlay = pilot.app.query_one("#overlay", Static)
        assert app.engine.view_mode is ViewMode.CONFIRM_KILL
        assert overlay.display

        await pilot.press("y")
        assert ("terminate", 100) in provider.calls
        assert not overlay.display


@pytest.mark.asyncio
async def test_header_stats_update(app):
    """Test the header reflects engine settings."""
    async with app.run_test() as pilot:
        header = pilot.app.query_one("#header-stats", HeaderStats)
        app.engine.tree_view = True
        header.update_stats(app.engine)
        assert pilot.app.query_one(ProcessTable) is not None
