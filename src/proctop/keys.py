"""Keyboard dispatch for each view mode.

Keys are plain strings: single printable characters ("k", "+", "/") or
named keys ("up", "enter", "escape", "backspace", ...).
"""

from enum import Enum

from proctop.engine import TaskEngine
from proctop.models import ViewMode


class KeyAction(Enum):
    CONTINUE = "continue"
    EXIT = "exit"


HELP_LINES = [
    "Navigation",
    "  Up/Down       Move selection",
    "  PgUp/PgDn     Scroll by page",
    "  Home/End      Jump to start/end",
    "  Enter         View process details",
    "",
    "Process actions",
    "  k             Kill selected process",
    "  p             Suspend/resume process",
    "  + / -         Raise/lower priority",
    "  a             Edit CPU affinity (detail view)",
    "",
    "View",
    "  s             Cycle sort column",
    "  r             Reverse sort order",
    "  t             Toggle tree view",
    "  /             Filter by name",
    "  Esc           Clear filter",
    "  [ / ]         Slow down/speed up refresh",
    "  e             Export list to CSV",
    "",
    "  ?             Show this help",
    "  q             Quit",
]


def _handle_help(engine: TaskEngine, key: str, page_rows: int) -> None:
    count = len(HELP_LINES)
    if key == "up":
        engine.scroll_help(-1, count)
    elif key == "down":
        engine.scroll_help(1, count)
    elif key == "pageup":
        engine.scroll_help(-page_rows, count)
    elif key == "pagedown":
        engine.scroll_help(page_rows, count)
    else:
        engine.close_help()


def _handle_confirm_kill(engine: TaskEngine, key: str) -> None:
    if key in ("y", "Y"):
        engine.confirm_kill()
    elif key in ("n", "N", "escape"):
        engine.cancel_kill()


def _handle_filter(engine: TaskEngine, key: str) -> None:
    if key in ("escape", "enter"):
        engine.finish_filter_input()
    elif key == "backspace":
        engine.filter_backspace()
    elif len(key) == 1 and key.isprintable():
        engine.filter_append(key)


def _handle_detail(engine: TaskEngine, key: str, page_rows: int) -> None:
    if key in ("escape", "enter", "q"):
        engine.close_detail()
    elif key in ("k", "K"):
        engine.kill_from_detail()
    elif key in ("a", "A"):
        engine.open_affinity()
    elif key == "up":
        engine.scroll_detail(-1)
    elif key == "down":
        engine.scroll_detail(1)
    elif key == "pageup":
        engine.scroll_detail(-page_rows)
    elif key == "pagedown":
        engine.scroll_detail(page_rows)
    elif key == "home":
        engine.scroll_detail(-engine.detail_line_count())
    elif key == "end":
        engine.scroll_detail(engine.detail_line_count())


def _handle_affinity(engine: TaskEngine, key: str) -> None:
    if key == "escape":
        engine.close_affinity()
    elif key == "enter":
        engine.apply_affinity()
    elif key == "left":
        engine.affinity_move_left()
    elif key == "right":
        engine.affinity_move_right()
    elif key in (" ", "space"):
        engine.toggle_affinity_core()
    elif key in ("a", "A"):
        engine.select_all_cores()
    elif key == "1":
        engine.select_single_core()


_LIST_ACTIONS = {
    "k": TaskEngine.request_kill,
    "p": TaskEngine.toggle_suspend,
    "+": TaskEngine.raise_priority,
    "=": TaskEngine.raise_priority,
    "-": TaskEngine.lower_priority,
    "_": TaskEngine.lower_priority,
    "s": TaskEngine.cycle_sort,
    "r": TaskEngine.toggle_sort_order,
    "t": TaskEngine.toggle_tree_view,
    "e": TaskEngine.export,
    "[": TaskEngine.slower_refresh,
    "]": TaskEngine.faster_refresh,
    "/": TaskEngine.start_filter_input,
    "?": TaskEngine.open_help,
    "escape": TaskEngine.clear_filter,
    "enter": TaskEngine.open_detail,
    "up": TaskEngine.move_up,
    "down": TaskEngine.move_down,
    "home": TaskEngine.jump_to_start,
    "end": TaskEngine.jump_to_end,
}


def _handle_process_list(engine: TaskEngine, key: str, page_rows: int) -> KeyAction:
    if key in ("q", "Q", "ctrl+c"):
        return KeyAction.EXIT
    if key == "pageup":
        engine.page_up(page_rows)
    elif key == "pagedown":
        engine.page_down(page_rows)
    else:
        action = _LIST_ACTIONS.get(key if len(key) > 1 else key.lower())
        if action is not None:
            action(engine)
    return KeyAction.CONTINUE


def handle_key(engine: TaskEngine, key: str, page_rows: int = 10) -> KeyAction:
    """Clear the status message and route a key press to the active mode."""
    engine.message = None
    mode = engine.view_mode
    if mode is ViewMode.HELP:
        _handle_help(engine, key, page_rows)
    elif mode is ViewMode.AFFINITY:
        _handle_affinity(engine, key)
    elif mode is ViewMode.CONFIRM_KILL:
        _handle_confirm_kill(engine, key)
    elif mode is ViewMode.DETAIL_VIEW:
        _handle_detail(engine, key, page_rows)
    elif mode is ViewMode.FILTER_INPUT:
        _handle_filter(engine, key)
    else:
        return _handle_process_list(engine, key, page_rows)
    return KeyAction.CONTINUE
