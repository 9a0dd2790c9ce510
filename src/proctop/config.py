"""Configuration settings for proctop."""

import logging
import os
from dataclasses import dataclass

from proctop.models import SortColumn

logger = logging.getLogger(__name__)

APP_NAME = "proctop"
APP_VERSION = "0.1.0"

DEFAULT_REFRESH_MS = 2000
MIN_REFRESH_MS = 250
MAX_REFRESH_MS = 10000

# Interactive refresh interval ladder, fastest first.
REFRESH_STEPS_MS = (250, 500, 1000, 2000, 5000, 10000)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_LOG_LEVEL = "WARNING"

SORT_ALIASES = {
    "cpu": SortColumn.CPU,
    "memory": SortColumn.MEMORY,
    "mem": SortColumn.MEMORY,
    "name": SortColumn.NAME,
    "pid": SortColumn.PID,
    "priority": SortColumn.PRIORITY,
    "prio": SortColumn.PRIORITY,
    "threads": SortColumn.THREADS,
    "handles": SortColumn.HANDLES,
    "uptime": SortColumn.UPTIME,
    "read": SortColumn.DISK_READ_RATE,
    "disk-read": SortColumn.DISK_READ_RATE,
    "write": SortColumn.DISK_WRITE_RATE,
    "disk-write": SortColumn.DISK_WRITE_RATE,
}


def parse_sort_column(value: str) -> SortColumn:
    """Resolve a sort column name or alias."""
    try:
        return SORT_ALIASES[value.strip().lower()]
    except KeyError:
        valid = ", ".join(sorted({column.value for column in SortColumn}))
        raise ValueError(f"invalid sort column '{value}'. Valid values: {valid}") from None


def clamp_refresh_ms(value: int) -> int:
    return max(MIN_REFRESH_MS, min(MAX_REFRESH_MS, value))


def env_refresh_ms(environ=os.environ) -> int:
    """Refresh interval from PROCTOP_REFRESH_MS, falling back when unparsable."""
    raw = environ.get("PROCTOP_REFRESH_MS")
    if raw is None:
        return DEFAULT_REFRESH_MS
    try:
        return clamp_refresh_ms(int(raw))
    except ValueError:
        logger.warning("Ignoring PROCTOP_REFRESH_MS=%r, using %d", raw, DEFAULT_REFRESH_MS)
        return DEFAULT_REFRESH_MS


def env_log_level(environ=os.environ) -> str:
    raw = environ.get("PROCTOP_LOG_LEVEL")
    if raw is None:
        return DEFAULT_LOG_LEVEL
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        logger.warning("Ignoring PROCTOP_LOG_LEVEL=%r, using %s", raw, DEFAULT_LOG_LEVEL)
        return DEFAULT_LOG_LEVEL
    return level


def slower_refresh_ms(current: int) -> int:
    """Next step up the interval ladder."""
    for step in REFRESH_STEPS_MS:
        if step > current:
            return step
    return REFRESH_STEPS_MS[-1]


def faster_refresh_ms(current: int) -> int:
    """Next step down the interval ladder."""
    for step in reversed(REFRESH_STEPS_MS):
        if step < current:
            return step
    return REFRESH_STEPS_MS[0]


def format_refresh_ms(value: int) -> str:
    """Format an interval as "2.0s" or "500ms"."""
    if value >= 1000:
        return f"{value / 1000:.1f}s"
    return f"{value}ms"


class Config:
    """Environment-driven defaults."""

    REFRESH_MS = env_refresh_ms()
    SORT = os.environ.get("PROCTOP_SORT", "cpu")

    # Export
    EXPORT_DIR = os.environ.get("PROCTOP_EXPORT_DIR", ".")

    # Logging
    LOG_LEVEL = env_log_level()
    LOG_FILE = os.environ.get("PROCTOP_LOG_FILE", "")


@dataclass(slots=True)
class Settings:
    """Start-up options for the engine."""

    refresh_ms: int = DEFAULT_REFRESH_MS
    sort_column: SortColumn = SortColumn.CPU
    ascending: bool = False
    filter_text: str = ""
    tree_view: bool = False
    export_dir: str = "."

    def __post_init__(self) -> None:
        self.refresh_ms = clamp_refresh_ms(self.refresh_ms)
