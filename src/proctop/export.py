"""CSV export of the process list."""

import csv
from datetime import datetime
from pathlib import Path

from proctop.models import ProcessEntry

HEADER = [
    "PID",
    "Name",
    "CPU%",
    "Memory(MB)",
    "Threads",
    "Priority",
    "Handles",
    "Uptime(s)",
    "DiskRead/s",
    "DiskWrite/s",
    "Path",
]


def export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return now.strftime("processes_%Y-%m-%d_%H%M%S.csv")


def export_to_csv(
    entries: list[ProcessEntry], directory: str | Path = ".", now: datetime | None = None
) -> Path:
    """Write entries to a timestamped CSV file and return its path."""
    path = Path(directory) / export_filename(now)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for entry in entries:
            writer.writerow(
                [
                    entry.pid,
                    entry.name,
                    f"{entry.cpu_percent:.2f}",
                    f"{entry.memory_bytes / (1024**2):.2f}",
                    entry.thread_count,
                    entry.priority.label,
                    entry.handle_count,
                    entry.uptime_seconds,
                    f"{entry.disk_read_rate:.0f}",
                    f"{entry.disk_write_rate:.0f}",
                    entry.path or "",
                ]
            )
    return path
