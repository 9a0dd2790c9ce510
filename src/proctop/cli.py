"""Command-line entry point."""

import argparse
import logging
import sys
import time

from proctop.app import ProctopApp
from proctop.config import (
    APP_NAME,
    APP_VERSION,
    LOG_LEVELS,
    MAX_REFRESH_MS,
    MIN_REFRESH_MS,
    Config,
    Settings,
    parse_sort_column,
)
from proctop.engine import TaskEngine
from proctop.providers import PsutilProvider

logger = logging.getLogger(__name__)

# Pause between the two samples taken in export mode, so rates are non-zero.
EXPORT_SAMPLE_SECONDS = 0.5


def _refresh_arg(value: str) -> int:
    try:
        ms = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid refresh interval '{value}'. Must be a number")
    if not MIN_REFRESH_MS <= ms <= MAX_REFRESH_MS:
        raise argparse.ArgumentTypeError(
            f"refresh interval {ms} is out of range. "
            f"Must be between {MIN_REFRESH_MS} and {MAX_REFRESH_MS} ms"
        )
    return ms


def _sort_arg(value: str):
    try:
        return parse_sort_column(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Interactive process monitor and controller.",
    )
    parser.add_argument(
        "-r",
        "--refresh",
        type=_refresh_arg,
        default=Config.REFRESH_MS,
        metavar="MS",
        help=f"refresh interval in milliseconds ({MIN_REFRESH_MS}-{MAX_REFRESH_MS})",
    )
    parser.add_argument("-f", "--filter", default="", metavar="NAME", help="initial name filter")
    parser.add_argument(
        "-s",
        "--sort",
        type=_sort_arg,
        default=Config.SORT,
        metavar="COLUMN",
        help="initial sort column: cpu, memory, name, pid, priority, threads, "
        "handles, uptime, read, write",
    )
    parser.add_argument("-a", "--ascending", action="store_true", help="sort ascending")
    parser.add_argument("-t", "--tree", action="store_true", help="start in tree view")
    parser.add_argument(
        "-x", "--export", action="store_true", help="export processes to CSV and exit"
    )
    parser.add_argument("--export-dir", default=Config.EXPORT_DIR, help="directory for CSV exports")
    parser.add_argument(
        "--log-level",
        default=Config.LOG_LEVEL,
        type=str.upper,
        choices=LOG_LEVELS,
        help="logging level",
    )
    parser.add_argument("--log-file", default=Config.LOG_FILE, help="write logs to this file")
    parser.add_argument("-V", "--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        refresh_ms=args.refresh,
        sort_column=args.sort,
        ascending=args.ascending,
        filter_text=args.filter,
        tree_view=args.tree,
        export_dir=args.export_dir,
    )


def configure_logging(level: str, log_file: str, interactive: bool) -> None:
    """Send logs to a file, or to stderr when the terminal is not in use."""
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    if log_file:
        logging.basicConfig(filename=log_file, level=level.upper(), format=fmt)
    elif not interactive:
        logging.basicConfig(stream=sys.stderr, level=level.upper(), format=fmt)
    else:
        logging.getLogger().addHandler(logging.NullHandler())


def run_export(engine: TaskEngine) -> int:
    """Sample twice, export the displayed list and report the path."""
    if not engine.refresh():
        print(engine.message, file=sys.stderr)
        return 1
    time.sleep(EXPORT_SAMPLE_SECONDS)
    engine.refresh()
    path = engine.export()
    if path is None:
        print(engine.message, file=sys.stderr)
        return 1
    print(f"Exported {len(engine.displayed)} processes to {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the proctop command."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file, interactive=not args.export)
    settings = settings_from_args(args)
    logger.debug("Settings: %s", settings)

    engine = TaskEngine.from_provider(PsutilProvider(), settings)
    if args.export:
        return run_export(engine)

    ProctopApp(engine=engine).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
