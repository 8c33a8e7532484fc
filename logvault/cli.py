# logvault/cli.py
"""
Command-line front end.

Configuration comes from the environment (and a ``.env`` file, if present).

Usage:
    logvault write auth info "User {id} logged in" --context id=42
    logvault list --page 2
    logvault view --file auth-2024-01-15-0a1b2c3d4e.log
    logvault view --stream auth
    logvault delete --stream auth
    logvault download --file auth-2024-01-15-0a1b2c3d4e.log --output auth.log
    logvault sweep --days 30
    logvault size
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from common.api_error import AppError, ConfigurationError
from common.config import initialize_config
from logvault.core import LogVault
from logvault.explorer import LogSelector
from logvault.levels import LogLevel
from logvault.schemas import LogPage, LogView


def _parse_context(pairs: Optional[List[str]]) -> Dict[str, str]:
    context: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Context must be KEY=VALUE, got {pair!r}")
        context[key] = value
    return context


def _selector(args: argparse.Namespace) -> LogSelector:
    if args.file is not None:
        return LogSelector.file(args.file)
    return LogSelector.stream(args.stream)


def _human_size(size: Optional[int]) -> str:
    if size is None:
        return "-"
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _render_page(console: Console, page: LogPage) -> None:
    if not page.total:
        console.print("No logs found.")
        return

    table = Table(title=f"Logs (page {page.page} of {page.total_pages})")
    table.add_column("Source")
    table.add_column("Stream")
    table.add_column("Date")
    table.add_column("Last modified")
    table.add_column("Size / rows", justify="right")
    table.add_column("Selector")

    for item in page.items:
        amount = _human_size(item.size) if item.size is not None else str(item.entry_count)
        table.add_row(
            item.source.value,
            item.stream,
            item.day.isoformat() if item.day else "-",
            item.modified.strftime("%Y-%m-%d %H:%M:%S"),
            amount,
            str(LogSelector.for_summary(item)),
        )
    console.print(table)


def _render_view(console: Console, view: LogView) -> None:
    if view.content is not None:
        console.print(view.content, end="", markup=False, highlight=False)
        return

    table = Table(title=f"Stream {view.selector}")
    table.add_column("Timestamp")
    table.add_column("Level")
    table.add_column("Message")
    for entry in view.entries:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.level.label,
            entry.message,
        )
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="logvault", description="Write and browse log streams")
    subparsers = parser.add_subparsers(dest="command", required=True)

    write_parser = subparsers.add_parser("write", help="Write one log entry")
    write_parser.add_argument("stream", help="Log stream name")
    write_parser.add_argument(
        "level", type=str.lower, choices=[level.value for level in LogLevel], help="Log level"
    )
    write_parser.add_argument("message", help="Message with optional {key} placeholders")
    write_parser.add_argument(
        "--context",
        nargs="*",
        metavar="KEY=VALUE",
        help="Placeholder values",
    )

    list_parser = subparsers.add_parser("list", help="List log files and database streams")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (1-based)")

    for name, help_text in (("view", "Show one log"), ("delete", "Delete one log")):
        sub = subparsers.add_parser(name, help=help_text)
        target = sub.add_mutually_exclusive_group(required=True)
        target.add_argument("--file", help="Log file name")
        target.add_argument("--stream", help="Database stream name")

    download_parser = subparsers.add_parser("download", help="Copy a raw log file")
    download_parser.add_argument("--file", required=True, help="Log file name")
    download_parser.add_argument("--output", type=Path, help="Destination (default stdout)")

    sweep_parser = subparsers.add_parser("sweep", help="Delete logs older than the retention window")
    sweep_parser.add_argument("--days", type=int, help="Retention in days (default from config)")

    subparsers.add_parser("size", help="Show the size of the log directory")

    return parser


def run(args: argparse.Namespace, vault: LogVault, console: Console) -> int:
    """Execute one parsed command against *vault*; returns the exit code."""
    if args.command == "write":
        if not vault.logger.enabled:
            console.print("Logging is disabled (set LOGVAULT_ENABLED=true); nothing written.")
            return 0
        vault.log(args.level, args.message, _parse_context(args.context), stream=args.stream)
        console.print(f"Wrote {args.level} entry to stream '{args.stream}'.")

    elif args.command == "list":
        _render_page(console, vault.page(args.page))

    elif args.command == "view":
        _render_view(console, vault.view(_selector(args)))

    elif args.command == "delete":
        selector = _selector(args)
        removed = vault.delete(selector)
        console.print(f"Deleted {selector} ({removed} removed).")

    elif args.command == "download":
        data = vault.download(LogSelector.file(args.file))
        if args.output is None:
            sys.stdout.buffer.write(data)
            sys.stdout.flush()
        else:
            args.output.write_bytes(data)
            console.print(f"Saved {len(data)} bytes to {args.output}.")

    elif args.command == "sweep":
        report = vault.sweep(args.days)
        console.print(f"Deleted {report.deleted} expired log(s); {report.failed} failure(s).")
        for failure in report.failures:
            console.print(f"  - {failure}", markup=False)
        return 1 if report.failed else 0

    elif args.command == "size":
        size = vault.directory_size()
        console.print(f"{_human_size(size)} ({size} bytes)")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()
    err_console = Console(stderr=True)

    try:
        load_dotenv()
        config = initialize_config()
        vault = LogVault.from_config(config)
    except ConfigurationError as e:
        # Can't use the vault, but that's OK - this is a fatal startup error
        err_console.print(f"FATAL: Configuration error:\n{e}", markup=False)
        return 1

    try:
        if vault.logger.enabled:
            vault.init()
        return run(args, vault, console)
    except (AppError, ValueError, TypeError) as e:
        err_console.print(f"Error: {e}", markup=False)
        return 1
    except Exception as e:
        # Written to the fatal-error stream by shutdown below
        vault.logger.record_fatal(type(e), e, e.__traceback__)
        raise
    finally:
        vault.shutdown()


if __name__ == "__main__":
    sys.exit(main())
