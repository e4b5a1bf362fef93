"""
Command-line interface for mbwatch.
"""

from __future__ import annotations
import sys
import asyncio
import argparse
from collections.abc import Mapping

from mbwatch.config import _load_env
from mbwatch.logging import logger, setup_logging
from mbwatch.models import AccountState
from mbwatch.service import run_service, sync_once


def format_snapshot(snapshot: Mapping[str, AccountState]) -> str:
    """Render a snapshot as a plain-text table, one row per mailbox."""
    rows = [("ACCOUNT", "MAILBOX", "TOTAL", "RECENT", "CHECKED")]
    for account, state in snapshot.items():
        if not state:
            rows.append((account, "-", "-", "-", "-"))
        for mailbox in state.values():
            rows.append((
                account,
                mailbox.mailbox_name,
                str(mailbox.total),
                str(mailbox.recent),
                f"{mailbox.last_checked_time:%Y-%m-%d %H:%M:%S}",
            ))

    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    lines = []
    for row in rows:
        cells = [
            cell.rjust(width) if i in (2, 3) else cell.ljust(width)
            for i, (cell, width) in enumerate(zip(row, widths))
        ]
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


def cmd_run(args) -> None:
    """Synchronize every account once and print the result."""
    try:
        cfg = _load_env()
        setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])
        logger.info("Running one sync of every account")
        snapshot = asyncio.run(sync_once(cfg))
        print(format_snapshot(snapshot))
    except Exception as e:
        logger.exception(f"Sync failed: {e}")
        sys.exit(1)


def cmd_service(args) -> None:
    """Run the scheduler until interrupted."""
    try:
        cfg = _load_env()
        setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])
        asyncio.run(run_service(cfg))
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except Exception as e:
        logger.exception(f"Service execution failed: {e}")
        sys.exit(1)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mbwatch",
        description="mbwatch - periodic mbsync runs with per-mailbox status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run              Sync every account once and print counts
  %(prog)s service          Keep syncing on each account's interval
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Sync every account once")
    run_parser.set_defaults(func=cmd_run)

    service_parser = subparsers.add_parser("service", help="Run service with scheduler")
    service_parser.set_defaults(func=cmd_service)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
