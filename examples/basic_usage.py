"""
Basic usage example for mbwatch.

Runs mbsync once for two accounts and prints the resulting counts.
"""

import asyncio

from mbwatch import ProcessSupervisor, StateStore
from mbwatch.cli import format_snapshot
from mbwatch.logging import logger, setup_logging


async def main():
    """Example: sync two accounts once and print their mailboxes."""
    setup_logging(log_level="INFO")

    store = StateStore()
    supervisor = ProcessSupervisor(store, executable="mbsync")

    handles = [supervisor.start_run(account) for account in ("gmail", "work")]
    for outcome in await asyncio.gather(*(h.wait() for h in handles)):
        if not outcome.committed:
            logger.warning(f"{outcome.account_name} not updated: {outcome.event.strip()}")

    print(format_snapshot(store.snapshot()))


if __name__ == "__main__":
    asyncio.run(main())
