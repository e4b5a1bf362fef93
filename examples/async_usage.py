"""
Scheduler example for mbwatch.

Keeps two accounts on independent schedules and prints the INBOX counts
every ten seconds, the way a status view would poll the snapshot.
"""

import asyncio

from mbwatch import AccountScheduler, ProcessSupervisor, StateStore
from mbwatch.logging import setup_logging


async def main():
    """Example: schedule accounts and poll the snapshot."""
    setup_logging(log_level="INFO")

    store = StateStore()
    supervisor = ProcessSupervisor(store)
    scheduler = AccountScheduler(supervisor)
    scheduler.start_schedules(["gmail", ("work", 600)])

    try:
        while True:
            await asyncio.sleep(10)
            for account, state in store.snapshot().items():
                inbox = state.inbox
                if inbox:
                    print(f"{account}: {inbox.recent}/{inbox.total} in INBOX")
    finally:
        scheduler.stop()
        await supervisor.aclose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
