"""
mbwatch: run mbsync on a schedule and keep per-mailbox counts in memory.
"""

from mbwatch.models import AccountSpec, AccountState, MailboxState, ScheduleEntry
from mbwatch.parser import parse_output
from mbwatch.scheduler import AccountScheduler
from mbwatch.storage.state_store import StateStore, snapshot_to_dict
from mbwatch.supervisor import ProcessSupervisor, RunHandle, RunOutcome

__version__ = "0.1.0"

__all__ = [
    "AccountSpec",
    "AccountState",
    "MailboxState",
    "ScheduleEntry",
    "parse_output",
    "AccountScheduler",
    "StateStore",
    "snapshot_to_dict",
    "ProcessSupervisor",
    "RunHandle",
    "RunOutcome",
]
