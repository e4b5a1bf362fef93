"""
Value types shared by the parser, the state store and the scheduler.
"""

from __future__ import annotations
import asyncio
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

INBOX = "INBOX"
DEFAULT_INTERVAL = 300  # 5 minutes


@dataclass(frozen=True)
class MailboxState:
    """Counts for one mailbox as reported by a single completed run."""

    mailbox_name: str
    last_checked_time: datetime
    total: int
    recent: int

    def __post_init__(self) -> None:
        if self.recent < 0 or self.total < self.recent:
            raise ValueError(
                f"Invalid counts for mailbox '{self.mailbox_name}': "
                f"total={self.total}, recent={self.recent}"
            )

    def to_dict(self) -> dict:
        return {
            "last_checked_time": self.last_checked_time.isoformat(timespec="seconds"),
            "total": self.total,
            "recent": self.recent,
        }


class AccountState(Mapping):
    """
    Immutable, ordered mailbox_name -> MailboxState mapping for one account.

    Order is the order the mailboxes were first reported in. Built once per
    completed run and never modified afterwards.
    """

    __slots__ = ("_mailboxes",)

    def __init__(self, mailboxes: Iterable[MailboxState] = ()) -> None:
        entries: dict[str, MailboxState] = {}
        for mailbox in mailboxes:
            entries[mailbox.mailbox_name] = mailbox
        self._mailboxes = entries

    def __getitem__(self, mailbox_name: str) -> MailboxState:
        return self._mailboxes[mailbox_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mailboxes)

    def __len__(self) -> int:
        return len(self._mailboxes)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={m.total}/{m.recent}" for name, m in self._mailboxes.items())
        return f"AccountState({inner})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountState):
            return NotImplemented
        return list(self._mailboxes.items()) == list(other._mailboxes.items())

    __hash__ = None  # type: ignore[assignment]

    @property
    def inbox(self) -> Optional[MailboxState]:
        return self._mailboxes.get(INBOX)

    def counts(self) -> list[tuple[str, int, int]]:
        """(mailbox_name, total, recent) triples in report order."""
        return [(m.mailbox_name, m.total, m.recent) for m in self._mailboxes.values()]

    def structurally_equal(self, other: AccountState) -> bool:
        """Compare mailboxes and counts, ignoring when they were checked."""
        return self.counts() == other.counts()

    def to_dict(self) -> dict:
        return {name: mailbox.to_dict() for name, mailbox in self._mailboxes.items()}


@dataclass(frozen=True)
class AccountSpec:
    """One configured account and how often to synchronize it."""

    name: str
    interval_seconds: int = DEFAULT_INTERVAL


@dataclass
class ScheduleEntry:
    """The single live timer for an account."""

    account_name: str
    timer_handle: asyncio.TimerHandle
    interval_seconds: int
    ticks: int = 0
    last_tick_time: Optional[datetime] = None

    def cancel(self) -> None:
        self.timer_handle.cancel()


__all__ = [
    "INBOX",
    "DEFAULT_INTERVAL",
    "MailboxState",
    "AccountState",
    "AccountSpec",
    "ScheduleEntry",
]
