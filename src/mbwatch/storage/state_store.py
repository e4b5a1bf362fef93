"""
In-memory store of the last completed synchronization result per account.
"""

from __future__ import annotations
import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, List, Optional

from mbwatch.models import AccountState


class StateStore:
    """
    Account name -> AccountState, replaced whole on every completed run.

    Values are immutable, so readers only need a consistent copy of the
    mapping itself. The lock covers that copy and the replace; it is held
    for a dict operation at most, so the event loop never waits on it
    for long while the health server thread reads.
    """

    def __init__(self) -> None:
        self._accounts: Dict[str, AccountState] = {}
        self._lock = threading.Lock()

    def commit(self, account_name: str, state: AccountState) -> None:
        """Replace the state of one account. Only the process supervisor writes."""
        with self._lock:
            self._accounts[account_name] = state

    def get(self, account_name: str) -> Optional[AccountState]:
        with self._lock:
            return self._accounts.get(account_name)

    def snapshot(self) -> Mapping[str, AccountState]:
        """Read-only point-in-time copy of every account's state."""
        with self._lock:
            return MappingProxyType(dict(self._accounts))

    def accounts(self) -> List[str]:
        with self._lock:
            return list(self._accounts)

    def __contains__(self, account_name: object) -> bool:
        with self._lock:
            return account_name in self._accounts

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)


def snapshot_to_dict(snapshot: Mapping[str, AccountState]) -> dict:
    """
    Render a snapshot as plain data for tables and JSON.

    Returns:
        {account: {mailbox: {"last_checked_time", "total", "recent"}}}
    """
    return {account: state.to_dict() for account, state in snapshot.items()}
