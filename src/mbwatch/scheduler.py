"""
Per-account recurring timers that start mbsync runs.
"""

from __future__ import annotations
import asyncio
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

from mbwatch.logging import logger
from mbwatch.models import DEFAULT_INTERVAL, AccountSpec, ScheduleEntry


class RunStarter(Protocol):
    """Anything that can start a run for an account (the process supervisor)."""
    def start_run(self, account_name: str) -> object: ...


AccountSpecLike = Union[AccountSpec, str, Tuple[str, int]]


def to_account_spec(spec: AccountSpecLike, default_interval: int = DEFAULT_INTERVAL) -> AccountSpec:
    """Accept a bare name, a (name, interval) pair or an AccountSpec."""
    if isinstance(spec, AccountSpec):
        return spec
    if isinstance(spec, str):
        return AccountSpec(spec, default_interval)
    try:
        name, interval = spec
        return AccountSpec(name, int(interval))
    except (TypeError, ValueError):
        raise ValueError(f"Invalid account spec: {spec!r}") from None


class AccountScheduler:
    """
    Owns one repeating timer per account.

    Each timer fires once right away and then every ``interval_seconds``,
    anchored to the moment the schedule was started. A tick only launches a
    run; it never waits for it, so a slow run does not delay the next tick
    and may overlap with it.
    """

    def __init__(self, supervisor: RunStarter, default_interval: int = DEFAULT_INTERVAL) -> None:
        """
        Initialize scheduler.

        Args:
            supervisor: Receives start_run(account_name) on every tick
            default_interval: Interval for accounts given without one
        """
        self.supervisor = supervisor
        self.default_interval = default_interval
        self._entries: Dict[str, ScheduleEntry] = {}
        self.started_at: Optional[float] = None

    def start_schedule(self, account_name: str, interval_seconds: int = DEFAULT_INTERVAL) -> ScheduleEntry:
        """
        Start or restart the schedule of one account.

        Any existing timer for the account is cancelled first, so there is
        exactly one afterwards. Runs already in flight are not touched.

        Raises:
            ValueError: If interval_seconds is not positive
            RuntimeError: If called without a running event loop
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        loop = asyncio.get_running_loop()
        previous = self._entries.pop(account_name, None)
        if previous is not None:
            previous.cancel()
            logger.debug(f"Replaced schedule for {account_name} (was every {previous.interval_seconds}s)")

        handle = loop.call_soon(self._tick, account_name, loop.time(), 0)
        entry = ScheduleEntry(account_name, handle, interval_seconds)
        self._entries[account_name] = entry
        if self.started_at is None:
            self.started_at = time.time()
        logger.info(f"Scheduled {account_name} every {interval_seconds}s")
        return entry

    def start_schedules(self, specs: Iterable[AccountSpecLike]) -> List[ScheduleEntry]:
        """
        Start or refresh the schedule of every account in the list.

        The whole list is checked first; on a bad entry nothing is changed.

        Raises:
            ValueError: If any entry is malformed or has a non-positive interval
        """
        accounts = [to_account_spec(spec, self.default_interval) for spec in specs]
        for account in accounts:
            if account.interval_seconds <= 0:
                raise ValueError(
                    f"interval_seconds for {account.name} must be positive, "
                    f"got {account.interval_seconds}"
                )
        return [self.start_schedule(a.name, a.interval_seconds) for a in accounts]

    def stop_schedule(self, account_name: str) -> bool:
        """Cancel an account's timer. Returns False if it had none."""
        entry = self._entries.pop(account_name, None)
        if entry is None:
            return False
        entry.cancel()
        logger.info(f"Stopped schedule for {account_name}")
        return True

    def stop(self) -> None:
        """Cancel every timer."""
        for account_name in list(self._entries):
            self.stop_schedule(account_name)

    def get(self, account_name: str) -> Optional[ScheduleEntry]:
        return self._entries.get(account_name)

    def entries(self) -> List[ScheduleEntry]:
        return list(self._entries.values())

    def get_health(self) -> dict:
        """
        Get health check information.

        An account is overdue when its last tick is more than two intervals
        old; any overdue account makes the scheduler unhealthy.

        Returns:
            Dictionary with health status and per-account schedule info
        """
        now = datetime.now()
        accounts = {}
        is_healthy = bool(self._entries)
        for name, entry in list(self._entries.items()):
            overdue = (
                entry.last_tick_time is not None
                and (now - entry.last_tick_time).total_seconds() > entry.interval_seconds * 2
            )
            if overdue:
                is_healthy = False
            accounts[name] = {
                "interval_seconds": entry.interval_seconds,
                "ticks": entry.ticks,
                "last_tick_time": entry.last_tick_time.isoformat(timespec="seconds")
                if entry.last_tick_time else None,
                "overdue": overdue,
            }
        return {
            "status": "healthy" if is_healthy else "unhealthy",
            "accounts": accounts,
            "uptime_seconds": round(time.time() - self.started_at, 1) if self.started_at else 0,
        }

    def _tick(self, account_name: str, origin: float, tick: int) -> None:
        entry = self._entries.get(account_name)
        if entry is None:
            return

        # Arm the next tick before launching so a failed launch keeps the schedule
        loop = asyncio.get_running_loop()
        next_tick = tick + 1
        now = loop.time()
        if origin + next_tick * entry.interval_seconds <= now:
            # The loop was stalled (e.g. host suspend): skip missed ticks, run once
            skipped = int((now - origin) // entry.interval_seconds) + 1 - next_tick
            logger.warning(f"Schedule for {account_name} fell behind, skipping {skipped} tick(s)")
            next_tick += skipped
        next_at = origin + next_tick * entry.interval_seconds
        entry.timer_handle = loop.call_at(next_at, self._tick, account_name, origin, next_tick)
        entry.ticks += 1
        entry.last_tick_time = datetime.now()

        try:
            self.supervisor.start_run(account_name)
        except Exception as e:
            logger.exception(f"Failed to start run for {account_name}: {e}")


__all__ = ["AccountScheduler", "RunStarter", "to_account_spec"]
