"""
Run events emitted by the process supervisor.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol

from mbwatch.logging import logger


@dataclass(frozen=True)
class RunCompleted:
    """A run finished and its result was committed."""

    account_name: str
    mailbox: Optional[str] = None
    recent: Optional[int] = None
    total: Optional[int] = None


@dataclass(frozen=True)
class RunFailed:
    """A run could not start or ended with anything but "finished"."""

    account_name: str
    message: str


class DiagnosticSink(Protocol):
    """Receiver for run events (logging, notifications, tests)."""
    def run_completed(self, event: RunCompleted) -> None: ...
    def run_failed(self, event: RunFailed) -> None: ...


class LoggerDiagnostics:
    """Default sink: write run events to the application log."""

    def run_completed(self, event: RunCompleted) -> None:
        if event.mailbox is None:
            logger.bind(account=event.account_name).info(f"synced: {event.account_name}")
        else:
            logger.bind(account=event.account_name).info(
                f"synced: {event.account_name}, {event.recent}/{event.total} for {event.mailbox}"
            )

    def run_failed(self, event: RunFailed) -> None:
        logger.bind(account=event.account_name).warning(
            f"mbsync [{event.account_name}]: {event.message.rstrip()}"
        )


__all__ = ["RunCompleted", "RunFailed", "DiagnosticSink", "LoggerDiagnostics"]
