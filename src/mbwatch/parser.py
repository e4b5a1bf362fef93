"""
Parse mbsync verbose output into per-mailbox counts.

mbsync -V prints, for every mailbox it opens:

    Opening master box INBOX...
    ...
    master: 42 messages, 3 recent

Everything else in the output is ignored. Releases from 1.4 on say "far"
where older ones say "master"; both spellings are accepted.
"""

from __future__ import annotations
import re
from datetime import datetime
from typing import Optional

from mbwatch.models import AccountState, MailboxState

OPENING_RE = re.compile(r"Opening (?:master|far) box (.+?)\.\.\.")
SUMMARY_RE = re.compile(r"(?:master|far): (\d+) messages, (\d+) recent")

SEEKING_OPENING = "seeking-opening"
SEEKING_SUMMARY = "seeking-summary"


def parse_output(
    account_name: str,
    raw_text: str,
    now: Optional[datetime] = None,
) -> AccountState:
    """
    Build the AccountState reported by one run of the sync utility.

    Args:
        account_name: Account the output belongs to (not used for matching)
        raw_text: Full captured output of the run
        now: Timestamp stamped on every mailbox (default: current time)

    Returns:
        AccountState with one entry per (opening, summary) pair, in order of
        first appearance. A mailbox opened but never summarized is left out,
        and a repeated mailbox keeps the counts of its last summary.
    """
    checked_at = now or datetime.now()
    mailboxes: dict[str, MailboxState] = {}
    state = SEEKING_OPENING
    pending: Optional[str] = None

    for line in raw_text.splitlines():
        opening = OPENING_RE.search(line)
        if opening:
            # A new opening line replaces any mailbox still waiting for counts
            pending = opening.group(1)
            state = SEEKING_SUMMARY
            continue

        if state != SEEKING_SUMMARY:
            continue

        summary = SUMMARY_RE.search(line)
        if not summary:
            continue

        total, recent = int(summary.group(1)), int(summary.group(2))
        state, name, pending = SEEKING_OPENING, pending, None
        try:
            mailboxes[name] = MailboxState(name, checked_at, total, recent)
        except ValueError:
            # recent > total: drop this mailbox, keep the rest of the run
            continue

    return AccountState(mailboxes.values())


__all__ = ["parse_output"]
