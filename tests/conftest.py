"""
Pytest configuration and shared fixtures.
"""

import os
import stat
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path for imports
PROJ_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJ_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@pytest.fixture
def sample_output():
    """mbsync -V output for an account with two mailboxes."""
    return (
        "C: 0/1  B: 0/0  M: +0/0 *0/0 #0/0  S: +0/0 *0/0 #0/0\n"
        "Channel gmail\n"
        "Opening master box INBOX...\n"
        "Opening slave box INBOX...\n"
        "Loading master...\n"
        "master: 42 messages, 3 recent\n"
        "Loading slave...\n"
        "slave: 41 messages, 2 recent\n"
        "Opening master box Archive...\n"
        "Opening slave box Archive...\n"
        "master: 1000 messages, 0 recent\n"
        "slave: 1000 messages, 0 recent\n"
    )


@pytest.fixture
def checked_at():
    """Fixed parse timestamp."""
    return datetime(2026, 10, 18, 9, 30, 0)


@pytest.fixture
def make_mbsync(tmp_path):
    """
    Factory for shell scripts standing in for mbsync.

    The script prints ``output`` on stdout, ``stderr`` on stderr, sleeps
    ``delay`` seconds and exits with ``exit_code``. Its arguments are
    appended to ``args.log`` next to it.
    """
    if os.name != "posix":
        pytest.skip("fake mbsync needs a POSIX shell")

    counter = {"n": 0}

    def _make(output: str = "", exit_code: int = 0, delay: float = 0, stderr: str = "") -> str:
        counter["n"] += 1
        script = tmp_path / f"mbsync-{counter['n']}"
        out_file = tmp_path / f"mbsync-{counter['n']}.out"
        err_file = tmp_path / f"mbsync-{counter['n']}.err"
        out_file.write_text(output)
        err_file.write_text(stderr)
        lines = [
            "#!/bin/sh",
            f'echo "$@" >> "{tmp_path / "args.log"}"',
        ]
        if delay:
            lines.append(f"sleep {delay}")
        lines += [
            f'cat "{out_file}"',
            f'cat "{err_file}" >&2',
            f"exit {exit_code}",
        ]
        script.write_text("\n".join(lines) + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make
