"""
Configuration loaded from the environment (and .env) with validation.
"""

from __future__ import annotations
import os
from typing import List, Optional, TypedDict

from dotenv import load_dotenv

from mbwatch.logging import logger
from mbwatch.models import DEFAULT_INTERVAL, AccountSpec


class Config(TypedDict):
    """Typed configuration dictionary."""
    MBSYNC_EXECUTABLE: str
    MBSYNC_VERBOSITY_FLAG: str
    ACCOUNTS: List[AccountSpec]
    DEFAULT_INTERVAL: int
    LOG_LEVEL: str
    LOG_FILE: Optional[str]
    HEALTH_CHECK_ENABLED: bool
    HEALTH_CHECK_PORT: int


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def parse_account_specs(value: str, default_interval: int = DEFAULT_INTERVAL) -> List[AccountSpec]:
    """
    Parse an account list such as ``"gmail, work:600"``.

    Each comma-separated item is an account name, optionally followed by
    ``:<interval_seconds>``. A name listed twice keeps its first position
    and its last interval.

    Raises:
        ValueError: If an interval is not a positive integer or a name is empty
    """
    specs: dict[str, AccountSpec] = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue

        name, sep, interval_str = item.partition(":")
        name = name.strip()
        if not name:
            raise ValueError(f"Account name missing in '{item}'")

        interval = default_interval
        if sep:
            try:
                interval = int(interval_str.strip())
            except ValueError:
                raise ValueError(
                    f"Interval for account '{name}' must be an integer, got '{interval_str.strip()}'"
                ) from None
            if interval <= 0:
                raise ValueError(f"Interval for account '{name}' must be positive, got {interval}")

        specs[name] = AccountSpec(name, interval)
    return list(specs.values())


def _load_env() -> Config:
    """
    Load environment variables and return validated configuration.

    Required vars:
      - MBSYNC_ACCOUNTS (comma list of "name" or "name:interval")

    Optional vars with defaults:
      - MBSYNC_EXECUTABLE (default: "mbsync")
      - MBSYNC_VERBOSITY_FLAG (default: "-V")
      - MBSYNC_INTERVAL (default: 300)
      - LOG_LEVEL (default: "INFO")
      - LOG_FILE (default: None)
      - HEALTH_CHECK_ENABLED (default: "true")
      - HEALTH_CHECK_PORT (default: 8080)
    """
    load_dotenv()

    accounts_str = os.getenv("MBSYNC_ACCOUNTS", "").strip()
    if not accounts_str:
        raise ValueError("MBSYNC_ACCOUNTS environment variable is required")

    executable = os.getenv("MBSYNC_EXECUTABLE", "mbsync").strip()
    if not executable:
        raise ValueError("MBSYNC_EXECUTABLE must not be empty")

    try:
        default_interval = int(os.getenv("MBSYNC_INTERVAL", str(DEFAULT_INTERVAL)))
    except ValueError:
        raise ValueError(
            f"MBSYNC_INTERVAL must be an integer, got '{os.getenv('MBSYNC_INTERVAL')}'"
        ) from None
    if default_interval < 1:
        raise ValueError(f"MBSYNC_INTERVAL must be at least 1 second, got {default_interval}")

    accounts = parse_account_specs(accounts_str, default_interval)
    if not accounts:
        raise ValueError("MBSYNC_ACCOUNTS does not name any account")

    health_check_port = int(os.getenv("HEALTH_CHECK_PORT", "8080"))
    if not (1024 <= health_check_port <= 65535):
        raise ValueError(
            f"HEALTH_CHECK_PORT must be between 1024 and 65535, got {health_check_port}"
        )

    cfg: Config = {
        "MBSYNC_EXECUTABLE": executable,
        "MBSYNC_VERBOSITY_FLAG": os.getenv("MBSYNC_VERBOSITY_FLAG", "-V").strip(),
        "ACCOUNTS": accounts,
        "DEFAULT_INTERVAL": default_interval,
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        "LOG_FILE": os.getenv("LOG_FILE", "").strip() or None,
        "HEALTH_CHECK_ENABLED": _as_bool(os.getenv("HEALTH_CHECK_ENABLED", "true")),
        "HEALTH_CHECK_PORT": health_check_port,
    }

    logger.debug(
        f"Configuration loaded: {len(accounts)} account(s), executable={executable}, "
        f"LOG_LEVEL={cfg['LOG_LEVEL']}"
    )
    return cfg
