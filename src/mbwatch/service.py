"""
Service entry point: schedules every configured account until stopped.
"""

from __future__ import annotations
import asyncio
import signal
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from mbwatch.config import Config, _load_env
from mbwatch.diagnostics import DiagnosticSink
from mbwatch.health import HealthCheckServer
from mbwatch.logging import logger, setup_logging
from mbwatch.models import AccountState
from mbwatch.scheduler import AccountScheduler
from mbwatch.storage.state_store import StateStore, snapshot_to_dict
from mbwatch.supervisor import ProcessSupervisor


@dataclass
class SyncCore:
    """The store, supervisor and scheduler of one running service."""

    store: StateStore
    supervisor: ProcessSupervisor
    scheduler: AccountScheduler

    def health(self) -> dict:
        health = self.scheduler.get_health()
        health["runs"] = dict(self.supervisor.stats)
        health["in_flight"] = self.supervisor.in_flight()
        return health

    def status(self) -> dict:
        return {"accounts": snapshot_to_dict(self.store.snapshot())}


def build_core(cfg: Config, diagnostics: Optional[DiagnosticSink] = None) -> SyncCore:
    """Wire up a fresh store, supervisor and scheduler from configuration."""
    store = StateStore()
    supervisor = ProcessSupervisor(
        store,
        executable=cfg["MBSYNC_EXECUTABLE"],
        verbosity_flag=cfg["MBSYNC_VERBOSITY_FLAG"],
        diagnostics=diagnostics,
    )
    scheduler = AccountScheduler(supervisor, default_interval=cfg["DEFAULT_INTERVAL"])
    return SyncCore(store, supervisor, scheduler)


async def sync_once(cfg: Config, diagnostics: Optional[DiagnosticSink] = None) -> Mapping[str, AccountState]:
    """Run every account once, concurrently, and return the resulting snapshot."""
    core = build_core(cfg, diagnostics)
    handles = [core.supervisor.start_run(account.name) for account in cfg["ACCOUNTS"]]
    await asyncio.gather(*(handle.wait() for handle in handles))
    return core.store.snapshot()


async def run_service(
    cfg: Config,
    stop_event: Optional[asyncio.Event] = None,
    diagnostics: Optional[DiagnosticSink] = None,
) -> SyncCore:
    """
    Schedule every configured account and keep going until stopped.

    Stops on SIGINT/SIGTERM or when ``stop_event`` is set. Timers are
    cancelled first, then in-flight runs are given time to finish.

    Returns:
        The SyncCore that ran, with its final state
    """
    core = build_core(cfg, diagnostics)
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    health_server = None
    handled_signals = []

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
            handled_signals.append(signum)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or outside the main thread
            pass

    try:
        if cfg["HEALTH_CHECK_ENABLED"]:
            try:
                health_server = HealthCheckServer(
                    port=cfg["HEALTH_CHECK_PORT"],
                    health_func=core.health,
                    status_func=core.status,
                )
                health_server.start()
            except OSError as e:
                logger.warning(f"Continuing without health check server: {e}")
                health_server = None

        core.scheduler.start_schedules(cfg["ACCOUNTS"])
        logger.info(f"Service started for {len(cfg['ACCOUNTS'])} account(s)")
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        core.scheduler.stop()
        await core.supervisor.aclose()
        if health_server:
            health_server.stop()
        for signum in handled_signals:
            loop.remove_signal_handler(signum)
        logger.info("Service stopped")
    return core


def main() -> None:
    """Load configuration, set up logging and run the service."""
    cfg = _load_env()
    setup_logging(log_level=cfg["LOG_LEVEL"], log_file=cfg["LOG_FILE"])
    try:
        asyncio.run(run_service(cfg))
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")


if __name__ == "__main__":
    main()
