"""
Launch mbsync for an account and turn its output into committed state.

Every run gets its own subprocess, its own output buffer and its own asyncio
task. Nothing about a run is shared with any other run, including earlier runs
of the same account that are still going.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Set

from mbwatch.diagnostics import DiagnosticSink, LoggerDiagnostics, RunCompleted, RunFailed
from mbwatch.logging import logger
from mbwatch.models import AccountState
from mbwatch.parser import parse_output
from mbwatch.storage.state_store import StateStore

FINISHED = "finished\n"
READ_CHUNK_SIZE = 4096


def describe_exit(returncode: int) -> str:
    """Describe a process exit status as a one-line event."""
    if returncode == 0:
        return FINISHED
    if returncode < 0:
        return f"killed by signal {-returncode}\n"
    return f"exited abnormally with code {returncode}\n"


@dataclass(frozen=True)
class RunOutcome:
    """How a run ended. ``committed`` is True only when the store was written."""

    account_name: str
    event: str
    committed: bool = False
    state: Optional[AccountState] = None


class RunHandle:
    """Reference to one launched run."""

    def __init__(self, account_name: str, task: asyncio.Task, started_at: datetime) -> None:
        self.account_name = account_name
        self.started_at = started_at
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> RunOutcome:
        """Wait for the run to end without cancelling it if the waiter is cancelled."""
        return await asyncio.shield(self._task)

    def __repr__(self) -> str:
        status = "done" if self.done() else "running"
        return f"<RunHandle {self.account_name} {status} since {self.started_at:%H:%M:%S}>"


class ProcessSupervisor:
    """
    Runs the sync utility and owns the only write path into the StateStore.

    A run that ends with "finished" is parsed and committed; anything else is
    reported through the diagnostics sink and leaves the store untouched.
    """

    def __init__(
        self,
        store: StateStore,
        executable: str = "mbsync",
        verbosity_flag: str = "-V",
        diagnostics: Optional[DiagnosticSink] = None,
    ) -> None:
        """
        Initialize supervisor.

        Args:
            store: State store that completed runs are committed to
            executable: Path or name of the sync utility
            verbosity_flag: Flag that makes the utility print per-mailbox counts
            diagnostics: Receiver for run events (default: application log)
        """
        self.store = store
        self.executable = executable
        self.verbosity_flag = verbosity_flag
        self.diagnostics = diagnostics or LoggerDiagnostics()
        self._runs: Dict[asyncio.Task, str] = {}
        self._processes: Set[asyncio.subprocess.Process] = set()
        self.stats = {
            "runs_started": 0,
            "runs_completed": 0,
            "runs_failed": 0,
            "last_error": None,
        }

    def command(self, account_name: str) -> list[str]:
        return [self.executable, self.verbosity_flag, account_name]

    def start_run(self, account_name: str) -> RunHandle:
        """
        Launch one run for an account and return immediately.

        Must be called from the event loop. Runs already in progress for the
        same account are left alone; both proceed and the last to finish wins.
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(
            self._run(account_name, self.command(account_name)),
            name=f"mbsync:{account_name}",
        )
        self._runs[task] = account_name
        task.add_done_callback(self._forget)
        self.stats["runs_started"] += 1
        logger.bind(account=account_name).debug(
            f"Started run for {account_name} ({self.in_flight(account_name)} in flight)"
        )
        return RunHandle(account_name, task, datetime.now())

    def in_flight(self, account_name: Optional[str] = None) -> int:
        """Number of unfinished runs, for one account or overall."""
        if account_name is None:
            return len(self._runs)
        return sum(1 for name in self._runs.values() if name == account_name)

    def handle_exit(self, account_name: str, output: str, event: str) -> RunOutcome:
        """
        Route a finished process to the store or to diagnostics.

        Args:
            account_name: Account the run belonged to
            output: Everything the run printed on stdout
            event: Exit description, "finished\\n" on success

        Returns:
            RunOutcome describing what happened
        """
        if event != FINISHED:
            self.stats["runs_failed"] += 1
            self.stats["last_error"] = event.strip()
            self.diagnostics.run_failed(RunFailed(account_name, event))
            return RunOutcome(account_name, event)

        state = parse_output(account_name, output)
        self.store.commit(account_name, state)
        self.stats["runs_completed"] += 1

        inbox = state.inbox
        if inbox is not None:
            self.diagnostics.run_completed(
                RunCompleted(account_name, inbox.mailbox_name, inbox.recent, inbox.total)
            )
        else:
            self.diagnostics.run_completed(RunCompleted(account_name))
        return RunOutcome(account_name, event, committed=True, state=state)

    async def aclose(self, timeout: float = 10.0) -> None:
        """
        Wait for in-flight runs at shutdown, terminating any that outlive ``timeout``.
        """
        tasks = list(self._runs)
        if not tasks:
            return

        logger.info(f"Waiting for {len(tasks)} in-flight run(s) to finish...")
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if not pending:
            return

        logger.warning(f"{len(pending)} run(s) still running after {timeout}s, terminating")
        for process in list(self._processes):
            if process.returncode is None:
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass
        _, pending = await asyncio.wait(pending, timeout=timeout)
        for process in list(self._processes):
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
        if pending:
            await asyncio.wait(pending)

    async def _run(self, account_name: str, command: list[str]) -> RunOutcome:
        log = logger.bind(account=account_name)
        buffer = bytearray()
        errors = bytearray()
        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except (OSError, ValueError) as e:
                # ValueError: arguments the OS cannot take, e.g. an embedded null byte
                message = f"failed to start {command[0]}: {e}\n"
                self.stats["runs_failed"] += 1
                self.stats["last_error"] = message.strip()
                self.diagnostics.run_failed(RunFailed(account_name, message))
                return RunOutcome(account_name, message)

            self._processes.add(process)
            try:
                await asyncio.gather(
                    self._drain(process.stdout, buffer),
                    self._drain(process.stderr, errors),
                )
                returncode = await process.wait()
            except asyncio.CancelledError:
                if process.returncode is None:
                    log.warning("Run cancelled, killing mbsync")
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass
                    await process.wait()
                raise
            finally:
                self._processes.discard(process)

            event = describe_exit(returncode)
            if event != FINISHED and errors:
                log.debug(
                    "mbsync stderr: "
                    f"{errors[-2000:].decode('utf-8', errors='replace').strip()}"
                )
            return self.handle_exit(
                account_name,
                buffer.decode("utf-8", errors="replace"),
                event,
            )
        except Exception as e:
            log.exception(f"Run for {account_name} failed unexpectedly: {e}")
            return RunOutcome(account_name, f"error: {e}\n")
        finally:
            buffer.clear()
            errors.clear()

    @staticmethod
    async def _drain(stream: Optional[asyncio.StreamReader], buffer: bytearray) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buffer.extend(chunk)

    def _forget(self, task: asyncio.Task) -> None:
        self._runs.pop(task, None)


__all__ = ["FINISHED", "describe_exit", "RunOutcome", "RunHandle", "ProcessSupervisor"]
