"""Execution engine - validate, record, launch in the background, finish once.

Manifesto:
    Submitting a command must return as fast as writing one record to disk,
    however long the command runs.  The caller gets a ``running`` record
    straight away and polls the store for the result.  Everything that
    happens after launch (nonzero exit, missing shell, missing directory) is
    written into the record rather than raised, because by then nobody is
    waiting for an exception.

Architecture:
    ::

        submit(workdir, command)
          ├── validate_command()          → ValidationError, nothing stored
          ├── ExecutionStore.insert()     → PersistenceError, nothing launched
          ├── schedule _run(id)           thread per run | ThreadPoolExecutor
          └── return RUNNING copy

        _run(id)                           (background)
          ├── run_shell()                 → ShellResult | LaunchError
          ├── ExecutionStore.finish()     single guarded terminal transition
          └── done event set              → wait(id) returns

    ``max_workers=None`` spawns one daemon thread per submission, so the
    number of concurrent children is unbounded.  Pass ``max_workers=N`` to
    cap it with a pool; queued runs stay ``running`` until they finish.

Guardrails:
    - No timeout and no cancellation: a hung child keeps its record
      ``running`` until the process exits.
    - Records left ``running`` by a previous process are not touched on
      load, only reported with a warning.

Tags:
    deployar, execution, engine, threading, subprocess

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from deployar.core.errors import DeployarError, LaunchError, PersistenceError, ValidationError
from deployar.core.logging import get_logger
from deployar.core.settings import DeployarSettings
from deployar.core.storage import SnapshotFile
from deployar.execution.models import LAUNCH_FAILURE_EXIT_CODE, ExecutionRecord, ExecutionStatus
from deployar.execution.shell import launch_failure_output, run_shell
from deployar.execution.store import ExecutionStore

logger = get_logger(__name__)


def validate_command(workdir: str, command: str) -> None:
    """Reject blank commands and working directories.

    Raises:
        ValidationError: ``command`` or ``workdir`` is empty after stripping
            whitespace.  ``field`` names which one.
    """
    if not command or not command.strip():
        raise ValidationError("Command cannot be empty", field="command")
    if not workdir or not workdir.strip():
        raise ValidationError("Working directory cannot be empty", field="workdir")


class ExecutionEngine:
    """Runs shell commands asynchronously and tracks them in an :class:`ExecutionStore`.

    Example:
        >>> engine = ExecutionEngine(store)
        >>> rec = engine.submit("/tmp", "echo hello")
        >>> rec.status
        <ExecutionStatus.RUNNING: 'running'>
        >>> engine.wait(rec.id, timeout=5)
        True
        >>> engine.get(rec.id).output
        'hello\\n'
    """

    def __init__(
        self,
        store: ExecutionStore,
        *,
        shell: str = "sh",
        max_workers: int | None = None,
    ) -> None:
        self._store = store
        self._shell = shell
        self._max_workers = max_workers
        self._pool: ThreadPoolExecutor | None = None
        if max_workers is not None:
            self._pool = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix="deployar-exec",
            )

        # --- In-flight tracking (separate from the store's data lock) ---
        self._active_lock = threading.Lock()
        self._done: dict[str, threading.Event] = {}
        self._threads: dict[str, threading.Thread] = {}
        self._closed = False

    @classmethod
    def from_settings(cls, settings: DeployarSettings) -> ExecutionEngine:
        """Build an engine over ``<data_dir>/executions.json`` and load it."""
        store = ExecutionStore(SnapshotFile(settings.executions_path))
        engine = cls(
            store,
            shell=settings.shell,
            max_workers=settings.max_concurrent_executions,
        )
        engine.load()
        return engine

    @property
    def store(self) -> ExecutionStore:
        return self._store

    def load(self) -> int:
        """Load persisted records and report any left ``running`` by a previous process."""
        loaded = self._store.load()
        stale = self._store.count(ExecutionStatus.RUNNING)
        if stale:
            logger.warning(
                "stale_running_executions",
                count=stale,
                path=str(self._store.path),
            )
        return loaded

    # ── Submission ───────────────────────────────────────────────────────

    def submit(
        self,
        workdir: str,
        command: str,
        *,
        command_id: str | None = None,
        name: str | None = None,
        executed_by: str | None = None,
    ) -> ExecutionRecord:
        """Create a ``running`` record, start the command, and return immediately.

        Raises:
            ValidationError: Blank command or workdir.  No record is created.
            PersistenceError: The new record could not be saved.  The command
                is not started.
            DeployarError: The engine has been shut down.
        """
        validate_command(workdir, command)
        record = ExecutionRecord.new(
            workdir,
            command,
            command_id=command_id,
            name=name,
            executed_by=executed_by,
        )
        with self._active_lock:
            if self._closed:
                raise DeployarError("Execution engine is shut down")
            self._done[record.id] = threading.Event()

        try:
            created = self._store.insert(record)
        except PersistenceError:
            self._release(record.id)
            raise

        logger.info(
            "execution_submitted",
            execution_id=record.id,
            workdir=workdir,
            command_id=command_id,
            executed_by=executed_by,
        )
        self._schedule(record.id, workdir, command)
        return created

    def _schedule(self, execution_id: str, workdir: str, command: str) -> None:
        if self._pool is not None:
            try:
                self._pool.submit(self._run, execution_id, workdir, command)
            except RuntimeError as exc:
                # Pool shut down between the insert and scheduling
                self._complete(
                    execution_id,
                    LAUNCH_FAILURE_EXIT_CODE,
                    launch_failure_output("", str(exc)),
                )
                self._release(execution_id)
            return

        thread = threading.Thread(
            target=self._run,
            args=(execution_id, workdir, command),
            name=f"deployar-exec-{execution_id[:8]}",
            daemon=True,
        )
        with self._active_lock:
            self._threads[execution_id] = thread
        thread.start()

    def _run(self, execution_id: str, workdir: str, command: str) -> None:
        try:
            try:
                result = run_shell(workdir, command, shell=self._shell)
                exit_code, output = result.exit_code, result.output
            except LaunchError as exc:
                logger.warning(
                    "execution_launch_failed",
                    execution_id=execution_id,
                    workdir=workdir,
                    error=exc.message,
                )
                exit_code = LAUNCH_FAILURE_EXIT_CODE
                output = launch_failure_output("", exc.message)

            self._complete(execution_id, exit_code, output)
        finally:
            self._release(execution_id)

    def _complete(self, execution_id: str, exit_code: int, output: str) -> None:
        try:
            finished = self._store.finish(execution_id, exit_code=exit_code, output=output)
        except PersistenceError as exc:
            # Memory already holds the terminal state
            logger.error(
                "execution_persist_failed",
                execution_id=execution_id,
                **exc.to_dict(),
            )
            return

        if finished is None:
            logger.info("execution_deleted_while_running", execution_id=execution_id)
            return
        logger.info(
            "execution_finished",
            execution_id=execution_id,
            status=finished.status.value,
            exit_code=finished.exit_code,
            duration=finished.duration,
        )

    def _release(self, execution_id: str) -> None:
        with self._active_lock:
            done = self._done.pop(execution_id, None)
            self._threads.pop(execution_id, None)
        if done is not None:
            done.set()

    # ── Reads / housekeeping ─────────────────────────────────────────────

    def get(self, execution_id: str) -> ExecutionRecord | None:
        return self._store.get(execution_id)

    def list_all(self) -> list[ExecutionRecord]:
        return self._store.list_all()

    def list_recent(self, limit: int) -> list[ExecutionRecord]:
        """The *limit* newest records (all of them if fewer exist).

        Raises:
            ValidationError: ``limit`` is negative.
        """
        if limit < 0:
            raise ValidationError("limit must be zero or greater", field="limit")
        return self._store.list_recent(limit)

    def delete(self, execution_id: str) -> bool:
        return self._store.delete(execution_id)

    def clear(self) -> int:
        return self._store.clear()

    # ── Lifecycle ────────────────────────────────────────────────────────

    def active_count(self) -> int:
        """Number of runs submitted by this engine that have not finished."""
        with self._active_lock:
            return len(self._done)

    def wait(self, execution_id: str, timeout: float | None = None) -> bool:
        """Block until the background run of *execution_id* has finished.

        Returns True right away for ids that are unknown or already done,
        False if *timeout* elapses first.
        """
        with self._active_lock:
            done = self._done.get(execution_id)
        if done is None:
            return True
        return done.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting submissions; optionally wait for in-flight runs."""
        with self._active_lock:
            self._closed = True
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            return
        if wait:
            with self._active_lock:
                threads = list(self._threads.values())
            for thread in threads:
                thread.join()
