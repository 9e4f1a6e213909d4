"""Execution record store - the single owner of every ExecutionRecord.

Manifesto:
    The HTTP handlers, the CLI and the background completion threads all
    touch the same records.  Instead of sharing a dict and hoping, exactly one
    object owns the ``id -> record`` mapping and every access goes through
    its lock.  Callers only ever receive copies.

Architecture:
    ::

        ExecutionStore
          ├── _lock        RLock guarding _records + _version
          ├── _write_lock  Lock serializing disk writes
          └── SnapshotFile executions.json

        mutation (insert / finish / delete / clear)
          1. under _lock:   change _records, bump _version, copy to dicts
          2. under _write_lock: skip if a newer snapshot already landed,
             otherwise SnapshotFile.save()

    Snapshots are copied under the data lock and written outside it, so a
    slow disk never blocks readers.  The version counter keeps an older
    snapshot from overwriting a newer one when two writers race.

Guardrails:
    A failed save raises PersistenceError to the caller of the mutation, but
    the in-memory change is kept.  Memory is the source of truth until the
    next successful save.

Tags:
    deployar, execution, store, persistence, threading

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from deployar.core.errors import StorageError
from deployar.core.logging import get_logger
from deployar.core.storage import SnapshotFile
from deployar.execution.models import ExecutionRecord, ExecutionStatus

logger = get_logger(__name__)


class ExecutionStore:
    """Thread-safe ``id -> ExecutionRecord`` mapping with whole-snapshot persistence.

    Example:
        >>> store = ExecutionStore(SnapshotFile(tmp_path / "executions.json"))
        >>> store.load()
        0
        >>> rec = store.insert(ExecutionRecord.new("/tmp", "true"))
        >>> store.get(rec.id).status
        <ExecutionStatus.RUNNING: 'running'>
    """

    def __init__(self, snapshot: SnapshotFile) -> None:
        self._snapshot = snapshot
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._records: dict[str, ExecutionRecord] = {}
        # Insertion counter per id, breaks started_at ties in listings
        self._sequence: dict[str, int] = {}
        self._next_seq = 0
        self._version = 0
        self._written_version = 0

    @property
    def path(self) -> Path:
        return self._snapshot.path

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self) -> int:
        """Replace the in-memory mapping with the persisted one.

        Returns:
            Number of records loaded.

        Raises:
            StorageError: The snapshot exists but is unreadable or holds a
                malformed record.
        """
        raw = self._snapshot.load()
        records: dict[str, ExecutionRecord] = {}
        for key, data in raw.items():
            try:
                record = ExecutionRecord.from_dict(data)
            except (KeyError, TypeError, ValueError) as exc:
                raise StorageError(
                    f"Malformed execution record {key!r} in {self._snapshot.path}: {exc}",
                    context={"execution_id": key},
                    cause=exc,
                ) from exc
            records[record.id] = record

        # Oldest first, so the newest record gets the highest sequence
        ordered = sorted(records.values(), key=lambda r: r.started_at)
        with self._lock:
            self._records = {r.id: r for r in ordered}
            self._sequence = {r.id: i for i, r in enumerate(ordered)}
            self._next_seq = len(ordered)
        logger.debug("executions_loaded", count=len(records), path=str(self._snapshot.path))
        return len(records)

    # ── Mutations ────────────────────────────────────────────────────────

    def insert(self, record: ExecutionRecord) -> ExecutionRecord:
        """Add a new record and persist.

        Raises:
            ValueError: A record with the same id already exists.
            PersistenceError: The snapshot could not be written.  The record
                stays in memory.
        """
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Duplicate execution id: {record.id}")
            stored = copy.deepcopy(record)
            self._records[stored.id] = stored
            self._sequence[stored.id] = self._next_seq
            self._next_seq += 1
            result = copy.deepcopy(stored)
            version, snapshot = self._take_snapshot()
        self._write(version, snapshot)
        return result

    def finish(
        self,
        execution_id: str,
        *,
        exit_code: int,
        output: str,
        ended_at: datetime | None = None,
    ) -> ExecutionRecord | None:
        """Commit the terminal state of a record and persist.

        Status, output, exit code, end time and duration change together
        under the lock.

        Returns:
            A copy of the finished record, or None if it was deleted while
            running.

        Raises:
            InvalidTransitionError: The record is already terminal.
            PersistenceError: The snapshot could not be written.
        """
        with self._lock:
            record = self._records.get(execution_id)
            if record is None:
                return None
            record.finish(exit_code=exit_code, output=output, ended_at=ended_at)
            result = copy.deepcopy(record)
            version, snapshot = self._take_snapshot()
        self._write(version, snapshot)
        return result

    def delete(self, execution_id: str) -> bool:
        """Remove one record.  Returns False (and writes nothing) if absent."""
        with self._lock:
            if self._records.pop(execution_id, None) is None:
                return False
            self._sequence.pop(execution_id, None)
            version, snapshot = self._take_snapshot()
        self._write(version, snapshot)
        return True

    def clear(self) -> int:
        """Remove every record.  Returns how many were removed."""
        with self._lock:
            removed = len(self._records)
            self._records.clear()
            self._sequence.clear()
            version, snapshot = self._take_snapshot()
        self._write(version, snapshot)
        return removed

    # ── Views ────────────────────────────────────────────────────────────

    def get(self, execution_id: str) -> ExecutionRecord | None:
        with self._lock:
            record = self._records.get(execution_id)
            return copy.deepcopy(record) if record is not None else None

    def list_all(self) -> list[ExecutionRecord]:
        """Every record, newest ``started_at`` first (newest insertion on ties)."""
        with self._lock:
            ordered = sorted(
                self._records.values(),
                key=lambda r: (r.started_at, self._sequence.get(r.id, 0)),
                reverse=True,
            )
            return [copy.deepcopy(r) for r in ordered]

    def list_recent(self, limit: int) -> list[ExecutionRecord]:
        return self.list_all()[:limit]

    def count(self, status: ExecutionStatus | None = None) -> int:
        with self._lock:
            if status is None:
                return len(self._records)
            return sum(1 for r in self._records.values() if r.status == status)

    # ── Persistence ──────────────────────────────────────────────────────

    def _take_snapshot(self) -> tuple[int, dict[str, dict[str, Any]]]:
        # Caller holds self._lock
        self._version += 1
        return self._version, {rid: r.to_dict() for rid, r in self._records.items()}

    def _write(self, version: int, snapshot: dict[str, dict[str, Any]]) -> None:
        with self._write_lock:
            if version <= self._written_version:
                return
            self._snapshot.save(snapshot)
            self._written_version = version
