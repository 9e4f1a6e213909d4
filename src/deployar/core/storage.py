"""
Whole-snapshot JSON storage.

A :class:`SnapshotFile` is a durable keyed-record collection: one JSON object
mapping ``key -> record dict``.  Every save writes the complete collection,
replacing what was on disk; nothing is appended or patched in place.

Manifesto:
    Record volume is operator-driven and small, so rewriting the whole file
    on every mutation is cheap.  What matters is that a crash mid-write never
    leaves a truncated file behind.  Each save therefore goes to a temporary
    file in the same directory, is flushed and fsynced, and is then moved over
    the old file with ``os.replace`` (atomic on POSIX and Windows).

Architecture:
    ::

        save(records)
          ├── json.dumps(records, indent=2)
          ├── write  <dir>/.<name>.<random>.tmp
          ├── flush + fsync
          └── os.replace(tmp, <dir>/<name>)

        load()
          ├── missing file  → {}
          ├── empty file    → {}
          └── invalid JSON  → StorageError (the file is left untouched)

Guardrails:
    SnapshotFile does no locking of its own.  Callers (the record stores)
    serialize their writes and decide which snapshot is newest.

Tags:
    storage, persistence, json, atomic-write, deployar

Doc-Types:
    api-reference
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from deployar.core.errors import PersistenceError, StorageError
from deployar.core.logging import get_logger

logger = get_logger(__name__)


class SnapshotFile:
    """A JSON object on disk, read and written as a whole.

    Example:
        >>> snap = SnapshotFile(tmp_path / "executions.json")
        >>> snap.load()
        {}
        >>> snap.save({"abc": {"id": "abc"}})
        >>> snap.load()["abc"]["id"]
        'abc'
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path).expanduser()

    def __repr__(self) -> str:
        return f"SnapshotFile({str(self.path)!r})"

    def load(self) -> dict[str, dict[str, Any]]:
        """Return every persisted record keyed by id.

        Raises:
            StorageError: The file exists but cannot be read or is not a JSON
                object.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}", cause=exc) from exc

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt snapshot {self.path}: {exc}", cause=exc) from exc

        if not isinstance(data, dict):
            raise StorageError(
                f"Corrupt snapshot {self.path}: expected a JSON object, got {type(data).__name__}"
            )
        return data

    def save(self, records: dict[str, dict[str, Any]]) -> None:
        """Replace the durable state with *records*.

        Raises:
            PersistenceError: The snapshot could not be written.  The previous
                file, if any, is left intact.
        """
        payload = json.dumps(records, indent=2, ensure_ascii=False)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            logger.error("snapshot_write_failed", path=str(self.path), error=str(exc))
            raise PersistenceError(f"Cannot write {self.path}: {exc}", cause=exc) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
