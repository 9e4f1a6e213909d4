"""Command catalog - CRUD over saved command templates.

Manifesto:
    Templates are edited rarely and read often.  The catalog keeps them in a
    locked dict and rewrites ``commands.json`` after every change, the same
    whole-snapshot scheme the execution store uses.

Tags:
    deployar, catalog, commands, persistence

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
import threading

from deployar.catalog.models import CommandTemplate
from deployar.core.errors import NotFoundError, StorageError, ValidationError
from deployar.core.logging import get_logger
from deployar.core.storage import SnapshotFile
from deployar.core.timestamps import utcnow
from deployar.execution.engine import validate_command

logger = get_logger(__name__)


def validate_template(name: str, workdir: str, command: str) -> None:
    """Name is required; workdir and command follow :func:`validate_command`.

    Raises:
        ValidationError: The first offending field.
    """
    if not name or not name.strip():
        raise ValidationError("Command name is required", field="name")
    validate_command(workdir, command)


class CommandCatalog:
    """Thread-safe store of :class:`CommandTemplate` keyed by id.

    Example:
        >>> catalog = CommandCatalog(SnapshotFile(tmp_path / "commands.json"))
        >>> tpl = catalog.create("deploy", "/srv/app", "make deploy")
        >>> catalog.get(tpl.id).name
        'deploy'
    """

    def __init__(self, snapshot: SnapshotFile) -> None:
        self._snapshot = snapshot
        self._lock = threading.RLock()
        self._templates: dict[str, CommandTemplate] = {}

    def load(self) -> int:
        raw = self._snapshot.load()
        templates: dict[str, CommandTemplate] = {}
        for key, data in raw.items():
            try:
                tpl = CommandTemplate.from_dict(data)
            except (KeyError, TypeError, ValueError) as exc:
                raise StorageError(
                    f"Malformed command {key!r} in {self._snapshot.path}: {exc}",
                    context={"command_id": key},
                    cause=exc,
                ) from exc
            templates[tpl.id] = tpl
        with self._lock:
            self._templates = templates
        logger.debug("commands_loaded", count=len(templates), path=str(self._snapshot.path))
        return len(templates)

    # ── CRUD ─────────────────────────────────────────────────────────────

    def create(
        self,
        name: str,
        workdir: str,
        command: str,
        *,
        description: str = "",
        tags: list[str] | None = None,
    ) -> CommandTemplate:
        validate_template(name, workdir, command)
        tpl = CommandTemplate.new(name, workdir, command, description=description, tags=tags)
        with self._lock:
            self._templates[tpl.id] = tpl
            self._persist()
            logger.info("command_created", command_id=tpl.id, name=name)
            return copy.deepcopy(tpl)

    def get(self, command_id: str) -> CommandTemplate | None:
        with self._lock:
            tpl = self._templates.get(command_id)
            return copy.deepcopy(tpl) if tpl is not None else None

    def require(self, command_id: str) -> CommandTemplate:
        """Like :meth:`get` but raises :class:`NotFoundError`."""
        tpl = self.get(command_id)
        if tpl is None:
            raise NotFoundError("Command not found", context={"command_id": command_id})
        return tpl

    def list_all(self) -> list[CommandTemplate]:
        """Templates sorted by name, then creation time."""
        with self._lock:
            ordered = sorted(self._templates.values(), key=lambda t: (t.name, t.created_at))
            return [copy.deepcopy(t) for t in ordered]

    def update(
        self,
        command_id: str,
        *,
        name: str,
        workdir: str,
        command: str,
        description: str = "",
        tags: list[str] | None = None,
    ) -> CommandTemplate:
        """Replace every editable field of an existing template.

        Raises:
            NotFoundError: Unknown id.
            ValidationError: Missing name, blank workdir or command.
        """
        with self._lock:
            tpl = self._templates.get(command_id)
            if tpl is None:
                raise NotFoundError("Command not found", context={"command_id": command_id})
            validate_template(name, workdir, command)
            tpl.name = name
            tpl.description = description
            tpl.workdir = workdir
            tpl.command = command
            tpl.tags = list(tags or [])
            tpl.updated_at = utcnow()
            self._persist()
            logger.info("command_updated", command_id=command_id)
            return copy.deepcopy(tpl)

    def delete(self, command_id: str) -> bool:
        with self._lock:
            if self._templates.pop(command_id, None) is None:
                return False
            self._persist()
        logger.info("command_deleted", command_id=command_id)
        return True

    def _persist(self) -> None:
        # Caller holds self._lock
        self._snapshot.save({tid: t.to_dict() for tid, t in self._templates.items()})
