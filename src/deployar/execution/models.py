"""Execution records - status state machine and the tracked record.

Manifesto:
    One record tracks one command run from launch to completion.  The record
    is created ``running``, changes status exactly once, and never goes back.
    Everything that describes the result (output, exit code, end time,
    duration) is written in the same step as the terminal status, so a reader
    can never see ``success`` next to an empty output.

Tags:
    deployar, execution, record, state-machine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from deployar.core.timestamps import format_duration, parse_timestamp, utcnow


class ExecutionStatus(str, Enum):
    """Execution status — the full state machine.

    Valid transition graph::

        RUNNING → SUCCESS | FAILED
        SUCCESS → (terminal)
        FAILED  → (terminal)
    """

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


EXECUTION_VALID_TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.RUNNING: frozenset({ExecutionStatus.SUCCESS, ExecutionStatus.FAILED}),
    ExecutionStatus.SUCCESS: frozenset(),  # terminal
    ExecutionStatus.FAILED: frozenset(),  # terminal
}

# Exit code recorded when the shell itself could not be started.
LAUNCH_FAILURE_EXIT_CODE = 1


class InvalidTransitionError(ValueError):
    """Raised when an illegal state transition is attempted (e.g. SUCCESS → RUNNING)."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid ExecutionStatus transition: {current} → {target}")


def validate_transition(current: ExecutionStatus, target: ExecutionStatus) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_transition(ExecutionStatus.RUNNING, ExecutionStatus.SUCCESS)
        >>> validate_transition(ExecutionStatus.FAILED, ExecutionStatus.RUNNING)
        Traceback (most recent call last):
        ...
        InvalidTransitionError: Invalid ExecutionStatus transition: failed → running
    """
    if target not in EXECUTION_VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, target.value)


@dataclass
class ExecutionRecord:
    """State of one command run.

    Example:
        >>> rec = ExecutionRecord.new("/srv/app", "make deploy", executed_by="admin")
        >>> rec.status
        <ExecutionStatus.RUNNING: 'running'>
        >>> rec.finish(exit_code=0, output="ok\\n")
        >>> rec.status, rec.exit_code
        (<ExecutionStatus.SUCCESS: 'success'>, 0)
    """

    id: str
    """Unique identifier (UUID4), the sole lookup key"""

    workdir: str
    """Working directory the command runs in"""

    command: str
    """Raw command text passed to the shell"""

    started_at: datetime
    """When the record was created"""

    status: ExecutionStatus = ExecutionStatus.RUNNING

    command_id: str | None = None
    """Saved command this run came from; None for ad-hoc runs"""

    name: str | None = None
    """Saved command name at the time of execution (never refreshed)"""

    executed_by: str | None = None
    """Username of whoever triggered the run"""

    output: str = ""
    """stdout, then stderr; empty until the run finishes"""

    exit_code: int | None = None
    ended_at: datetime | None = None
    duration: str | None = None
    """Human-readable elapsed time, e.g. ``"1.52s"``"""

    @classmethod
    def new(
        cls,
        workdir: str,
        command: str,
        *,
        command_id: str | None = None,
        name: str | None = None,
        executed_by: str | None = None,
    ) -> ExecutionRecord:
        """Create a fresh ``running`` record with a new id and ``started_at = now``."""
        return cls(
            id=str(uuid.uuid4()),
            workdir=workdir,
            command=command,
            started_at=utcnow(),
            command_id=command_id,
            name=name,
            executed_by=executed_by,
        )

    def finish(self, *, exit_code: int, output: str, ended_at: datetime | None = None) -> None:
        """Apply the single terminal transition.

        Status is ``SUCCESS`` for exit code 0 and ``FAILED`` otherwise.

        Raises:
            InvalidTransitionError: The record is already terminal.
        """
        target = ExecutionStatus.SUCCESS if exit_code == 0 else ExecutionStatus.FAILED
        validate_transition(self.status, target)
        ended = ended_at or utcnow()
        self.status = target
        self.exit_code = exit_code
        self.output = output
        self.ended_at = ended
        self.duration = format_duration(ended - self.started_at)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON storage and responses.

        Optional fields that are unset are left out entirely, so their
        absence survives a save/load round trip.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "workdir": self.workdir,
            "command": self.command,
            "status": self.status.value,
            "output": self.output,
            "started_at": self.started_at.isoformat(),
        }
        optional = {
            "command_id": self.command_id,
            "name": self.name,
            "executed_by": self.executed_by,
            "exit_code": self.exit_code,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration": self.duration,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionRecord:
        """Inverse of :meth:`to_dict`."""
        ended_at = data.get("ended_at")
        return cls(
            id=data["id"],
            workdir=data["workdir"],
            command=data["command"],
            started_at=parse_timestamp(data["started_at"]),
            status=ExecutionStatus(data["status"]),
            command_id=data.get("command_id"),
            name=data.get("name"),
            executed_by=data.get("executed_by"),
            output=data.get("output", ""),
            exit_code=data.get("exit_code"),
            ended_at=parse_timestamp(ended_at) if ended_at else None,
            duration=data.get("duration"),
        )
