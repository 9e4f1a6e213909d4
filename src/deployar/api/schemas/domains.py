"""
Domain response schemas — executions, saved commands, users.

Built from the core dataclasses with ``from_record`` / ``from_template`` /
``from_user`` so routers never hand-assemble dicts.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from deployar.auth.models import User
from deployar.catalog.models import CommandTemplate
from deployar.execution.models import ExecutionRecord

EXECUTION_STARTED_MESSAGE = "Command execution started"


# ── Executions ───────────────────────────────────────────────────────────


class ExecutionSchema(BaseModel):
    """One execution record.

    UI Hints:
        Poll ``GET /executions/{id}`` until ``status`` leaves ``running``.
        ``output``, ``exit_code``, ``ended_at`` and ``duration`` appear together.
    """

    id: str
    command_id: str | None = None
    name: str | None = None
    workdir: str
    command: str
    status: str = Field(description="'running' | 'success' | 'failed'")
    output: str = ""
    exit_code: int | None = None
    executed_by: str | None = None
    started_at: datetime
    ended_at: datetime | None = None
    duration: str | None = Field(default=None, description="Human-readable elapsed time")

    @classmethod
    def from_record(cls, record: ExecutionRecord) -> ExecutionSchema:
        return cls(
            id=record.id,
            command_id=record.command_id,
            name=record.name,
            workdir=record.workdir,
            command=record.command,
            status=record.status.value,
            output=record.output,
            exit_code=record.exit_code,
            executed_by=record.executed_by,
            started_at=record.started_at,
            ended_at=record.ended_at,
            duration=record.duration,
        )


class ExecutionAcceptedSchema(BaseModel):
    """Returned by the submit endpoints (202)."""

    execution_id: str
    status: str
    message: str = EXECUTION_STARTED_MESSAGE


# ── Saved commands ───────────────────────────────────────────────────────


class CommandSchema(BaseModel):
    id: str
    name: str
    description: str = ""
    workdir: str
    command: str
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_template(cls, tpl: CommandTemplate) -> CommandSchema:
        return cls(
            id=tpl.id,
            name=tpl.name,
            description=tpl.description,
            workdir=tpl.workdir,
            command=tpl.command,
            tags=list(tpl.tags),
            created_at=tpl.created_at,
            updated_at=tpl.updated_at,
        )


# ── Users / auth ─────────────────────────────────────────────────────────


class UserSchema(BaseModel):
    """Public user view (no password hash)."""

    username: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserSchema:
        return cls(username=user.username, created_at=user.created_at)


class SetupStatusSchema(BaseModel):
    needs_setup: bool


class MessageSchema(BaseModel):
    message: str
