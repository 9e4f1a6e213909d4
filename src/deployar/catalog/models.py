"""Saved command templates."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from deployar.core.timestamps import parse_timestamp, utcnow


@dataclass
class CommandTemplate:
    """A named (workdir, command) pair an operator can run again and again.

    Executions copy ``workdir`` and ``command`` by value, so editing a
    template never changes the history of runs made from it.
    """

    id: str
    name: str
    workdir: str
    command: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        name: str,
        workdir: str,
        command: str,
        *,
        description: str = "",
        tags: list[str] | None = None,
    ) -> CommandTemplate:
        now = utcnow()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            workdir=workdir,
            command=command,
            description=description,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "workdir": self.workdir,
            "command": self.command,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommandTemplate:
        return cls(
            id=data["id"],
            name=data["name"],
            workdir=data["workdir"],
            command=data["command"],
            description=data.get("description") or "",
            tags=list(data.get("tags") or []),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data.get("updated_at") or data["created_at"]),
        )
