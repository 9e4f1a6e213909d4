"""User accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from deployar.core.timestamps import parse_timestamp, utcnow


@dataclass
class User:
    username: str
    password_hash: str
    created_at: datetime = field(default_factory=utcnow)

    def public_dict(self) -> dict[str, Any]:
        """The view returned by the API; never includes the hash."""
        return {"username": self.username, "created_at": self.created_at.isoformat()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "password_hash": self.password_hash,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            username=data["username"],
            password_hash=data["password_hash"],
            created_at=parse_timestamp(data["created_at"]),
        )
