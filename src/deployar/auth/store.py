"""User store - accounts, first-run setup and credential checks.

Manifesto:
    deployar runs arbitrary shell commands, so nothing under ``/api`` is
    reachable until an account exists.  The very first account is created
    through setup; after that only an authenticated user can add more, and
    the last account can never be removed.

Tags:
    deployar, auth, users, persistence

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
import threading

from deployar.auth.models import User
from deployar.auth.passwords import DEFAULT_ITERATIONS, hash_password, verify_password
from deployar.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from deployar.core.logging import get_logger
from deployar.core.storage import SnapshotFile

logger = get_logger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 4


def validate_username(username: str) -> None:
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(
            f"Username must be at least {MIN_USERNAME_LENGTH} characters", field="username"
        )
    if ":" in username:
        raise ValidationError("Username cannot contain colon", field="username")


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )


class UserStore:
    """Thread-safe ``username -> User`` mapping persisted to ``users.json``."""

    def __init__(self, snapshot: SnapshotFile, *, hash_iterations: int = DEFAULT_ITERATIONS) -> None:
        self._snapshot = snapshot
        self._hash_iterations = hash_iterations
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}

    def load(self) -> int:
        raw = self._snapshot.load()
        users: dict[str, User] = {}
        for key, data in raw.items():
            try:
                user = User.from_dict(data)
            except (KeyError, TypeError, ValueError) as exc:
                raise StorageError(
                    f"Malformed user {key!r} in {self._snapshot.path}: {exc}",
                    context={"username": key},
                    cause=exc,
                ) from exc
            users[user.username] = user
        with self._lock:
            self._users = users
        return len(users)

    # ── Queries ──────────────────────────────────────────────────────────

    def needs_setup(self) -> bool:
        with self._lock:
            return not self._users

    def get(self, username: str) -> User | None:
        with self._lock:
            user = self._users.get(username)
            return copy.deepcopy(user) if user is not None else None

    def list_all(self) -> list[User]:
        with self._lock:
            return [copy.deepcopy(u) for u in sorted(self._users.values(), key=lambda u: u.username)]

    def authenticate(self, username: str, password: str) -> User | None:
        """Return the user when the password matches, else None."""
        with self._lock:
            user = self._users.get(username)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return copy.deepcopy(user)

    # ── Mutations ────────────────────────────────────────────────────────

    def setup(self, username: str, password: str) -> User:
        """Create the first account.

        Raises:
            ValidationError: Setup already completed, or bad credentials.
        """
        with self._lock:
            if self._users:
                raise ValidationError("Setup already completed")
            user = self._add(username, password)
        logger.info("setup_completed", username=username)
        return user

    def create(self, username: str, password: str) -> User:
        """Add an account.

        Raises:
            ValidationError: Username or password too short, colon in name.
            ConflictError: The username is taken.
        """
        with self._lock:
            user = self._add(username, password)
        logger.info("user_created", username=username)
        return user

    def delete(self, username: str) -> None:
        """Remove an account.

        Raises:
            NotFoundError: Unknown username.
            ValidationError: It is the last remaining account.
        """
        with self._lock:
            if username not in self._users:
                raise NotFoundError("User not found", context={"username": username})
            if len(self._users) == 1:
                raise ValidationError("Cannot delete the last user")
            del self._users[username]
            self._persist()
        logger.info("user_deleted", username=username)

    def _add(self, username: str, password: str) -> User:
        # Caller holds self._lock
        validate_username(username)
        validate_password(password)
        if username in self._users:
            raise ConflictError("User already exists", context={"username": username})
        user = User(
            username=username,
            password_hash=hash_password(password, iterations=self._hash_iterations),
        )
        self._users[username] = user
        self._persist()
        return copy.deepcopy(user)

    def _persist(self) -> None:
        self._snapshot.save({name: u.to_dict() for name, u in self._users.items()})
