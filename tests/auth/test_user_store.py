"""Tests for the user store."""

from __future__ import annotations

import json

import pytest

from deployar.auth.store import UserStore, validate_password, validate_username
from deployar.core.errors import ConflictError, NotFoundError, ValidationError
from deployar.core.storage import SnapshotFile


@pytest.fixture
def users(tmp_path):
    s = UserStore(SnapshotFile(tmp_path / "users.json"), hash_iterations=1000)
    s.load()
    return s


class TestValidation:
    @pytest.mark.parametrize("name", ["", "ab"])
    def test_short_username(self, name):
        with pytest.raises(ValidationError, match="at least 3"):
            validate_username(name)

    def test_colon_in_username(self):
        with pytest.raises(ValidationError, match="colon"):
            validate_username("ad:min")

    def test_short_password(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_password("abc")
        assert exc_info.value.field == "password"


class TestSetup:
    def test_needs_setup_when_empty(self, users):
        assert users.needs_setup() is True

    def test_setup_creates_first_user(self, users):
        user = users.setup("admin", "s3cret")
        assert user.username == "admin"
        assert users.needs_setup() is False

    def test_setup_only_once(self, users):
        users.setup("admin", "s3cret")
        with pytest.raises(ValidationError, match="Setup already completed"):
            users.setup("other", "s3cret")
        assert [u.username for u in users.list_all()] == ["admin"]

    def test_setup_validates(self, users):
        with pytest.raises(ValidationError):
            users.setup("ad", "s3cret")
        assert users.needs_setup() is True


class TestAccounts:
    def test_authenticate(self, users):
        users.setup("admin", "s3cret")
        assert users.authenticate("admin", "s3cret").username == "admin"
        assert users.authenticate("admin", "nope") is None
        assert users.authenticate("ghost", "s3cret") is None

    def test_duplicate_user(self, users):
        users.setup("admin", "s3cret")
        with pytest.raises(ConflictError, match="User already exists"):
            users.create("admin", "other")

    def test_list_sorted(self, users):
        users.setup("carol", "pass1")
        users.create("alice", "pass2")
        users.create("bob", "pass3")
        assert [u.username for u in users.list_all()] == ["alice", "bob", "carol"]

    def test_delete(self, users):
        users.setup("admin", "s3cret")
        users.create("bob", "pass")
        users.delete("bob")
        assert users.get("bob") is None

    def test_delete_unknown(self, users):
        users.setup("admin", "s3cret")
        with pytest.raises(NotFoundError):
            users.delete("ghost")

    def test_cannot_delete_last_user(self, users):
        users.setup("admin", "s3cret")
        with pytest.raises(ValidationError, match="Cannot delete the last user"):
            users.delete("admin")
        assert users.get("admin") is not None


class TestPersistence:
    def test_hash_stored_not_password(self, users, tmp_path):
        users.setup("admin", "s3cret")
        raw = (tmp_path / "users.json").read_text(encoding="utf-8")
        assert "s3cret" not in raw
        assert json.loads(raw)["admin"]["password_hash"].startswith("pbkdf2_sha256$1000$")

    def test_reload_keeps_credentials(self, users, tmp_path):
        users.setup("admin", "s3cret")
        again = UserStore(SnapshotFile(tmp_path / "users.json"))
        assert again.load() == 1
        assert again.authenticate("admin", "s3cret") is not None

    def test_public_dict_has_no_hash(self, users):
        user = users.setup("admin", "s3cret")
        assert set(user.public_dict()) == {"username", "created_at"}
