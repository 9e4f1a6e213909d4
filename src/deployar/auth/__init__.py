"""Users, password hashing and HTTP Basic authentication."""

from deployar.auth.models import User
from deployar.auth.passwords import basic_auth_header, hash_password, parse_basic_auth, verify_password
from deployar.auth.store import UserStore, validate_password, validate_username

__all__ = [
    "User",
    "UserStore",
    "basic_auth_header",
    "hash_password",
    "parse_basic_auth",
    "validate_password",
    "validate_username",
    "verify_password",
]
