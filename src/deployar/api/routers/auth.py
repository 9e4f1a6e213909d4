"""
Auth router — first-run setup, login check, current user.

Endpoints:
    GET    /auth/setup     Does the server still need its first user? (public)
    POST   /auth/setup     Create the first user (public, once)
    POST   /auth/login     Check credentials (public)
    POST   /auth/logout    No-op; credentials live in the client
    GET    /auth/me        The authenticated user

Tags:
    deployar, api, auth

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from deployar.api.deps import CurrentUser, Users
from deployar.api.schemas.common import SuccessResponse
from deployar.api.schemas.domains import MessageSchema, SetupStatusSchema, UserSchema
from deployar.core.errors import AuthenticationError, NotFoundError

router = APIRouter(prefix="/auth")


class CredentialsBody(BaseModel):
    username: str = Field(default="", description="At least 3 characters, no colon")
    password: str = Field(default="", description="At least 4 characters")


@router.get("/setup", response_model=SuccessResponse[SetupStatusSchema])
def setup_status(users: Users):
    return SuccessResponse(data=SetupStatusSchema(needs_setup=users.needs_setup()))


@router.post("/setup", response_model=SuccessResponse[UserSchema], status_code=201)
def setup(users: Users, body: CredentialsBody):
    """Create the first account.

    Raises:
        400 VALIDATION: Setup already completed, or invalid credentials.
    """
    user = users.setup(body.username, body.password)
    return SuccessResponse(data=UserSchema.from_user(user))


@router.post("/login", response_model=SuccessResponse[UserSchema])
def login(users: Users, body: CredentialsBody):
    user = users.authenticate(body.username, body.password)
    if user is None:
        raise AuthenticationError("Invalid credentials")
    return SuccessResponse(data=UserSchema.from_user(user))


@router.post("/logout", response_model=SuccessResponse[MessageSchema])
def logout():
    return SuccessResponse(data=MessageSchema(message="Logged out successfully"))


@router.get("/me", response_model=SuccessResponse[UserSchema])
def me(users: Users, username: CurrentUser):
    if username is None:
        raise AuthenticationError("Not authenticated")
    user = users.get(username)
    if user is None:
        raise NotFoundError("User not found", context={"username": username})
    return SuccessResponse(data=UserSchema.from_user(user))
