"""
Users router — manage accounts.

Endpoints:
    GET    /users              List users
    POST   /users              Create a user (201)
    DELETE /users/{username}   Delete a user (never the last one)

Tags:
    deployar, api, users

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Path

from deployar.api.deps import Users
from deployar.api.routers.auth import CredentialsBody
from deployar.api.schemas.common import SuccessResponse
from deployar.api.schemas.domains import MessageSchema, UserSchema

router = APIRouter(prefix="/users")


@router.get("", response_model=SuccessResponse[list[UserSchema]])
def list_users(users: Users):
    return SuccessResponse(data=[UserSchema.from_user(u) for u in users.list_all()])


@router.post("", response_model=SuccessResponse[UserSchema], status_code=201)
def create_user(users: Users, body: CredentialsBody):
    """Add an account.

    Raises:
        400 VALIDATION: Username or password too short, colon in username.
        409 CONFLICT: Username already taken.
    """
    user = users.create(body.username, body.password)
    return SuccessResponse(data=UserSchema.from_user(user))


@router.delete("/{username}", response_model=SuccessResponse[MessageSchema])
def delete_user(users: Users, username: str = Path(..., description="Username")):
    """Remove an account.

    Raises:
        404 NOT_FOUND: Unknown user.
        400 VALIDATION: It is the last remaining user.
    """
    users.delete(username)
    return SuccessResponse(data=MessageSchema(message="User deleted successfully"))
