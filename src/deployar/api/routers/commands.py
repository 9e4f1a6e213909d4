"""
Commands router — saved command templates and running them.

Endpoints:
    GET    /commands                 List saved commands (by name)
    POST   /commands                 Create a saved command (201)
    GET    /commands/{id}            Get one saved command
    PUT    /commands/{id}            Replace a saved command
    DELETE /commands/{id}            Delete a saved command
    POST   /commands/{id}/execute    Run a saved command (202)

Tags:
    deployar, api, commands, catalog

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Path
from pydantic import BaseModel, Field

from deployar.api.deps import Catalog, CurrentUser, Engine
from deployar.api.schemas.common import SuccessResponse
from deployar.api.schemas.domains import CommandSchema, ExecutionAcceptedSchema, MessageSchema
from deployar.core.errors import NotFoundError

router = APIRouter(prefix="/commands")


class CommandBody(BaseModel):
    """Request body for creating or replacing a saved command.

    Example:
        {
            "name": "deploy",
            "description": "Pull and restart",
            "workdir": "/srv/app",
            "command": "git pull && systemctl restart app",
            "tags": ["prod"]
        }
    """

    name: str = Field(default="", description="Display name (required)")
    description: str = Field(default="", description="Free text")
    workdir: str = Field(default="", description="Directory the command runs in")
    command: str = Field(default="", description="Shell command text")
    tags: list[str] | None = Field(default=None, description="Labels for filtering")


@router.get("", response_model=SuccessResponse[list[CommandSchema]])
def list_commands(catalog: Catalog):
    return SuccessResponse(data=[CommandSchema.from_template(t) for t in catalog.list_all()])


@router.post("", response_model=SuccessResponse[CommandSchema], status_code=201)
def create_command(catalog: Catalog, body: CommandBody):
    """Save a command template.

    Raises:
        400 VALIDATION: Missing name, blank workdir or command.
    """
    tpl = catalog.create(
        body.name,
        body.workdir,
        body.command,
        description=body.description,
        tags=body.tags,
    )
    return SuccessResponse(data=CommandSchema.from_template(tpl))


@router.get("/{command_id}", response_model=SuccessResponse[CommandSchema])
def get_command(catalog: Catalog, command_id: str = Path(..., description="Command id")):
    return SuccessResponse(data=CommandSchema.from_template(catalog.require(command_id)))


@router.put("/{command_id}", response_model=SuccessResponse[CommandSchema])
def update_command(catalog: Catalog, body: CommandBody, command_id: str = Path(..., description="Command id")):
    tpl = catalog.update(
        command_id,
        name=body.name,
        workdir=body.workdir,
        command=body.command,
        description=body.description,
        tags=body.tags,
    )
    return SuccessResponse(data=CommandSchema.from_template(tpl))


@router.delete("/{command_id}", response_model=SuccessResponse[MessageSchema])
def delete_command(catalog: Catalog, command_id: str = Path(..., description="Command id")):
    if not catalog.delete(command_id):
        raise NotFoundError("Command not found", context={"command_id": command_id})
    return SuccessResponse(data=MessageSchema(message="Command deleted successfully"))


@router.post(
    "/{command_id}/execute",
    response_model=SuccessResponse[ExecutionAcceptedSchema],
    status_code=202,
)
def execute_command(
    catalog: Catalog,
    engine: Engine,
    username: CurrentUser,
    command_id: str = Path(..., description="Command id"),
):
    """Run a saved command.

    The template's workdir, command and name are copied into the new
    execution record; later edits to the template do not affect it.
    """
    tpl = catalog.require(command_id)
    record = engine.submit(
        tpl.workdir,
        tpl.command,
        command_id=tpl.id,
        name=tpl.name,
        executed_by=username,
    )
    return SuccessResponse(
        data=ExecutionAcceptedSchema(execution_id=record.id, status=record.status.value),
    )
