"""
Executions router — submit ad-hoc commands, read and prune execution history.

Endpoints:
    POST   /execute                  Run an ad-hoc command (202)
    GET    /executions               List executions, newest first
    GET    /executions/{id}          Get one execution
    DELETE /executions/{id}          Delete one execution
    POST   /executions/clear         Delete every execution

Manifesto:
    Submitting returns as soon as the record exists; clients poll
    ``GET /executions/{id}`` for the outcome.

Tags:
    deployar, api, executions

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query
from pydantic import BaseModel, Field

from deployar.api.deps import CurrentUser, Engine
from deployar.api.schemas.common import SuccessResponse
from deployar.api.schemas.domains import ExecutionAcceptedSchema, ExecutionSchema, MessageSchema
from deployar.core.errors import NotFoundError

router = APIRouter()


class ExecuteBody(BaseModel):
    """Request body for an ad-hoc execution.

    Example:
        {"workdir": "/srv/app", "command": "git pull && make deploy"}
    """

    workdir: str = Field(default="", description="Directory the command runs in")
    command: str = Field(default="", description="Shell command text, passed to `sh -c`")


@router.post("/execute", response_model=SuccessResponse[ExecutionAcceptedSchema], status_code=202)
def execute(engine: Engine, username: CurrentUser, body: ExecuteBody):
    """Start an ad-hoc command and return its execution id.

    Raises:
        400 VALIDATION: Blank command or workdir.
    """
    record = engine.submit(body.workdir, body.command, executed_by=username)
    return SuccessResponse(
        data=ExecutionAcceptedSchema(execution_id=record.id, status=record.status.value),
    )


@router.get("/executions", response_model=SuccessResponse[list[ExecutionSchema]])
def list_executions(
    engine: Engine,
    limit: int | None = Query(None, ge=0, description="Return at most this many (newest first)"),
):
    """List executions ordered by start time, newest first."""
    records = engine.list_all() if limit is None else engine.list_recent(limit)
    return SuccessResponse(data=[ExecutionSchema.from_record(r) for r in records])


@router.get("/executions/{execution_id}", response_model=SuccessResponse[ExecutionSchema])
def get_execution(engine: Engine, execution_id: str = Path(..., description="Execution id")):
    record = engine.get(execution_id)
    if record is None:
        raise NotFoundError("Execution not found", context={"execution_id": execution_id})
    return SuccessResponse(data=ExecutionSchema.from_record(record))


@router.delete("/executions/{execution_id}", response_model=SuccessResponse[MessageSchema])
def delete_execution(engine: Engine, execution_id: str = Path(..., description="Execution id")):
    if not engine.delete(execution_id):
        raise NotFoundError("Execution not found", context={"execution_id": execution_id})
    return SuccessResponse(data=MessageSchema(message="Execution deleted successfully"))


@router.post("/executions/clear", response_model=SuccessResponse[MessageSchema])
def clear_executions(engine: Engine):
    engine.clear()
    return SuccessResponse(data=MessageSchema(message="All executions cleared"))
