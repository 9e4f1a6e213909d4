"""Health endpoints for process supervisors and load balancers.

Endpoints (no prefix, no auth):
    GET /health          Service status plus execution counts
    GET /health/ready    503 when the data directory is not writable
    GET /health/live     Always 200 while the process runs
"""

from __future__ import annotations

import os
import time
from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from deployar import __version__
from deployar.api.deps import Engine, Settings
from deployar.core.settings import DeployarSettings
from deployar.core.timestamps import utcnow
from deployar.execution.engine import ExecutionEngine
from deployar.execution.models import ExecutionStatus

# Set when the module is first imported
_START_TIME = time.monotonic()

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"] = "healthy"
    service: str = "deployar"
    version: str = __version__
    uptime_s: float = Field(default_factory=lambda: round(time.monotonic() - _START_TIME, 1))
    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())
    data_dir_writable: bool = True
    executions_total: int = 0
    executions_running: int = 0


class LivenessResponse(BaseModel):
    status: str = "alive"


def _data_dir_writable(settings: DeployarSettings) -> bool:
    data_dir = settings.data_dir
    target = data_dir if data_dir.exists() else data_dir.parent
    return os.access(target, os.W_OK)


def _snapshot(engine: ExecutionEngine, settings: DeployarSettings) -> HealthResponse:
    store = engine.store
    writable = _data_dir_writable(settings)
    return HealthResponse(
        status="healthy" if writable else "unhealthy",
        data_dir_writable=writable,
        executions_total=store.count(),
        executions_running=store.count(ExecutionStatus.RUNNING),
    )


@router.get("", response_model=HealthResponse)
def health(engine: Engine, settings: Settings) -> HealthResponse:
    """Primary health — always 200, reports problems in the body."""
    return _snapshot(engine, settings)


@router.get("/ready", response_model=HealthResponse)
def readiness(engine: Engine, settings: Settings) -> JSONResponse:
    """Readiness probe — 503 if records cannot be persisted."""
    body = _snapshot(engine, settings)
    code = 200 if body.status == "healthy" else 503
    return JSONResponse(content=body.model_dump(), status_code=code)


@router.get("/live", response_model=LivenessResponse)
def liveness() -> LivenessResponse:
    return LivenessResponse()
