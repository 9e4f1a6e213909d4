"""API request/response schemas."""

from deployar.api.schemas.common import ErrorDetail, ProblemDetail, SuccessResponse
from deployar.api.schemas.domains import (
    EXECUTION_STARTED_MESSAGE,
    CommandSchema,
    ExecutionAcceptedSchema,
    ExecutionSchema,
    MessageSchema,
    SetupStatusSchema,
    UserSchema,
)

__all__ = [
    "EXECUTION_STARTED_MESSAGE",
    "CommandSchema",
    "ErrorDetail",
    "ExecutionAcceptedSchema",
    "ExecutionSchema",
    "MessageSchema",
    "ProblemDetail",
    "SetupStatusSchema",
    "SuccessResponse",
    "UserSchema",
]
