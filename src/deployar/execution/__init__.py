"""
Asynchronous command execution.

Manifesto:
    Launch a shell command, hand back a ``running`` record at once, and let
    the background run write the result into the same record exactly once.

Architecture:
    ::

        engine.py   ExecutionEngine, validate_command
        store.py    ExecutionStore (locked mapping + snapshot persistence)
        shell.py    run_shell, combine_output
        models.py   ExecutionRecord, ExecutionStatus, transitions

Tags:
    deployar, execution

Doc-Types:
    api-reference
"""

from deployar.execution.engine import ExecutionEngine, validate_command
from deployar.execution.models import (
    EXECUTION_VALID_TRANSITIONS,
    ExecutionRecord,
    ExecutionStatus,
    InvalidTransitionError,
    validate_transition,
)
from deployar.execution.shell import ShellResult, combine_output, run_shell
from deployar.execution.store import ExecutionStore

__all__ = [
    "EXECUTION_VALID_TRANSITIONS",
    "ExecutionEngine",
    "ExecutionRecord",
    "ExecutionStatus",
    "ExecutionStore",
    "InvalidTransitionError",
    "ShellResult",
    "combine_output",
    "run_shell",
    "validate_command",
    "validate_transition",
]
