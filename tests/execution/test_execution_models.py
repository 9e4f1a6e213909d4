"""Tests for ExecutionRecord and the status state machine."""

from __future__ import annotations

from datetime import timedelta

import pytest

from deployar.execution.models import (
    EXECUTION_VALID_TRANSITIONS,
    ExecutionRecord,
    ExecutionStatus,
    InvalidTransitionError,
    validate_transition,
)


class TestExecutionStatus:
    def test_values(self):
        assert ExecutionStatus.RUNNING.value == "running"
        assert ExecutionStatus.SUCCESS.value == "success"
        assert ExecutionStatus.FAILED.value == "failed"

    def test_terminal(self):
        assert not ExecutionStatus.RUNNING.is_terminal
        assert ExecutionStatus.SUCCESS.is_terminal
        assert ExecutionStatus.FAILED.is_terminal

    def test_terminal_states_have_no_exits(self):
        for status in (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED):
            assert EXECUTION_VALID_TRANSITIONS[status] == frozenset()

    @pytest.mark.parametrize("target", [ExecutionStatus.SUCCESS, ExecutionStatus.FAILED])
    def test_running_can_finish(self, target):
        validate_transition(ExecutionStatus.RUNNING, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ExecutionStatus.SUCCESS, ExecutionStatus.RUNNING),
            (ExecutionStatus.FAILED, ExecutionStatus.SUCCESS),
            (ExecutionStatus.RUNNING, ExecutionStatus.RUNNING),
        ],
    )
    def test_illegal_transitions(self, current, target):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(current, target)
        assert exc_info.value.current == current.value
        assert exc_info.value.target == target.value


class TestExecutionRecord:
    def test_new_is_running_and_unfinished(self):
        rec = ExecutionRecord.new("/srv/app", "make deploy", executed_by="admin")
        assert rec.status == ExecutionStatus.RUNNING
        assert rec.output == ""
        assert rec.exit_code is None
        assert rec.ended_at is None
        assert rec.duration is None
        assert rec.executed_by == "admin"
        assert rec.started_at.tzinfo is not None

    def test_new_ids_are_unique(self):
        ids = {ExecutionRecord.new("/tmp", "true").id for _ in range(50)}
        assert len(ids) == 50

    def test_finish_zero_is_success(self):
        rec = ExecutionRecord.new("/tmp", "true")
        rec.finish(exit_code=0, output="ok\n", ended_at=rec.started_at + timedelta(seconds=1.5))
        assert rec.status == ExecutionStatus.SUCCESS
        assert rec.exit_code == 0
        assert rec.output == "ok\n"
        assert rec.duration == "1.50s"

    @pytest.mark.parametrize("code", [1, 7, 127, -9])
    def test_finish_nonzero_is_failed(self, code):
        rec = ExecutionRecord.new("/tmp", "false")
        rec.finish(exit_code=code, output="")
        assert rec.status == ExecutionStatus.FAILED
        assert rec.exit_code == code
        assert rec.ended_at >= rec.started_at

    def test_finish_twice_rejected(self):
        rec = ExecutionRecord.new("/tmp", "true")
        rec.finish(exit_code=0, output="first")
        with pytest.raises(InvalidTransitionError):
            rec.finish(exit_code=1, output="second")
        assert rec.output == "first"
        assert rec.status == ExecutionStatus.SUCCESS


class TestSerialization:
    def test_running_record_omits_unset_fields(self):
        d = ExecutionRecord.new("/tmp", "ls").to_dict()
        assert set(d) == {"id", "workdir", "command", "status", "output", "started_at"}
        assert d["status"] == "running"

    def test_finished_record_round_trips(self):
        rec = ExecutionRecord.new("/tmp", "ls", command_id="c1", name="List", executed_by="bob")
        rec.finish(exit_code=2, output="no such file")
        back = ExecutionRecord.from_dict(rec.to_dict())
        assert back == rec

    def test_exit_code_zero_is_kept(self):
        rec = ExecutionRecord.new("/tmp", "true")
        rec.finish(exit_code=0, output="")
        assert rec.to_dict()["exit_code"] == 0

    def test_from_dict_defaults_output(self):
        rec = ExecutionRecord.from_dict(
            {
                "id": "x",
                "workdir": "/tmp",
                "command": "true",
                "status": "running",
                "started_at": "2026-01-01T00:00:00+00:00",
            }
        )
        assert rec.output == ""
        assert rec.command_id is None
