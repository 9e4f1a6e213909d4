"""Tests for ExecutionEngine: submit, background completion, housekeeping."""

from __future__ import annotations

import json
import threading

import pytest
from structlog.testing import capture_logs

from deployar.core.errors import DeployarError, PersistenceError, ValidationError
from deployar.core.settings import DeployarSettings
from deployar.core.storage import SnapshotFile
from deployar.execution.engine import ExecutionEngine, validate_command
from deployar.execution.models import ExecutionRecord, ExecutionStatus
from deployar.execution.store import ExecutionStore


def _run(engine: ExecutionEngine, workdir, command: str, **kwargs) -> ExecutionRecord:
    rec = engine.submit(str(workdir), command, **kwargs)
    assert engine.wait(rec.id, timeout=10)
    return engine.get(rec.id)


class TestValidateCommand:
    @pytest.mark.parametrize("command", ["", "   ", "\t\n"])
    def test_blank_command(self, command):
        with pytest.raises(ValidationError) as exc_info:
            validate_command("/tmp", command)
        assert exc_info.value.field == "command"
        assert exc_info.value.message == "Command cannot be empty"

    def test_blank_workdir(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_command("  ", "ls")
        assert exc_info.value.field == "workdir"

    def test_command_checked_first(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_command("", "")
        assert exc_info.value.field == "command"


class TestSubmitValidation:
    @pytest.mark.parametrize(("workdir", "command"), [("", "ls"), (" ", " "), ("/tmp", " ")])
    def test_blank_input_creates_nothing(self, engine, workdir, command):
        with pytest.raises(ValidationError):
            engine.submit(workdir, command)
        assert engine.list_all() == []
        assert engine.active_count() == 0
        assert not engine.store.path.exists()

    def test_initial_persist_failure_launches_nothing(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        engine = ExecutionEngine(ExecutionStore(SnapshotFile(blocker / "executions.json")))
        marker = tmp_path / "ran"
        try:
            with pytest.raises(PersistenceError):
                engine.submit(str(tmp_path), f"touch {marker}")
            assert engine.active_count() == 0
        finally:
            engine.shutdown(wait=True)
        assert not marker.exists()

    def test_submit_after_shutdown(self, engine):
        engine.shutdown()
        with pytest.raises(DeployarError, match="shut down"):
            engine.submit("/tmp", "true")

    def test_pool_closed_after_insert_finishes_record(self, store, tmp_path):
        engine = ExecutionEngine(store, max_workers=1)
        # Pool gone while the engine still accepts submissions
        engine._pool.shutdown(wait=True)

        rec = engine.submit(str(tmp_path), "true")
        assert engine.wait(rec.id, timeout=1)
        finished = engine.get(rec.id)
        assert finished.status == ExecutionStatus.FAILED
        assert finished.exit_code == 1
        assert finished.output.startswith("Error: ")
        assert engine.active_count() == 0
        persisted = json.loads(store.path.read_text(encoding="utf-8"))
        assert persisted[rec.id]["status"] == "failed"


@pytest.mark.posix
class TestBackgroundRun:
    def test_returns_running_immediately(self, tmp_path, store):
        engine = ExecutionEngine(store)
        try:
            rec = engine.submit(str(tmp_path), "sleep 5")
            assert rec.status == ExecutionStatus.RUNNING
            assert engine.get(rec.id).status == ExecutionStatus.RUNNING
            assert engine.active_count() == 1
            assert engine.wait(rec.id, timeout=0.05) is False
        finally:
            engine.shutdown(wait=False)

    def test_running_record_is_persisted_before_completion(self, tmp_path, store):
        engine = ExecutionEngine(store)
        try:
            rec = engine.submit(str(tmp_path), "sleep 5")
            persisted = json.loads(store.path.read_text(encoding="utf-8"))
            assert persisted[rec.id]["status"] == "running"
        finally:
            engine.shutdown(wait=False)

    def test_echo_success(self, engine, tmp_path):
        rec = _run(engine, tmp_path, "echo hello")
        assert rec.status == ExecutionStatus.SUCCESS
        assert rec.exit_code == 0
        assert rec.output == "hello\n"
        assert rec.ended_at is not None
        assert rec.duration is not None

    def test_nonzero_exit_is_failed(self, engine, tmp_path):
        rec = _run(engine, tmp_path, "echo oops >&2; exit 7")
        assert rec.status == ExecutionStatus.FAILED
        assert rec.exit_code == 7
        assert rec.output == "oops\n"

    def test_silent_success(self, engine, tmp_path):
        rec = _run(engine, tmp_path, "true")
        assert rec.status == ExecutionStatus.SUCCESS
        assert rec.output == ""

    def test_missing_workdir_recorded_as_failure(self, engine, tmp_path):
        rec = _run(engine, tmp_path / "does-not-exist", "echo hi")
        assert rec.status == ExecutionStatus.FAILED
        assert rec.exit_code == 1
        assert rec.output.startswith("Error: ")

    def test_missing_shell_recorded_as_failure(self, store, tmp_path):
        engine = ExecutionEngine(store, shell="no-such-shell-deployar")
        try:
            rec = _run(engine, tmp_path, "true")
        finally:
            engine.shutdown()
        assert rec.status == ExecutionStatus.FAILED
        assert rec.exit_code == 1
        assert rec.output.startswith("Error: ")

    def test_nul_byte_in_command_recorded_as_failure(self, engine, tmp_path):
        rec = _run(engine, tmp_path, "echo a\x00b")
        assert rec.status == ExecutionStatus.FAILED
        assert rec.exit_code == 1
        assert rec.output.startswith("Error: ")
        assert rec.ended_at is not None

    def test_nul_byte_in_workdir_recorded_as_failure(self, engine, tmp_path):
        rec = _run(engine, f"{tmp_path}\x00x", "true")
        assert rec.status == ExecutionStatus.FAILED
        assert rec.exit_code == 1
        assert rec.output.startswith("Error: ")

    def test_metadata_carried(self, engine, tmp_path):
        rec = _run(engine, tmp_path, "true", command_id="cmd-1", name="Deploy", executed_by="admin")
        assert rec.command_id == "cmd-1"
        assert rec.name == "Deploy"
        assert rec.executed_by == "admin"
        assert rec.workdir == str(tmp_path)
        assert rec.command == "true"

    def test_result_persisted(self, engine, store, tmp_path):
        rec = _run(engine, tmp_path, "echo saved")
        persisted = json.loads(store.path.read_text(encoding="utf-8"))[rec.id]
        assert persisted["status"] == "success"
        assert persisted["output"] == "saved\n"

    def test_runs_overlap(self, engine, tmp_path):
        # Each run waits for the other's marker, so both succeed only if concurrent
        def rendezvous(mine: str, theirs: str) -> str:
            return (
                f"touch {mine}; i=0; "
                f"while [ ! -f {theirs} ] && [ $i -lt 100 ]; do sleep 0.05; i=$((i+1)); done; "
                f"test -f {theirs}"
            )

        a = engine.submit(str(tmp_path), rendezvous("a", "b"))
        b = engine.submit(str(tmp_path), rendezvous("b", "a"))
        assert engine.wait(a.id, timeout=10)
        assert engine.wait(b.id, timeout=10)
        assert engine.get(a.id).status == ExecutionStatus.SUCCESS
        assert engine.get(b.id).status == ExecutionStatus.SUCCESS

    def test_many_concurrent_submissions(self, engine, tmp_path):
        submitted: dict[str, int] = {}
        ids_lock = threading.Lock()

        def submit(n: int) -> None:
            rec = engine.submit(str(tmp_path), f"sleep 0.0{n}; echo {n}; exit {n % 3}")
            with ids_lock:
                submitted[rec.id] = n

        threads = [threading.Thread(target=submit, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for rid in submitted:
            assert engine.wait(rid, timeout=10)

        assert len(submitted) == 10
        for rid, n in submitted.items():
            rec = engine.get(rid)
            assert rec.command == f"sleep 0.0{n}; echo {n}; exit {n % 3}"
            assert rec.output == f"{n}\n"
            assert rec.exit_code == n % 3
            expected = ExecutionStatus.SUCCESS if n % 3 == 0 else ExecutionStatus.FAILED
            assert rec.status == expected
        assert engine.store.count(ExecutionStatus.SUCCESS) == 4
        assert engine.active_count() == 0

    def test_terminal_state_observed_once(self, engine, tmp_path):
        rec = engine.submit(str(tmp_path), "sleep 0.2; echo x")
        observed: list[ExecutionRecord] = []
        while not engine.wait(rec.id, timeout=0.005):
            observed.append(engine.get(rec.id))
        for _ in range(20):
            observed.append(engine.get(rec.id))

        statuses = [r.status for r in observed]
        first_terminal = statuses.index(ExecutionStatus.SUCCESS)
        assert first_terminal > 0
        assert set(statuses[:first_terminal]) == {ExecutionStatus.RUNNING}
        assert set(statuses[first_terminal:]) == {ExecutionStatus.SUCCESS}

        for r in observed[:first_terminal]:
            assert r.exit_code is None
            assert r.ended_at is None
        final = observed[first_terminal]
        assert final.exit_code == 0
        assert final.output == "x\n"
        assert all(r.to_dict() == final.to_dict() for r in observed[first_terminal:])

    def test_deleted_while_running(self, engine, tmp_path):
        rec = engine.submit(str(tmp_path), "sleep 0.2")
        assert engine.delete(rec.id) is True
        assert engine.wait(rec.id, timeout=10)
        assert engine.get(rec.id) is None

    def test_pool_mode(self, store, tmp_path):
        engine = ExecutionEngine(store, max_workers=2)
        try:
            recs = [engine.submit(str(tmp_path), f"echo {i}") for i in range(5)]
            for rec in recs:
                assert engine.wait(rec.id, timeout=10)
        finally:
            engine.shutdown(wait=True)
        assert [engine.get(r.id).output for r in recs] == [f"{i}\n" for i in range(5)]


class TestQueries:
    def test_wait_unknown_id_is_true(self, engine):
        assert engine.wait("nope", timeout=0) is True

    def test_negative_limit_rejected(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.list_recent(-1)
        assert exc_info.value.field == "limit"

    @pytest.mark.posix
    def test_list_recent(self, engine, tmp_path):
        recs = [_run(engine, tmp_path, "true") for _ in range(3)]
        assert [r.id for r in engine.list_recent(2)] == [recs[2].id, recs[1].id]
        assert len(engine.list_recent(10)) == 3
        assert len(engine.list_all()) == 3

    @pytest.mark.posix
    def test_delete_and_clear(self, engine, tmp_path):
        a = _run(engine, tmp_path, "true")
        _run(engine, tmp_path, "true")
        assert engine.delete(a.id) is True
        assert engine.delete(a.id) is False
        assert engine.clear() == 1
        assert engine.list_all() == []


class TestLoad:
    def test_stale_running_records_are_reported(self, tmp_path):
        path = tmp_path / "executions.json"
        stale = ExecutionRecord.new("/tmp", "sleep 100")
        path.write_text(json.dumps({stale.id: stale.to_dict()}), encoding="utf-8")

        engine = ExecutionEngine(ExecutionStore(SnapshotFile(path)))
        with capture_logs() as logs:
            assert engine.load() == 1

        assert engine.get(stale.id).status == ExecutionStatus.RUNNING
        warnings = [e for e in logs if e["event"] == "stale_running_executions"]
        assert warnings and warnings[0]["count"] == 1

    def test_from_settings(self, tmp_path):
        settings = DeployarSettings(data_dir=tmp_path, max_concurrent_executions=3, shell="bash")
        engine = ExecutionEngine.from_settings(settings)
        try:
            assert engine.store.path == tmp_path / "executions.json"
            assert engine.list_all() == []
        finally:
            engine.shutdown()
