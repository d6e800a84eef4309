"""End-to-end tests for TaskExecutor with fake planner, generator and test command."""

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import FakeGenerator
from edit_guard.agents.exceptions import PlanningError
from edit_guard.models import ExecutionHistoryEntry, ProcessOutput, TaskPhase
from edit_guard.orchestrator.exceptions import OrchestratorError
from edit_guard.orchestrator.graph import MAX_PLAN_STEPS
from edit_guard.orchestrator.journal import HistoryJournal
from edit_guard.orchestrator.recovery import snapshot_file


ORIGINAL = {
    "a.js": "export const a = 1;\n",
    "b.js": "export const b = 2;\n",
    "c.js": "export const c = 3;\n",
}


def _assert_untouched(project_dir: Path) -> None:
    for name, content in ORIGINAL.items():
        assert (project_dir / "src" / name).read_text() == content
    leftovers = [p.name for p in (project_dir / "src").iterdir() if ".task-backup" in p.name]
    assert leftovers == []


# ---------------------------------------------------------------------------
# Success paths
# ---------------------------------------------------------------------------

def test_all_steps_pass(make_executor, project_dir):
    executor, runner = make_executor([
        "Edit src/a.js to add x",
        "Edit src/b.js to add y",
    ])

    result = executor.execute_task("add x and y", cwd=str(project_dir))

    assert result.success
    assert result.phase == TaskPhase.COMPLETED
    assert result.steps_completed == 2
    assert result.total_steps == 2
    assert result.files_modified == [
        str(project_dir / "src" / "a.js"),
        str(project_dir / "src" / "b.js"),
    ]
    assert not result.rollback_performed
    assert len(runner.calls) == 2
    assert (project_dir / "src" / "a.js").read_text().endswith("// Edit src/a.js to add x\n")
    # Backups are deleted once the task is committed
    assert not any(".task-backup" in p.name for p in (project_dir / "src").iterdir())
    assert executor.get_history() == []


def test_empty_plan_is_trivial_success(make_executor, project_dir):
    executor, runner = make_executor([])
    result = executor.execute_task("nothing to do", cwd=str(project_dir))
    assert result.success
    assert result.total_steps == 0
    assert result.steps_completed == 0
    assert runner.calls == []


def test_step_without_file_is_skipped(make_executor, project_dir):
    executor, runner = make_executor(["Run the test suite", "Edit src/a.js to add x"])

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert result.success
    assert result.skipped_steps == ["Run the test suite"]
    assert result.steps_completed == 1
    assert result.total_steps == 2
    assert len(runner.calls) == 1


def test_create_step_writes_new_file(make_executor, project_dir):
    generator = FakeGenerator({"Create src/logger.js with a log helper": "export const log = console.log;\n"})
    executor, _ = make_executor(["Create src/logger.js with a log helper"], generator=generator)

    result = executor.execute_task("add logger", cwd=str(project_dir))

    assert result.success
    assert (project_dir / "src" / "logger.js").read_text() == "export const log = console.log;\n"
    # Generator sees the new file as empty
    assert generator.calls[0][2] == ""


def test_delete_step_removes_file(make_executor, project_dir):
    executor, _ = make_executor(["Delete src/c.js"])
    result = executor.execute_task("drop c", cwd=str(project_dir))
    assert result.success
    assert not (project_dir / "src" / "c.js").exists()


def test_executor_is_reusable(make_executor, project_dir):
    executor, _ = make_executor(["Edit src/a.js to add x"])
    assert executor.execute_task("first", cwd=str(project_dir)).success
    assert executor.execute_task("second", cwd=str(project_dir)).success
    assert (project_dir / "src" / "a.js").read_text().count("// Edit src/a.js to add x") == 2


# ---------------------------------------------------------------------------
# All-or-nothing rollback
# ---------------------------------------------------------------------------

def test_failure_on_last_step_rolls_back_everything(make_executor, project_dir):
    executor, runner = make_executor(
        ["Edit src/a.js to add x", "Edit src/b.js to add y", "Edit src/c.js to add z"],
        outcomes=[0, 0, 1],
    )

    result = executor.execute_task("three edits", cwd=str(project_dir))

    assert not result.success
    assert result.phase == TaskPhase.ROLLED_BACK
    assert result.rollback_performed
    assert result.steps_completed == 2
    assert result.total_steps == 3
    assert 'Tests failed after step 3: "Edit src/c.js to add z"' in result.error
    assert len(result.files_modified) == 3
    assert len(runner.calls) == 3
    _assert_untouched(project_dir)


def test_repeated_edits_restore_first_seen_content(make_executor, project_dir):
    executor, _ = make_executor(
        ["Edit src/a.js to add x", "Edit src/a.js to add y", "Edit src/b.js to add z"],
        outcomes=[0, 0, 1],
    )

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.files_modified == [
        str(project_dir / "src" / "a.js"),
        str(project_dir / "src" / "b.js"),
    ]
    _assert_untouched(project_dir)


def test_created_file_is_removed_on_rollback(make_executor, project_dir):
    executor, _ = make_executor(
        ["Create src/helpers/log.js with a helper", "Edit src/a.js to use the helper"],
        outcomes=[0, 1],
    )

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.rollback_performed
    assert not (project_dir / "src" / "helpers" / "log.js").exists()
    assert not (project_dir / "src" / "helpers").exists()
    _assert_untouched(project_dir)


def test_deleted_file_is_restored_on_rollback(make_executor, project_dir):
    executor, _ = make_executor(["Delete src/c.js", "Edit src/a.js to stop importing c"], outcomes=[0, 1])
    result = executor.execute_task("goal", cwd=str(project_dir))
    assert not result.success
    _assert_untouched(project_dir)


def test_first_step_failure_stops_execution(make_executor, project_dir):
    generator = FakeGenerator()
    executor, runner = make_executor(
        ["Edit src/a.js to add x", "Edit src/b.js to add y"], outcomes=[1], generator=generator
    )

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.steps_completed == 0
    assert len(generator.calls) == 1
    assert len(runner.calls) == 1
    _assert_untouched(project_dir)


def test_generator_failure_rolls_back_earlier_steps(make_executor, project_dir):
    generator = FakeGenerator({"Edit src/b.js to add y": RuntimeError("model refused")})
    executor, _ = make_executor(["Edit src/a.js to add x", "Edit src/b.js to add y"], generator=generator)

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.error == "model refused"
    assert result.steps_completed == 1
    _assert_untouched(project_dir)


def test_unresolvable_create_aborts_task(make_executor, project_dir):
    executor, _ = make_executor(["Edit src/a.js to add x", "Create a logger module"])

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert "file path not found" in result.error
    _assert_untouched(project_dir)


def test_timeout_rolls_back(make_executor, project_dir):
    timed_out = ProcessOutput(command="npm test", exit_code=-1, timed_out=True)
    executor, _ = make_executor(["Edit src/a.js to add x"], outcomes=[timed_out])

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert "timed out" in result.error
    _assert_untouched(project_dir)


def test_planner_failure(make_executor, project_dir):
    class BrokenPlanner:
        def plan(self, goal):
            raise PlanningError("no plan")

    executor, runner = make_executor(BrokenPlanner())

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.total_steps == 0
    assert result.rollback_performed
    assert result.error == "Planning failed: no plan"
    assert runner.calls == []


def test_rollback_preserves_crlf_line_endings(make_executor, project_dir):
    a_path = project_dir / "src" / "a.js"
    a_path.write_bytes(b"export const a = 1;\r\nexport const b = 2;\r\n")
    executor, _ = make_executor(["Edit src/a.js to add x"], outcomes=[1])

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.rollback_performed
    assert a_path.read_bytes() == b"export const a = 1;\r\nexport const b = 2;\r\n"


def test_oversized_plan_fails_before_touching_files(make_executor, project_dir):
    generator = FakeGenerator()
    steps = ["Edit src/a.js to add x"] * (MAX_PLAN_STEPS + 1)
    executor, runner = make_executor(steps, generator=generator)

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert not result.success
    assert result.rollback_performed
    assert f"at most {MAX_PLAN_STEPS}" in result.error
    assert generator.calls == []
    assert runner.calls == []
    _assert_untouched(project_dir)


def test_longest_supported_plan_completes(make_executor, project_dir):
    executor, runner = make_executor(["Edit src/a.js to add x"] * MAX_PLAN_STEPS)

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert result.success
    assert result.steps_completed == MAX_PLAN_STEPS
    assert len(runner.calls) == MAX_PLAN_STEPS


def test_unexpected_error_rolls_back_and_propagates(make_executor, project_dir):
    executor, _ = make_executor([])
    a_path = project_dir / "src" / "a.js"

    def crash(state, config=None):
        executor._record_history(snapshot_file([], str(a_path)))
        a_path.write_text("half-written")
        raise RuntimeError("graph crashed")

    executor._graph = MagicMock()
    executor._graph.invoke.side_effect = crash

    with pytest.raises(RuntimeError, match="graph crashed"):
        executor.execute_task("goal", cwd=str(project_dir))

    _assert_untouched(project_dir)
    assert executor.get_history() == []


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

def test_cancel_before_start(make_executor, project_dir):
    cancel = threading.Event()
    cancel.set()
    generator = FakeGenerator()
    executor, _ = make_executor(["Edit src/a.js to add x"], generator=generator)

    result = executor.execute_task("goal", cwd=str(project_dir), cancel_event=cancel)

    assert not result.success
    assert "cancelled" in result.error
    assert generator.calls == []
    _assert_untouched(project_dir)


def test_cancel_between_steps(make_executor, project_dir):
    cancel = threading.Event()
    executor, _ = make_executor(
        ["Edit src/a.js to add x", "Edit src/b.js to add y"],
        on_run=lambda call_number: cancel.set(),
    )

    result = executor.execute_task("goal", cwd=str(project_dir), cancel_event=cancel)

    assert not result.success
    assert result.steps_completed == 1
    assert "before step 2" in result.error
    _assert_untouched(project_dir)


def test_cancel_during_test_run(make_executor, project_dir):
    cancelled = ProcessOutput(command="npm test", exit_code=-2, cancelled=True)
    executor, _ = make_executor(["Edit src/a.js to add x"], outcomes=[cancelled])

    result = executor.execute_task("goal", cwd=str(project_dir), cancel_event=threading.Event())

    assert not result.success
    assert "cancelled" in result.error
    _assert_untouched(project_dir)


# ---------------------------------------------------------------------------
# Journal and recovery
# ---------------------------------------------------------------------------

def test_journal_exists_only_while_task_runs(make_executor, project_dir, tmp_path):
    journal = HistoryJournal(str(tmp_path / "journal.json"))
    seen = []
    executor, _ = make_executor(
        ["Edit src/a.js to add x"],
        journal=journal,
        on_run=lambda call_number: seen.append(journal.load()),
    )

    result = executor.execute_task("goal", cwd=str(project_dir))

    assert result.success
    assert seen[0].goal == "goal"
    assert seen[0].history[0].file == str(project_dir / "src" / "a.js")
    assert not journal.exists()


def test_journal_cleared_after_rollback(make_executor, project_dir, tmp_path):
    journal = HistoryJournal(str(tmp_path / "journal.json"))
    executor, _ = make_executor(["Edit src/a.js to add x"], outcomes=[1], journal=journal)
    result = executor.execute_task("goal", cwd=str(project_dir))
    assert result.rollback_performed
    assert not journal.exists()


def test_recover_replays_journal(make_executor, project_dir, tmp_path):
    journal = HistoryJournal(str(tmp_path / "journal.json"))
    a_path = str(project_dir / "src" / "a.js")
    new_path = str(project_dir / "src" / "new.js")
    history = snapshot_file([], a_path)
    history = snapshot_file(history, new_path)
    journal.save("crashed goal", str(project_dir), history)
    # State left behind by a process that died mid-task
    Path(a_path).write_text("half-written")
    Path(new_path).write_text("orphan")

    executor, _ = make_executor([], journal=journal)
    failures = executor.recover()

    assert failures == []
    assert not journal.exists()
    assert not Path(new_path).exists()
    _assert_untouched(project_dir)


def test_recover_without_journal_record(make_executor, tmp_path):
    executor, _ = make_executor([], journal=HistoryJournal(str(tmp_path / "journal.json")))
    assert executor.recover() == []


def test_recover_requires_journal(make_executor):
    executor, _ = make_executor([])
    with pytest.raises(OrchestratorError):
        executor.recover()


def test_clear_history(make_executor):
    executor, _ = make_executor([])
    executor._history = [ExecutionHistoryEntry(file="/p/a.js")]
    executor.clear_history()
    assert executor.get_history() == []
