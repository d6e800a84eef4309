"""LangGraph state machine for multi-step, test-gated task execution.

planning -> executing(step) -> completed | rolled_back
"""

import logging
from pathlib import Path
from typing import Callable

from langgraph.graph import END, START, StateGraph

from edit_guard.agents.base import ContentGenerator, Planner
from edit_guard.agents.test_runner import TestRunner
from edit_guard.models import (
    EditRequest,
    ExecutionHistoryEntry,
    StepOperation,
    TaskPhase,
    TestResult,
)
from edit_guard.orchestrator.exceptions import (
    GraphBuildError,
    TaskCancelledError,
    TestRunFailure,
    TestRunTimeout,
    UnresolvableStepTargetError,
)
from edit_guard.orchestrator.recovery import (
    discard_backups,
    rollback_history,
    snapshot_file,
)
from edit_guard.orchestrator.state import ExecutionState
from edit_guard.orchestrator.step_parser import resolve_step
from edit_guard.sandbox import Sandbox
from edit_guard.utils.diff_generator import format_diff_for_display
from edit_guard.utils.file_io import read_file, write_file

logger = logging.getLogger(__name__)

MAX_OUTPUT_IN_ERROR = 4000
# Each plan step is one graph super-step
MAX_PLAN_STEPS = 500

HistoryCallback = Callable[[list[ExecutionHistoryEntry]], None]


def _ignore_history(history: list[ExecutionHistoryEntry]) -> None:
    return None


def resolve_target_path(cwd: str, file_path: str) -> str:
    """Resolve file_path against cwd, refusing paths outside cwd.

    Raises:
        UnresolvableStepTargetError: If the path escapes the working directory.
    """
    root = Path(cwd).resolve()
    target = (root / file_path).resolve()
    if not target.is_relative_to(root):
        raise UnresolvableStepTargetError(
            f"Path '{file_path}' resolves outside of the working directory {cwd}"
        )
    return str(target)


def _failure_for(result: TestResult, step_number: int, step: str) -> TestRunFailure | TaskCancelledError:
    output = result.output
    if len(output) > MAX_OUTPUT_IN_ERROR:
        output = "..." + output[-MAX_OUTPUT_IN_ERROR:]
    message = (
        f'Tests failed after step {step_number}: "{step}"\n'
        f"{result.error or 'Test run failed'}\n"
        f"Test output:\n{output}"
    )
    if result.cancelled:
        return TaskCancelledError(f"Task cancelled during tests of step {step_number}")
    if result.timed_out:
        return TestRunTimeout(message)
    return TestRunFailure(message)


def make_plan_node(planner: Planner) -> Callable[[ExecutionState], dict]:
    """Factory: returns a node closure that asks the planner for steps.

    On error: returns {"error": str}; nothing has been touched yet.
    """

    def plan_node(state: ExecutionState) -> dict:
        logger.info('Planning task: "%s"', state["goal"])
        try:
            steps = [str(step) for step in planner.plan(state["goal"])]
        except Exception as exc:
            logger.error("Planning failed: %s", exc)
            return {"error": f"Planning failed: {exc}"}
        if len(steps) > MAX_PLAN_STEPS:
            logger.error("Plan has %d steps; at most %d are supported", len(steps), MAX_PLAN_STEPS)
            return {
                "error": f"Planning failed: plan has {len(steps)} steps, "
                f"at most {MAX_PLAN_STEPS} are supported",
            }

        logger.info("Execution plan (%d steps):", len(steps))
        for number, step in enumerate(steps, 1):
            logger.info("  %d. %s", number, step)
        return {"steps": steps, "phase": TaskPhase.EXECUTING}

    return plan_node


def make_execute_step_node(
    sandbox: Sandbox,
    generator: ContentGenerator,
    test_runner: TestRunner,
    on_history: HistoryCallback = _ignore_history,
) -> Callable[[ExecutionState], dict]:
    """Factory: returns a node closure that runs the step at step_index.

    The closure:
    1. Resolves the step to (path, operation); skips unresolvable edits
    2. Snapshots the target once per task and reports the new history
    3. Performs the edit/create/delete through the sandbox
    4. Runs the test suite; a failing run becomes a step failure

    On error: returns {"error": str, "history": ...} with every snapshot taken
    so far, so the rollback node can compensate.
    """

    def _edit(full_path: str, step: str) -> None:
        try:
            current = read_file(full_path, sandbox.encoding)
        except FileNotFoundError:
            current = ""
        new_content = generator.generate(full_path, step, current)
        diff = sandbox.stage_edit(
            EditRequest(file_path=full_path, new_content=new_content, reason=step)
        )
        try:
            # History already holds the snapshot, so no per-step backup
            sandbox.apply_edit(full_path, require_backup=False)
        except Exception:
            sandbox.discard_edit(full_path)
            raise
        logger.info("Edited: %s\n%s", full_path, format_diff_for_display(diff))

    def _create(full_path: str, step: str) -> None:
        target = Path(full_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        if not target.exists():
            write_file(target, "", sandbox.encoding)
        _edit(full_path, step)
        logger.info("Created: %s", full_path)

    def _delete(full_path: str) -> None:
        Path(full_path).unlink()
        sandbox.discard_edit(full_path)
        logger.info("Deleted: %s", full_path)

    def execute_step_node(state: ExecutionState) -> dict:
        steps = state["steps"]
        index = state["step_index"]
        step = steps[index]
        step_number = index + 1
        cancel_event = state["cancel_event"]

        history = list(state["history"])
        files_modified = list(state["files_modified"])
        skipped_steps = list(state["skipped_steps"])

        logger.info("Executing step %d/%d: %s", step_number, len(steps), step)
        try:
            if cancel_event is not None and cancel_event.is_set():
                raise TaskCancelledError(f"Task cancelled before step {step_number}")

            resolved = resolve_step(step)
            if resolved.is_skippable:
                logger.warning("Could not extract file from step: %s. Skipping step...", step)
                skipped_steps.append(step)
                return {"step_index": index + 1, "skipped_steps": skipped_steps}
            if resolved.file_path is None:
                raise UnresolvableStepTargetError(
                    f"Cannot {resolved.operation.value} file: "
                    f"file path not found in step: {step}"
                )

            full_path = resolve_target_path(state["cwd"], resolved.file_path)
            updated = snapshot_file(history, full_path, encoding=sandbox.encoding)
            if updated is not history:
                history = updated
                on_history(history)

            if resolved.operation == StepOperation.CREATE:
                _create(full_path, step)
            elif resolved.operation == StepOperation.DELETE:
                _delete(full_path)
            else:
                _edit(full_path, step)

            if full_path not in files_modified:
                files_modified.append(full_path)

            logger.info("Step completed, running tests...")
            test_result = test_runner.run_tests(state["cwd"], cancel_event=cancel_event)
            if not test_result.success:
                raise _failure_for(test_result, step_number, step)
            logger.info("Tests passed")

            return {
                "step_index": index + 1,
                "steps_completed": state["steps_completed"] + 1,
                "history": history,
                "files_modified": files_modified,
                "skipped_steps": skipped_steps,
            }
        except Exception as exc:
            logger.error("Error in step %d: %s", step_number, exc)
            return {
                "error": str(exc),
                "history": history,
                "files_modified": files_modified,
                "skipped_steps": skipped_steps,
            }

    return execute_step_node


def make_finish_node(on_history: HistoryCallback = _ignore_history) -> Callable[[ExecutionState], dict]:
    """Factory: returns a node closure that closes out a successful task.

    Deletes the snapshot backups; the compensation log is no longer needed.
    """

    def finish_node(state: ExecutionState) -> dict:
        discard_backups(state["history"])
        on_history([])
        logger.info(
            "Task completed successfully! Steps: %d/%d, files modified: %d",
            state["steps_completed"], len(state["steps"]), len(state["files_modified"]),
        )
        return {"phase": TaskPhase.COMPLETED}

    return finish_node


def make_rollback_node(
    encoding: str = "utf-8",
    on_history: HistoryCallback = _ignore_history,
) -> Callable[[ExecutionState], dict]:
    """Factory: returns a node closure that replays history in reverse.

    The history is only reported as cleared when every file was restored;
    otherwise it stays available for a later recovery attempt.
    """

    def rollback_node(state: ExecutionState) -> dict:
        logger.error("Task execution failed: %s", state["error"])
        failures = rollback_history(state["history"], encoding=encoding)
        if not failures:
            on_history([])
        return {
            "phase": TaskPhase.ROLLED_BACK,
            "rollback_performed": not failures,
            "rollback_failures": failures,
        }

    return rollback_node


def route_after_plan(state: ExecutionState) -> str:
    """Router for the post-plan conditional edge: "failed", "done" or "execute"."""
    if state["error"] is not None:
        return "failed"
    if not state["steps"]:
        return "done"
    return "execute"


def route_after_step(state: ExecutionState) -> str:
    """Router for the post-step conditional edge: "failed", "continue" or "done"."""
    if state["error"] is not None:
        return "failed"
    if state["step_index"] < len(state["steps"]):
        return "continue"
    return "done"


def build_graph(
    planner: Planner,
    generator: ContentGenerator,
    sandbox: Sandbox,
    test_runner: TestRunner,
    on_history: HistoryCallback = _ignore_history,
):
    """Build and compile the execution StateGraph.

    Edge topology:
      START -> plan_node -> conditional(route_after_plan)
          -> {execute_step_node, finish_node, rollback_node}
      execute_step_node -> conditional(route_after_step)
          -> {execute_step_node, finish_node, rollback_node}
      finish_node -> END
      rollback_node -> END

    Args:
        planner: Produces the step list.
        generator: Produces replacement file content.
        sandbox: Stages and applies edits.
        test_runner: Validation gate run after every mutating step.
        on_history: Called with the new history whenever it changes.

    Returns:
        CompiledStateGraph ready to invoke.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(ExecutionState)

        graph.add_node("plan_node", make_plan_node(planner))
        graph.add_node(
            "execute_step_node",
            make_execute_step_node(sandbox, generator, test_runner, on_history),
        )
        graph.add_node("finish_node", make_finish_node(on_history))
        graph.add_node("rollback_node", make_rollback_node(sandbox.encoding, on_history))

        graph.add_edge(START, "plan_node")
        graph.add_conditional_edges(
            "plan_node",
            route_after_plan,
            {
                "execute": "execute_step_node",
                "done": "finish_node",
                "failed": "rollback_node",
            },
        )
        graph.add_conditional_edges(
            "execute_step_node",
            route_after_step,
            {
                "continue": "execute_step_node",
                "done": "finish_node",
                "failed": "rollback_node",
            },
        )
        graph.add_edge("finish_node", END)
        graph.add_edge("rollback_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build execution graph: {exc}") from exc
