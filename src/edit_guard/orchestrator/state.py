"""State definition for the task execution graph."""

import threading
from typing import TypedDict

from edit_guard.models import ExecutionHistoryEntry, TaskPhase


class ExecutionState(TypedDict):
    """State for one execute_task run.

    All fields use default overwrite semantics; nodes return full new lists.
    """

    # Input
    goal: str
    cwd: str
    cancel_event: threading.Event | None

    # Planning
    phase: TaskPhase
    steps: list[str]

    # Execution
    step_index: int
    steps_completed: int
    files_modified: list[str]
    skipped_steps: list[str]

    # Compensation log, in first-mutation order
    history: list[ExecutionHistoryEntry]

    # Outcome
    error: str | None
    rollback_performed: bool
    rollback_failures: list[str]


def make_initial_state(
    goal: str,
    cwd: str,
    cancel_event: threading.Event | None = None,
) -> ExecutionState:
    """Create the initial state for a task.

    Args:
        goal: The goal handed to the planner.
        cwd: Absolute path of the project the steps operate on.
        cancel_event: Optional event that stops the task when set.

    Returns:
        ExecutionState with all fields initialised to defaults.
    """
    return {
        "goal": goal,
        "cwd": cwd,
        "cancel_event": cancel_event,
        "phase": TaskPhase.PLANNING,
        "steps": [],
        "step_index": 0,
        "steps_completed": 0,
        "files_modified": [],
        "skipped_steps": [],
        "history": [],
        "error": None,
        "rollback_performed": False,
        "rollback_failures": [],
    }
