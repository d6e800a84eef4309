"""Task orchestration: step resolution, execution graph and rollback."""

from edit_guard.orchestrator.exceptions import (
    GraphBuildError,
    OrchestratorError,
    StepFailureError,
    TaskCancelledError,
    TestRunFailure,
    TestRunTimeout,
    UnresolvableStepTargetError,
)
from edit_guard.orchestrator.executor import TaskExecutor
from edit_guard.orchestrator.graph import build_graph
from edit_guard.orchestrator.journal import HistoryJournal
from edit_guard.orchestrator.state import ExecutionState, make_initial_state
from edit_guard.orchestrator.step_parser import resolve_step

__all__ = [
    "ExecutionState",
    "GraphBuildError",
    "HistoryJournal",
    "OrchestratorError",
    "StepFailureError",
    "TaskCancelledError",
    "TaskExecutor",
    "TestRunFailure",
    "TestRunTimeout",
    "UnresolvableStepTargetError",
    "build_graph",
    "make_initial_state",
    "resolve_step",
]
