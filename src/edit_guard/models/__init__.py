"""Data models for edit_guard."""

from edit_guard.models.diff_models import EditRequest, FileDiff, LineChanges
from edit_guard.models.report_models import (
    ExecutionResult,
    GatedApplyResult,
    ProcessOutput,
    TaskPhase,
    TestResult,
)
from edit_guard.models.task_models import (
    ExecutionHistoryEntry,
    ResolvedStep,
    StepOperation,
)

__all__ = [
    "EditRequest",
    "ExecutionHistoryEntry",
    "ExecutionResult",
    "FileDiff",
    "GatedApplyResult",
    "LineChanges",
    "ProcessOutput",
    "ResolvedStep",
    "StepOperation",
    "TaskPhase",
    "TestResult",
]
