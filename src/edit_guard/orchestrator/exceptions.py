"""Exceptions for orchestrator operations.

Note: Names chosen to avoid collisions with stdlib and framework exceptions.
"""


class OrchestratorError(Exception):
    """Base exception for all orchestrator operations."""


class GraphBuildError(OrchestratorError):
    """Raised when graph construction fails."""


class StepFailureError(OrchestratorError):
    """Raised when a plan step fails; always triggers a task rollback."""


class UnresolvableStepTargetError(StepFailureError):
    """Raised when a create/delete step names no usable file path."""


class TestRunFailure(StepFailureError):
    """Raised when the validation test run after a step does not pass."""


class TestRunTimeout(TestRunFailure):
    """Raised when the validation test run exceeded its timeout."""


class TaskCancelledError(StepFailureError):
    """Raised when the caller cancelled the task between or during steps."""
