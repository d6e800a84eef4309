"""Exceptions for agent operations."""


class AgentError(Exception):
    """Base exception for all agent operations."""


class PlanningError(AgentError):
    """Raised when a goal cannot be turned into a step list."""


class GoalValidationError(AgentError):
    """Raised when the input goal is empty, too long or potentially malicious."""


class GenerationError(AgentError):
    """Raised when replacement file content cannot be generated."""


class TestValidationError(AgentError):
    """Raised when the test command cannot be resolved or started."""
