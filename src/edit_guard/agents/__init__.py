"""Agent components: collaborator contracts, validation gate and LLM adapters."""

from edit_guard.agents.exceptions import (
    AgentError,
    GenerationError,
    GoalValidationError,
    PlanningError,
    TestValidationError,
)
from edit_guard.agents.base import ContentGenerator, Planner, ProcessRunner
from edit_guard.agents.content_generator import LLMContentGenerator
from edit_guard.agents.llm_client import LLMClient
from edit_guard.agents.planner import LLMPlanner
from edit_guard.agents.test_runner import TestRunner

__all__ = [
    "AgentError",
    "ContentGenerator",
    "GenerationError",
    "GoalValidationError",
    "LLMClient",
    "LLMContentGenerator",
    "LLMPlanner",
    "Planner",
    "PlanningError",
    "ProcessRunner",
    "TestRunner",
    "TestValidationError",
]
