"""LLM-backed planner: turns a goal into ordered step descriptions."""

import json
import logging
import re

from edit_guard.agents.exceptions import AgentError, GoalValidationError, PlanningError
from edit_guard.agents.llm_client import LLMClient

logger = logging.getLogger(__name__)

MAX_GOAL_LENGTH = 2000
MAX_STEPS = 50
PLAN_MAX_TOKENS = 2048

_INJECTION_SUBSTRINGS = [
    "ignore previous",
    "ignore above",
    "ignore all",
    "disregard previous",
    "disregard all",
    "system prompt",
    "you are now",
    "new instructions",
    "override instructions",
]

# "1. ", "2) ", "- ", "* " at the start of a line
_LIST_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[-*])\s+")
_JSON_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)


class LLMPlanner:
    """Asks the model for a JSON array of step strings."""

    def __init__(self, client: LLMClient, rules: str | None = None) -> None:
        self.client = client
        self.rules = rules

    def plan(self, goal: str) -> list[str]:
        """Return the ordered steps for goal.

        Raises:
            GoalValidationError: If goal is empty, too long or looks like an
                injection attempt.
            PlanningError: If the model call fails or returns no steps.
        """
        self._validate_goal(goal)
        prompt = self._build_prompt(goal)
        try:
            response = self.client.complete(prompt, max_tokens=PLAN_MAX_TOKENS)
        except AgentError as exc:
            raise PlanningError(f"Planning failed: {exc}") from exc

        steps = parse_plan_response(response)
        if not steps:
            raise PlanningError("Planner returned no steps")
        if len(steps) > MAX_STEPS:
            raise PlanningError(f"Too many steps returned ({len(steps)} > {MAX_STEPS})")
        logger.info("Planned %d step(s) for goal", len(steps))
        return steps

    def _validate_goal(self, goal: str) -> None:
        if not goal or not goal.strip():
            raise GoalValidationError("Goal must not be empty")
        if len(goal) > MAX_GOAL_LENGTH:
            raise GoalValidationError(
                f"Goal exceeds {MAX_GOAL_LENGTH} characters ({len(goal)})"
            )
        lowered = goal.lower()
        for marker in _INJECTION_SUBSTRINGS:
            if marker in lowered:
                raise GoalValidationError(
                    f"Goal contains a disallowed instruction pattern: '{marker}'"
                )

    def _build_prompt(self, goal: str) -> str:
        rules_section = f"\nRules: {self.rules}\n" if self.rules else ""
        return f"""You are a coding assistant. Break this task into steps.

Task: {goal}
{rules_section}
Each step must start with one of these forms and name exactly one file:
- "Edit <path> to ..."
- "Create <path> ..."
- "Update <path>: ..."
- "In <path>, ..."
- "Delete <path> ..."
Steps that do not change a file (for example "Run the test suite") are allowed.

Output a JSON array of strings and nothing else."""


def parse_plan_response(response: str) -> list[str]:
    """Parse steps from a model reply.

    Prefers a JSON array of strings; otherwise treats each non-empty line as
    a step, with list markers stripped.
    """
    match = _JSON_ARRAY_RE.search(response)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list) and all(isinstance(item, str) for item in data):
            return [item.strip() for item in data if item.strip()]

    steps = []
    for line in response.splitlines():
        stripped = _LIST_MARKER_RE.sub("", line).strip()
        if stripped and not stripped.startswith("```"):
            steps.append(stripped)
    return steps
