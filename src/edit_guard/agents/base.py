"""Collaborator contracts consumed by the execution core."""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from edit_guard.models import ProcessOutput


@runtime_checkable
class Planner(Protocol):
    """Turns a goal into ordered, human-readable step descriptions."""

    def plan(self, goal: str) -> list[str]:
        """Return the steps for goal; an empty list is a legal plan."""


@runtime_checkable
class ContentGenerator(Protocol):
    """Produces full replacement content for one file."""

    def generate(self, file_path: str, instruction: str, current_content: str) -> str:
        """Return the complete new content of file_path."""


class ProcessRunner(Protocol):
    """Runs a shell command; see edit_guard.utils.process.run_shell_command."""

    def __call__(
        self,
        command: str,
        cwd: str,
        timeout_seconds: float,
        env: dict[str, str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ProcessOutput:
        ...
