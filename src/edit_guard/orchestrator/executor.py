"""TaskExecutor: runs a planned, multi-step task with validation and rollback."""

import logging
import os
import threading

from edit_guard.agents.base import ContentGenerator, Planner
from edit_guard.agents.test_runner import TestRunner
from edit_guard.models import ExecutionHistoryEntry, ExecutionResult, TaskPhase
from edit_guard.orchestrator.exceptions import OrchestratorError
from edit_guard.orchestrator.graph import MAX_PLAN_STEPS, build_graph
from edit_guard.orchestrator.journal import HistoryJournal
from edit_guard.orchestrator.recovery import recover_from_journal, rollback_history
from edit_guard.orchestrator.state import make_initial_state
from edit_guard.sandbox import Sandbox

logger = logging.getLogger(__name__)

# One graph super-step per plan step, plus planning and the terminal node
RECURSION_LIMIT = MAX_PLAN_STEPS + 10


class TaskExecutor:
    """Executes multi-step tasks; every step is test-gated and undoable.

    The executor keeps its own ordered history of first-seen file states for
    the task in flight. Tasks on the same executor must run one at a time.
    """

    def __init__(
        self,
        planner: Planner,
        generator: ContentGenerator,
        sandbox: Sandbox,
        test_runner: TestRunner,
        journal: HistoryJournal | None = None,
    ) -> None:
        self.planner = planner
        self.generator = generator
        self.sandbox = sandbox
        self.test_runner = test_runner
        self.journal = journal
        self._history: list[ExecutionHistoryEntry] = []
        self._goal: str = ""
        self._cwd: str = ""
        self._graph = build_graph(
            planner=planner,
            generator=generator,
            sandbox=sandbox,
            test_runner=test_runner,
            on_history=self._record_history,
        )

    def _record_history(self, history: list[ExecutionHistoryEntry]) -> None:
        self._history = list(history)
        if self.journal is None:
            return
        if history:
            self.journal.save(self._goal, self._cwd, self._history)
        else:
            self.journal.clear()

    def execute_task(
        self,
        goal: str,
        cwd: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExecutionResult:
        """Plan goal, run every step, and roll everything back on failure.

        Args:
            goal: Natural-language goal for the planner.
            cwd: Project directory; defaults to the process working directory.
            cancel_event: Set it to stop before the next step or to kill the
                running test command. Cancellation rolls the task back.

        Returns:
            ExecutionResult. Check rollback_performed before assuming the
            working tree is back to its pre-task state.
        """
        self._goal = goal
        self._cwd = os.path.abspath(cwd or os.getcwd())
        self._history = []

        state = make_initial_state(goal=goal, cwd=self._cwd, cancel_event=cancel_event)
        try:
            final = self._graph.invoke(state, config={"recursion_limit": RECURSION_LIMIT})
        except (KeyboardInterrupt, Exception) as exc:
            logger.error(
                "Task aborted (%s); rolling back %d file(s)",
                type(exc).__name__, len(self._history),
            )
            failures = rollback_history(self._history, encoding=self.sandbox.encoding)
            if not failures:
                self._record_history([])
            self.sandbox.clear_staged_edits()
            raise

        self.sandbox.clear_staged_edits()
        self._history = []
        return ExecutionResult(
            success=final["phase"] == TaskPhase.COMPLETED,
            steps_completed=final["steps_completed"],
            total_steps=len(final["steps"]),
            files_modified=final["files_modified"],
            error=final["error"],
            rollback_performed=final["rollback_performed"],
            phase=final["phase"],
            skipped_steps=final["skipped_steps"],
            rollback_failures=final["rollback_failures"],
        )

    def recover(self) -> list[str]:
        """Roll back a task left behind in the journal by a crashed process.

        Returns:
            Per-file rollback failures; empty when everything was restored.

        Raises:
            OrchestratorError: If the executor has no journal.
        """
        if self.journal is None:
            raise OrchestratorError("No journal configured; nothing to recover from")
        return recover_from_journal(self.journal, encoding=self.sandbox.encoding)

    def get_history(self) -> list[ExecutionHistoryEntry]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history = []
