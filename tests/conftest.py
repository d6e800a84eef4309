import pytest

from edit_guard.agents.test_runner import TestRunner
from edit_guard.models import ProcessOutput
from edit_guard.orchestrator.executor import TaskExecutor
from edit_guard.sandbox import Sandbox


class FakeProcessRunner:
    """Stands in for run_shell_command; replays scripted outputs in order.

    Each scripted item is either a ProcessOutput or an int exit code. Once the
    script runs out, every further run passes.
    """

    def __init__(self, outcomes=None, on_run=None):
        self.outcomes = list(outcomes or [])
        self.on_run = on_run
        self.calls = []

    def __call__(self, command, cwd, timeout_seconds, env=None, cancel_event=None):
        self.calls.append({
            "command": command,
            "cwd": cwd,
            "timeout_seconds": timeout_seconds,
            "env": env,
            "cancel_event": cancel_event,
        })
        if self.on_run is not None:
            self.on_run(len(self.calls))
        outcome = self.outcomes.pop(0) if self.outcomes else 0
        if isinstance(outcome, ProcessOutput):
            return outcome
        stdout = "Tests  1 passed (1)\n" if outcome == 0 else "FAIL src/app.test.js\n"
        return ProcessOutput(command=command, stdout=stdout, exit_code=outcome)


class FakePlanner:
    def __init__(self, steps):
        self.steps = list(steps)
        self.goals = []

    def plan(self, goal):
        self.goals.append(goal)
        return list(self.steps)


class FakeGenerator:
    """Returns "<current>// <instruction>\\n" unless a response is scripted."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def generate(self, file_path, instruction, current_content):
        self.calls.append((file_path, instruction, current_content))
        if instruction in self.responses:
            response = self.responses[instruction]
            if isinstance(response, Exception):
                raise response
            return response
        return f"{current_content}// {instruction}\n"


@pytest.fixture
def project_dir(tmp_path):
    """A small project with three source files."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "a.js").write_text("export const a = 1;\n")
    (root / "src" / "b.js").write_text("export const b = 2;\n")
    (root / "src" / "c.js").write_text("export const c = 3;\n")
    return root.resolve()


@pytest.fixture
def sandbox():
    return Sandbox()


@pytest.fixture
def make_executor(sandbox, project_dir):
    """Build a TaskExecutor wired to fakes; returns (executor, runner)."""

    def _make(steps, outcomes=None, generator=None, journal=None, on_run=None):
        runner = FakeProcessRunner(outcomes, on_run=on_run)
        test_runner = TestRunner(
            sandbox,
            test_command="npm test",
            project_root=str(project_dir),
            process_runner=runner,
        )
        executor = TaskExecutor(
            planner=steps if hasattr(steps, "plan") else FakePlanner(steps),
            generator=generator or FakeGenerator(),
            sandbox=sandbox,
            test_runner=test_runner,
            journal=journal,
        )
        return executor, runner

    return _make
