"""CLI entry point for edit-guard."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
from pathlib import Path

from edit_guard.agents.exceptions import AgentError
from edit_guard.models import ExecutionResult
from edit_guard.orchestrator.exceptions import OrchestratorError
from edit_guard.sandbox.exceptions import SandboxError

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_TASK_FAILED = 4
EXIT_UNEXPECTED = 5
EXIT_ROLLBACK_INCOMPLETE = 6
EXIT_KEYBOARD_INTERRUPT = 130

# Defaults
DEFAULT_TIMEOUT = 60
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "goal", "repo_path", "test_command", "timeout", "model",
    "llm_provider", "llm_fallback_provider", "allow_llm_fallback",
    "junit_report", "journal", "recover", "verbose", "dry_run", "output_json",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="edit-guard",
        description="Apply multi-step code changes, gated by the project's tests",
    )
    parser.add_argument("goal", type=str, nargs="?", default="", help="Goal to plan and execute")
    parser.add_argument(
        "repo_path", type=str, nargs="?", default=".", help="Path to the project root"
    )
    parser.add_argument(
        "--test-command",
        type=str,
        default="",
        help="Test command to run after each step (default: TEST_COMMAND or detected)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Test run timeout in seconds (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL,
        help=f"Model ID to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--llm-provider",
        type=str,
        default="auto",
        choices=("auto", "anthropic", "openai"),
        help="LLM provider for planning and generation: auto (default), anthropic, or openai",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default="",
        choices=("", "anthropic", "openai"),
        help="Optional fallback provider when the primary provider fails",
    )
    parser.add_argument(
        "--allow-llm-fallback",
        action="store_true",
        help="Fall back to the alternate provider when the primary provider fails",
    )
    parser.add_argument(
        "--junit-report",
        type=str,
        default="",
        help=(
            "JUnit XML report written by the test command, relative to the project "
            "root. When present it decides pass/fail instead of the output heuristic"
        ),
    )
    parser.add_argument(
        "--journal",
        action="store_true",
        help="Persist the rollback history so an interrupted task can be recovered",
    )
    parser.add_argument(
        "--recover",
        action="store_true",
        help="Roll back a task left behind in the journal, then exit",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    return parser


def validate_repo_path(raw_path: str) -> str:
    """Validate and resolve the repository path.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_executor(args: argparse.Namespace, repo_path: str):
    """Create the TaskExecutor and its collaborators from CLI arguments.

    Component imports are deferred so --help and --dry-run never build
    provider clients or the execution graph.
    """
    from edit_guard.agents.content_generator import LLMContentGenerator
    from edit_guard.agents.llm_client import LLMClient
    from edit_guard.agents.planner import LLMPlanner
    from edit_guard.agents.test_runner import TestRunner
    from edit_guard.orchestrator.executor import TaskExecutor
    from edit_guard.orchestrator.journal import HistoryJournal
    from edit_guard.sandbox import Sandbox

    interactive_fallback = sys.stdin.isatty()
    client = LLMClient(
        model=args.model,
        llm_provider=args.llm_provider,
        llm_fallback_provider=args.llm_fallback_provider or None,
        allow_fallback=args.allow_llm_fallback,
        allow_human_fallback=interactive_fallback,
    )
    sandbox = Sandbox()
    test_runner = TestRunner(
        sandbox,
        test_command=args.test_command or None,
        project_root=repo_path,
        timeout_seconds=args.timeout,
        junit_report_path=args.junit_report or None,
    )
    journal = HistoryJournal.in_directory(repo_path) if args.journal else None
    return TaskExecutor(
        planner=LLMPlanner(client),
        generator=LLMContentGenerator(client),
        sandbox=sandbox,
        test_runner=test_runner,
        journal=journal,
    )


def recover_task(repo_path: str) -> list[str]:
    """Roll back the task journaled in repo_path. Needs no LLM provider."""
    from edit_guard.orchestrator.journal import HistoryJournal
    from edit_guard.orchestrator.recovery import recover_from_journal

    return recover_from_journal(HistoryJournal.in_directory(repo_path))


def format_result_json(result: ExecutionResult) -> str:
    return json.dumps(result.model_dump(mode="json"), indent=2)


def print_result_human(result: ExecutionResult) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("edit-guard results")
    print(f"{'='*60}")

    status = "completed" if result.success else "failed"
    print(f"\nTask {status} ({result.phase.value})")
    print(f"Steps: {result.steps_completed}/{result.total_steps}")

    if result.skipped_steps:
        print(f"\nSkipped steps ({len(result.skipped_steps)}):")
        for step in result.skipped_steps:
            print(f"  - {step}")

    label = "Files modified" if result.success else "Files touched"
    print(f"\n{label}: {len(result.files_modified)}")
    for path in result.files_modified:
        print(f"  - {path}")

    if result.error:
        print(f"\nError: {result.error}")
    if not result.success:
        if result.rollback_performed:
            print("\nChanges were rolled back.")
        else:
            print("\nRollback incomplete. Inspect these files manually:")
            for failure in result.rollback_failures:
                print(f"  - {failure}")

    print(f"\n{'='*60}")


def determine_exit_code(result: ExecutionResult) -> int:
    if result.success:
        return EXIT_SUCCESS
    if not result.rollback_performed:
        return EXIT_ROLLBACK_INCOMPLETE
    return EXIT_TASK_FAILED


def print_config_human(config: dict) -> None:
    """Print configuration, restricted to the safe allowlist."""
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        repo_path = validate_repo_path(args.repo_path)
    except SystemExit as exc:
        return exc.code

    if not args.recover and not args.goal.strip():
        print("Error: a goal is required unless --recover is given.", file=sys.stderr)
        return EXIT_INVALID_INPUT

    config = {
        "goal": args.goal,
        "repo_path": repo_path,
        "test_command": args.test_command or "(auto)",
        "timeout": args.timeout,
        "model": args.model,
        "llm_provider": args.llm_provider,
        "llm_fallback_provider": args.llm_fallback_provider,
        "allow_llm_fallback": args.allow_llm_fallback,
        "junit_report": args.junit_report,
        "journal": args.journal,
        "recover": args.recover,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps(config, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    try:
        if args.recover:
            failures = recover_task(repo_path)
            for failure in failures:
                print(f"Failed to roll back {failure}", file=sys.stderr)
            return EXIT_ROLLBACK_INCOMPLETE if failures else EXIT_SUCCESS

        executor = create_executor(args, repo_path)
        result = executor.execute_task(goal=args.goal, cwd=repo_path)

        if args.output_json:
            print(format_result_json(result))
        else:
            print_result_human(result)

        return determine_exit_code(result)

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except (OrchestratorError, SandboxError) as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)
