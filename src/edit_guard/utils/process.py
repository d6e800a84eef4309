"""Shell command execution with a timeout and cooperative cancellation."""

import os
import signal
import subprocess
import threading
import time

from edit_guard.models.report_models import ProcessOutput

POLL_INTERVAL_SECONDS = 0.1
TIMEOUT_EXIT_CODE = -1
CANCELLED_EXIT_CODE = -2


def run_shell_command(
    command: str,
    cwd: str,
    timeout_seconds: float,
    env: dict[str, str] | None = None,
    cancel_event: threading.Event | None = None,
) -> ProcessOutput:
    """Run a shell command and capture its output.

    The child is killed when the timeout expires or when cancel_event is set.
    Neither case raises; both are reported on the returned ProcessOutput.

    Args:
        command: Shell command line, e.g. "npm test".
        cwd: Working directory for the child process.
        timeout_seconds: Wall-clock limit for the whole run.
        env: Extra variables layered over the current environment.
        cancel_event: Optional event that aborts the run when set.

    Returns:
        ProcessOutput with stdout, stderr and exit code.
    """
    merged_env = {**os.environ, **(env or {})}
    started = time.monotonic()
    proc = subprocess.Popen(
        command,
        shell=True,
        cwd=cwd,
        env=merged_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
        start_new_session=os.name == "posix",
    )

    timed_out = False
    cancelled = False
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_SECONDS)
            break
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
            elif time.monotonic() - started >= timeout_seconds:
                timed_out = True
            else:
                continue
            _kill_process_group(proc)
            stdout, stderr = proc.communicate()
            break

    duration = time.monotonic() - started
    if timed_out:
        exit_code = TIMEOUT_EXIT_CODE
        stderr = (stderr or "") + f"\nCommand timed out after {timeout_seconds}s"
    elif cancelled:
        exit_code = CANCELLED_EXIT_CODE
        stderr = (stderr or "") + "\nCommand cancelled"
    else:
        exit_code = proc.returncode

    return ProcessOutput(
        command=command,
        stdout=stdout or "",
        stderr=stderr or "",
        exit_code=exit_code,
        timed_out=timed_out,
        cancelled=cancelled,
        duration_seconds=duration,
    )


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill the shell and anything it spawned, so the output pipes close."""
    if os.name != "posix":
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
