"""Report models for process runs, test validation and task execution."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProcessOutput(BaseModel):
    model_config = ConfigDict(frozen=False)

    command: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int
    timed_out: bool = False
    cancelled: bool = False
    duration_seconds: float | None = None


class TestResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    success: bool
    output: str                    # Combined stdout + stderr
    error: str | None = None
    exit_code: int
    command: str = ""
    timed_out: bool = False
    cancelled: bool = False
    strict: bool = False           # True when a JUnit report decided success
    passed: int = 0
    failed: int = 0
    duration_seconds: float | None = None
    tested_at: datetime = Field(default_factory=datetime.now)


class GatedApplyResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    test_result: TestResult
    applied: bool


class TaskPhase(str, Enum):
    """Phases of the per-task state machine."""

    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ROLLED_BACK = "rolled_back"


class ExecutionResult(BaseModel):
    """Terminal summary of one execute_task call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    steps_completed: int
    total_steps: int
    files_modified: list[str] = Field(default_factory=list)
    error: str | None = None
    rollback_performed: bool = False
    phase: TaskPhase = TaskPhase.COMPLETED
    skipped_steps: list[str] = Field(default_factory=list)
    rollback_failures: list[str] = Field(default_factory=list)
