"""Task-related models: resolved steps and the compensation log."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StepOperation(str, Enum):
    """File operation a plan step performs."""

    EDIT = "edit"
    CREATE = "create"
    DELETE = "delete"


class ResolvedStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    file_path: str | None = None  # As written in the step, relative to cwd
    operation: StepOperation = StepOperation.EDIT

    @property
    def is_skippable(self) -> bool:
        """A step with no file target is skipped only when it would be an edit."""
        return self.file_path is None and self.operation == StepOperation.EDIT


class ExecutionHistoryEntry(BaseModel):
    """First-seen state of a file touched by the current task.

    An empty backup_path together with an empty original_content marks a file
    that did not exist before the task; rollback deletes it.

    created_dirs lists the missing parent directories, deepest first, that
    rollback removes again if they are empty.
    """

    model_config = ConfigDict(frozen=True)

    file: str
    backup_path: str = ""
    original_content: str = ""
    created_dirs: list[str] = Field(default_factory=list)

    @property
    def created_by_task(self) -> bool:
        return not self.backup_path and self.original_content == ""
