"""Models for staged edits and file diffs."""

from pydantic import BaseModel, ConfigDict


class EditRequest(BaseModel):
    """A pending change to a single file, held by the Sandbox until applied."""

    model_config = ConfigDict(frozen=False)

    file_path: str
    new_content: str
    reason: str | None = None


class LineChanges(BaseModel):
    model_config = ConfigDict(frozen=True)

    added: int = 0
    removed: int = 0
    modified: int = 0


class FileDiff(BaseModel):
    """Line-level diff between the on-disk and the proposed content of a file."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    old_content: str  # Source of truth for what was on disk
    new_content: str  # Source of truth for what will be written
    unified_diff_text: str  # Display only
    line_changes: LineChanges = LineChanges()
