"""Sandbox: stage edits in memory, apply them to disk, roll them back."""

import logging
import os
from pathlib import Path

from edit_guard.models import EditRequest, FileDiff
from edit_guard.sandbox.exceptions import NoBackupFoundError, NoStagedEditError
from edit_guard.utils.diff_generator import compute_file_diff
from edit_guard.utils.file_io import read_file, write_file

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


class Sandbox:
    """Holds at most one pending edit per file and applies it on request.

    The pending map is scoped to the instance. Staging a second edit for the
    same path replaces the first (last writer wins). Callers that share a
    working directory must not share a Sandbox across concurrent tasks.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding: str = encoding
        self._pending_edits: dict[str, EditRequest] = {}

    @staticmethod
    def _key(file_path: str) -> str:
        return os.path.abspath(file_path)

    @staticmethod
    def backup_path_for(file_path: str) -> str:
        return f"{file_path}{BACKUP_SUFFIX}"

    def _read_current(self, file_path: str) -> str:
        """Return on-disk content, or "" when the file does not exist yet."""
        try:
            return read_file(file_path, self.encoding)
        except FileNotFoundError:
            return ""

    def preview_edit(self, file_path: str, new_content: str) -> FileDiff:
        """Diff new_content against the file on disk without staging it."""
        old_content = self._read_current(file_path)
        return compute_file_diff(old_content, new_content, file_path)

    def stage_edit(self, request: EditRequest) -> FileDiff:
        """Record request as the pending edit for its path and return the diff."""
        diff = self.preview_edit(request.file_path, request.new_content)
        key = self._key(request.file_path)
        if key in self._pending_edits:
            logger.debug("Replacing staged edit for %s", request.file_path)
        self._pending_edits[key] = request
        return diff

    def has_staged_edit(self, file_path: str) -> bool:
        return self._key(file_path) in self._pending_edits

    def apply_edit(self, file_path: str, require_backup: bool = True) -> None:
        """Write the staged edit for file_path to disk.

        With require_backup, the current content is first copied to
        ``{file_path}.backup``. A missing file simply gets no backup.

        Raises:
            NoStagedEditError: If nothing is staged for file_path.
            OSError: On any other read or write failure.
        """
        key = self._key(file_path)
        edit = self._pending_edits.get(key)
        if edit is None:
            raise NoStagedEditError(f"No staged edit for {file_path}")

        target = Path(file_path)
        if require_backup:
            try:
                current_content = read_file(target, self.encoding)
            except FileNotFoundError:
                current_content = None
            if current_content is not None:
                write_file(self.backup_path_for(file_path), current_content, self.encoding)

        target.parent.mkdir(parents=True, exist_ok=True)
        write_file(target, edit.new_content, self.encoding)
        del self._pending_edits[key]

    def discard_edit(self, file_path: str) -> None:
        self._pending_edits.pop(self._key(file_path), None)

    def rollback(self, file_path: str) -> None:
        """Restore file_path from its backup and delete the backup.

        Raises:
            NoBackupFoundError: If ``{file_path}.backup`` does not exist.
        """
        backup = Path(self.backup_path_for(file_path))
        try:
            backup_content = read_file(backup, self.encoding)
        except FileNotFoundError as exc:
            raise NoBackupFoundError(f"No backup found for {file_path}") from exc

        write_file(file_path, backup_content, self.encoding)
        backup.unlink()
        self._pending_edits.pop(self._key(file_path), None)

    def staged_edits(self) -> list[EditRequest]:
        return list(self._pending_edits.values())

    def clear_staged_edits(self) -> None:
        self._pending_edits.clear()
