"""Compensation log helpers: snapshot files before mutation, roll them back.

All functions take and return plain history lists; the executor owns the
list for the duration of one task.
"""

import logging
import time
from pathlib import Path

from edit_guard.models import ExecutionHistoryEntry
from edit_guard.orchestrator.journal import HistoryJournal
from edit_guard.utils.file_io import read_file, write_file

logger = logging.getLogger(__name__)

TASK_BACKUP_SUFFIX = ".task-backup"


def find_history_entry(
    history: list[ExecutionHistoryEntry],
    file_path: str,
) -> ExecutionHistoryEntry | None:
    for entry in history:
        if entry.file == file_path:
            return entry
    return None


def _missing_parents(target: Path) -> list[str]:
    """Parent directories of target that do not exist yet, deepest first."""
    missing = []
    parent = target.parent
    while not parent.exists() and parent != parent.parent:
        missing.append(str(parent))
        parent = parent.parent
    return missing


def snapshot_file(
    history: list[ExecutionHistoryEntry],
    file_path: str,
    encoding: str = "utf-8",
) -> list[ExecutionHistoryEntry]:
    """Record the first-seen state of file_path.

    If the task already snapshotted file_path the history is returned
    unchanged, so an intermediate state never replaces the original one.
    Existing files are also copied to a timestamped sibling backup file.

    Returns:
        The history list with at most one new entry appended.
    """
    if find_history_entry(history, file_path) is not None:
        return history

    target = Path(file_path)
    try:
        content = read_file(target, encoding)
    except FileNotFoundError:
        logger.info("No existing file at %s; it will be removed on rollback", file_path)
        entry = ExecutionHistoryEntry(file=file_path, created_dirs=_missing_parents(target))
        return [*history, entry]

    backup_path = f"{file_path}{TASK_BACKUP_SUFFIX}-{int(time.time() * 1000)}"
    write_file(backup_path, content, encoding)
    logger.info("Backed up %s", file_path)
    return [
        *history,
        ExecutionHistoryEntry(
            file=file_path,
            backup_path=backup_path,
            original_content=content,
        ),
    ]


def _remove_empty_dirs(dirs: list[str]) -> None:
    for directory in dirs:
        path = Path(directory)
        if not path.is_dir() or any(path.iterdir()):
            return
        path.rmdir()
        logger.info("Removed directory %s", directory)


def rollback_entry(entry: ExecutionHistoryEntry, encoding: str = "utf-8") -> None:
    """Undo every change the task made to entry.file.

    Order of preference: restore from the backup file, delete a file the task
    created, rewrite the recorded original content. Content is restored
    byte for byte, line endings included.
    """
    target = Path(entry.file)
    backup = Path(entry.backup_path) if entry.backup_path else None

    if backup is not None and backup.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
        write_file(target, read_file(backup, encoding), encoding)
        backup.unlink()
        logger.info("Restored %s", entry.file)
    elif entry.created_by_task:
        if target.exists():
            target.unlink()
            logger.info("Removed %s", entry.file)
        _remove_empty_dirs(entry.created_dirs)
    else:
        target.parent.mkdir(parents=True, exist_ok=True)
        write_file(target, entry.original_content, encoding)
        logger.info("Restored %s", entry.file)


def rollback_history(
    history: list[ExecutionHistoryEntry],
    encoding: str = "utf-8",
) -> list[str]:
    """Roll back every entry in reverse order, best effort.

    A failure on one file is logged and collected; the remaining files are
    still rolled back.

    Returns:
        One "path: error" message per file that could not be rolled back.
    """
    if not history:
        return []

    logger.info("Rolling back %d file(s)...", len(history))
    failures: list[str] = []
    for entry in reversed(history):
        try:
            rollback_entry(entry, encoding=encoding)
        except (OSError, ValueError) as exc:
            logger.error("Failed to rollback %s: %s", entry.file, exc)
            failures.append(f"{entry.file}: {exc}")
    return failures


def discard_backups(history: list[ExecutionHistoryEntry]) -> None:
    """Delete the snapshot backup files of a task that completed."""
    for entry in history:
        if not entry.backup_path:
            continue
        try:
            Path(entry.backup_path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete backup %s: %s", entry.backup_path, exc)


def recover_from_journal(journal: HistoryJournal, encoding: str = "utf-8") -> list[str]:
    """Roll back a task left behind in journal by a crashed process.

    The journal is cleared only when every file was restored.

    Returns:
        Per-file rollback failures; empty when everything was restored.
    """
    record = journal.load()
    if record is None:
        logger.info("No interrupted task found in %s", journal.path)
        return []

    logger.info('Recovering interrupted task "%s" in %s', record.goal, record.cwd)
    failures = rollback_history(record.history, encoding=encoding)
    if not failures:
        journal.clear()
    return failures
