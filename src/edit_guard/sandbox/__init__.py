"""Staged-edit sandbox with backup and restore."""

from edit_guard.sandbox.exceptions import (
    NoBackupFoundError,
    NoStagedEditError,
    RollbackFailedError,
    SandboxError,
)
from edit_guard.sandbox.sandbox import BACKUP_SUFFIX, Sandbox

__all__ = [
    "BACKUP_SUFFIX",
    "NoBackupFoundError",
    "NoStagedEditError",
    "RollbackFailedError",
    "Sandbox",
    "SandboxError",
]
