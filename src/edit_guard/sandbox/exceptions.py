"""Exceptions for sandboxed file edits."""


class SandboxError(Exception):
    """Base exception for all sandbox operations."""


class NoStagedEditError(SandboxError):
    """Raised when apply is called for a path with no staged edit."""


class NoBackupFoundError(SandboxError):
    """Raised when rollback is called for a path with no backup file."""


class RollbackFailedError(SandboxError):
    """Raised when a compensating restore or delete itself fails."""
