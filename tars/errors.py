"""Error taxonomy shared by planning, apply, backup and restore."""

from __future__ import annotations

import errno


class TarsError(Exception):
    """Base class for every error raised by the tars package."""


# --- Path safety ---


class PathSecurityError(TarsError):
    """An untrusted path or name failed validation."""


class TraversalAttempt(PathSecurityError):
    """A path or name tries to climb out of its root."""


class EscapesRoot(PathSecurityError):
    """A joined path does not lie under the root it was joined to."""


class InvalidComponent(PathSecurityError):
    """A path component is empty, absolute, hidden or contains a null byte."""


class SymlinkNotAllowed(PathSecurityError):
    """An existing path on the way to a target is a symlink."""


# --- Filesystem ---


class FilesystemError(TarsError):
    """A read, write or delete failed. Wraps the underlying OSError."""

    def __init__(self, action: str, path, cause: OSError | None = None):
        self.action = action
        self.path = str(path)
        self.cause = cause
        detail = f": {cause.strerror or cause}" if cause is not None else ""
        super().__init__(f"Failed to {action} {self.path}{detail}")


class TargetExists(FilesystemError):
    """A Create target exists at apply time: the plan is stale."""

    def __init__(self, path):
        super().__init__("create", path, FileExistsError(errno.EEXIST, "File exists"))


# --- Planning / profiles ---


class PlanError(TarsError):
    """A diff plan could not be generated."""


class ProfileError(TarsError):
    """A profile could not be loaded or is internally inconsistent."""


# --- Backups ---


class BackupError(TarsError):
    """Base class for backup persistence and integrity errors."""


class BackupNotFound(BackupError):
    """The backup archive (or index entry) does not exist."""


class InvalidBackup(BackupError):
    """The backup archive exists but cannot be parsed or is malformed."""


class HashMismatch(BackupError):
    """Stored content no longer matches the hash recorded at backup time."""

    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"Hash mismatch for {path}: expected {expected}, got {actual}")


# --- Settings ---


class ConfigError(TarsError):
    """Settings could not be resolved."""
