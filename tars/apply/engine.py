"""Apply engine — execute a diff plan, recording a backup entry before each write.

Operations run strictly in plan order so the backup's entry order is
deterministic. Each target path is re-validated against the project root
even though the planner already built it safely: a plan may have been
generated earlier, elsewhere, or edited in between.

There is no automatic rollback here. If an operation fails, the error is
raised at once and ``backup`` holds entries for every operation that
started; pass it to ``tars.backup.restore.restore_from_backup`` to undo.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tars.backup.models import Backup
from tars.diff.models import Create, Delete, DiffPlan, FileOperation, Modify
from tars.errors import FilesystemError, TargetExists
from tars.utils.paths import relative_to_root, safe_join

logger = logging.getLogger(__name__)


def apply_operations(plan: DiffPlan, project_root: str | Path, backup: Backup) -> int:
    """Apply every operation in ``plan`` under ``project_root``.

    Returns:
        The number of operations applied.

    Raises:
        PathSecurityError: An operation's path escapes ``project_root``.
        TargetExists: A file to be created appeared after planning. Nothing
            is written for that operation.
        FilesystemError: A read, write or delete failed.
    """
    project_root = Path(project_root)
    for operation in plan.operations:
        _apply_operation(operation, project_root, backup)
    logger.debug("Applied %d operation(s) to %s", len(plan.operations), project_root)
    return len(plan.operations)


def _apply_operation(operation: FileOperation, project_root: Path, backup: Backup) -> None:
    relative = relative_to_root(operation.path, project_root)
    full_path = safe_join(project_root, relative)
    rel_key = relative.as_posix()

    if isinstance(operation, Create):
        if full_path.exists():
            raise TargetExists(full_path)
        backup.record_new(rel_key)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(operation.content)
        except OSError as e:
            raise FilesystemError("create", full_path, e) from e
        logger.debug("created %s", rel_key)

    elif isinstance(operation, Modify):
        backup.record_existing(rel_key, _read_original(full_path))
        try:
            full_path.write_bytes(operation.new_content)
        except OSError as e:
            raise FilesystemError("write", full_path, e) from e
        logger.debug("modified %s", rel_key)

    elif isinstance(operation, Delete):
        backup.record_existing(rel_key, _read_original(full_path))
        try:
            full_path.unlink()
        except OSError as e:
            raise FilesystemError("delete", full_path, e) from e
        logger.debug("deleted %s", rel_key)

    else:
        raise TypeError(f"Unhandled file operation: {operation!r}")


def _read_original(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise FilesystemError("read", path, e) from e
