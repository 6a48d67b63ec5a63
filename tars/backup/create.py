"""Persist pre-apply state without mutating the project."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from tars.backup.models import Backup
from tars.diff.models import Create, Delete, DiffPlan, Modify
from tars.errors import FilesystemError
from tars.utils.paths import relative_to_root, safe_join

logger = logging.getLogger(__name__)

CLAUDE_DIR = ".claude"
CLAUDE_MD = "CLAUDE.md"


def new_archive_path(backup_dir: str | Path, prefix: str = "backup") -> Path:
    """Return a fresh, timestamped archive path inside ``backup_dir``."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return Path(backup_dir) / f"{prefix}-{stamp}-{uuid.uuid4().hex[:8]}.json"


def save_backup(backup: Backup) -> Path:
    """Write ``backup`` to its ``archive_path`` as JSON.

    Raises:
        FilesystemError: The archive could not be written.
    """
    path = Path(backup.archive_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(backup.to_json(), encoding="utf-8")
    except OSError as e:
        raise FilesystemError("write backup", path, e) from e

    logger.info("Backup %s written to %s (%d file(s))", backup.id, path, len(backup.files))
    return path


def create_backup(
    project_id: uuid.UUID,
    project_path: str | Path,
    plan: DiffPlan,
    backup_dir: str | Path,
) -> Backup:
    """Record the current state of every path ``plan`` touches and persist it.

    Unlike ``apply_operations`` this does not change the project; it is a
    standalone snapshot taken ahead of a review or a manual change.
    """
    project_path = Path(project_path)
    backup = Backup(
        project_id=project_id,
        archive_path=new_archive_path(backup_dir),
        profile_id=plan.profile_id,
        description=f"Backup before applying profile {plan.profile_id}",
    )

    for op in plan.operations:
        relative = relative_to_root(op.path, project_path)
        full_path = safe_join(project_path, relative)

        if isinstance(op, Create):
            backup.record_new(relative.as_posix())
        elif isinstance(op, (Modify, Delete)):
            if full_path.exists():
                backup.record_existing(relative.as_posix(), _read(full_path))
        else:
            raise TypeError(f"Unhandled file operation: {op!r}")

    save_backup(backup)
    return backup


def create_full_backup(
    project_id: uuid.UUID,
    project_path: str | Path,
    backup_dir: str | Path,
) -> Backup:
    """Snapshot CLAUDE.md and the whole ``.claude`` tree, independent of any plan.

    Symlinks inside ``.claude`` are skipped.
    """
    project_path = Path(project_path)
    backup = Backup(
        project_id=project_id,
        archive_path=new_archive_path(backup_dir, prefix="full-backup"),
        description="Full backup",
    )

    claude_md = project_path / CLAUDE_MD
    if claude_md.is_file() and not claude_md.is_symlink():
        backup.record_existing(CLAUDE_MD, _read(claude_md))

    claude_dir = project_path / CLAUDE_DIR
    if claude_dir.is_dir() and not claude_dir.is_symlink():
        _backup_directory(claude_dir, Path(CLAUDE_DIR), backup)

    save_backup(backup)
    return backup


def _backup_directory(directory: Path, relative_base: Path, backup: Backup) -> None:
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        raise FilesystemError("list", directory, e) from e

    for path in entries:
        relative = relative_base / path.name
        if path.is_symlink():
            logger.debug("Skipping symlink %s", path)
            continue
        if path.is_file():
            backup.record_existing(relative.as_posix(), _read(path))
        elif path.is_dir():
            _backup_directory(path, relative, backup)


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise FilesystemError("read", path, e) from e
