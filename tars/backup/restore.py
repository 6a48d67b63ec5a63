"""Restore — replay a backup to undo an apply byte-for-byte.

Entries are replayed in stored order. A file that was created by the apply
is deleted; a file that existed gets its original bytes written back. The
same code path undoes both a complete apply and one that failed halfway,
since a partial apply leaves a backup holding exactly the entries it got
through.

Always run ``verify_backup_integrity`` before trusting a backup loaded from
disk: archives are plain files and can be damaged or edited.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tars.backup.models import Backup, ExistingFile, NewFile
from tars.errors import BackupNotFound, FilesystemError, HashMismatch, InvalidBackup
from tars.utils.hashing import sha256_hex
from tars.utils.paths import safe_join

logger = logging.getLogger(__name__)


def restore_from_backup(project_path: str | Path, backup: Backup) -> int:
    """Restore every entry of ``backup`` under ``project_path``.

    Returns:
        The number of entries replayed.

    Raises:
        PathSecurityError: An entry's path is unsafe.
        FilesystemError: A delete or write failed. Entries already restored
            stay restored.
    """
    project_path = Path(project_path)

    for entry in backup.files:
        target = safe_join(project_path, entry.path)

        if isinstance(entry, NewFile):
            if target.exists():
                try:
                    target.unlink()
                except OSError as e:
                    raise FilesystemError("delete", target, e) from e
                _remove_empty_dirs(target.parent, project_path)
            logger.debug("restored %s (removed)", entry.path)
        elif isinstance(entry, ExistingFile):
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(entry.content)
            except OSError as e:
                raise FilesystemError("restore", target, e) from e
            logger.debug("restored %s (%d bytes)", entry.path, len(entry.content))
        else:
            raise TypeError(f"Unhandled backup entry: {entry!r}")

    logger.info("Restored %d file(s) from backup %s", len(backup.files), backup.id)
    return len(backup.files)


def verify_restore(project_path: str | Path, backup: Backup) -> None:
    """Check that a restore could run, without changing anything.

    Raises:
        PathSecurityError: An entry's path is unsafe.
        FilesystemError: A directory an original file goes back into is not writable.
    """
    project_path = Path(project_path)

    for entry in backup.files:
        target = safe_join(project_path, entry.path)
        if isinstance(entry, NewFile):
            continue

        parent = target.parent
        if parent.exists() and not os.access(parent, os.W_OK):
            raise FilesystemError(
                "write to", parent, PermissionError(f"Cannot write to directory: {parent}")
            )


def verify_backup_integrity(backup: Backup) -> None:
    """Recompute the SHA256 of every stored original and compare it.

    Raises:
        HashMismatch: For the first entry whose content no longer matches.
    """
    mismatches = find_integrity_mismatches(backup)
    if mismatches:
        raise mismatches[0]


def find_integrity_mismatches(backup: Backup) -> list[HashMismatch]:
    """Return one ``HashMismatch`` per damaged entry, in stored order."""
    mismatches = []
    for entry in backup.files:
        if not isinstance(entry, ExistingFile):
            continue
        actual = sha256_hex(entry.content)
        if actual != entry.sha256:
            mismatches.append(HashMismatch(entry.path.as_posix(), entry.sha256, actual))
    return mismatches


def load_backup(archive_path: str | Path) -> Backup:
    """Load a persisted backup.

    Raises:
        BackupNotFound: No archive at ``archive_path``.
        InvalidBackup: The archive cannot be read or parsed.
    """
    path = Path(archive_path)
    if not path.is_file():
        raise BackupNotFound(str(path))

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidBackup(f"Failed to read backup {path}: {e}") from e

    return Backup.from_json(text)


def _remove_empty_dirs(directory: Path, boundary: Path) -> None:
    """Remove now-empty directories from ``directory`` up to, not including, ``boundary``.

    Cosmetic: failures are ignored.
    """
    current = directory
    while current != boundary and current.is_relative_to(boundary):
        try:
            if any(current.iterdir()):
                return
            current.rmdir()
        except OSError:
            return
        current = current.parent
