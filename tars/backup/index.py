"""Local file-based backup index.

A simple catalog of persisted backups so they can be found again by id or by
project. Stores one summary per backup in ``<data_dir>/backups/index.json``;
the backup itself always lives in its own archive file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from tars.backup.models import Backup
from tars.backup.restore import load_backup
from tars.errors import BackupNotFound, FilesystemError, InvalidBackup

logger = logging.getLogger(__name__)


@dataclass
class BackupSummary:
    """Index entry for one persisted backup."""

    id: str
    project_id: str
    project_path: str
    archive_path: str
    created_at: str  # ISO 8601
    file_count: int = 0
    profile_id: str | None = None
    description: str | None = None


class BackupIndex:
    """JSON index of the backups under a data directory."""

    INDEX_FILE = "index.json"

    def __init__(self, backup_dir: str | Path):
        self.backup_dir = Path(backup_dir)
        self.index_path = self.backup_dir / self.INDEX_FILE
        self._index: dict[str, dict] = self._load_index()

    def register(self, backup: Backup, project_path: str | Path) -> BackupSummary:
        """Add a persisted backup to the index."""
        summary = BackupSummary(
            id=str(backup.id),
            project_id=str(backup.project_id),
            project_path=str(Path(project_path).resolve()),
            archive_path=str(backup.archive_path),
            created_at=backup.created_at.isoformat(),
            file_count=len(backup.files),
            profile_id=str(backup.profile_id) if backup.profile_id else None,
            description=backup.description,
        )
        self._index[summary.id] = _summary_to_dict(summary)
        self._save_index()
        logger.info("Registered backup %s for %s", summary.id, summary.project_path)
        return summary

    def get(self, backup_id: str) -> BackupSummary | None:
        data = self._index.get(str(backup_id))
        return _dict_to_summary(data) if data else None

    def load(self, backup_id: str) -> Backup:
        """Load the full backup behind an index entry.

        Raises:
            BackupNotFound: Unknown id, or the archive has gone missing.
            InvalidBackup: The archive cannot be parsed.
        """
        summary = self.get(backup_id)
        if summary is None:
            raise BackupNotFound(f"No backup with id {backup_id}")
        return load_backup(summary.archive_path)

    def list_all(self) -> list[BackupSummary]:
        """All entries, newest first."""
        entries = [_dict_to_summary(d) for d in self._index.values()]
        entries.sort(key=lambda s: s.created_at, reverse=True)
        return entries

    def list_for_project(self, project_path: str | Path) -> list[BackupSummary]:
        """Entries for one project, newest first."""
        resolved = str(Path(project_path).resolve())
        return [s for s in self.list_all() if s.project_path == resolved]

    def find_latest_project_id(self, project_path: str | Path) -> str | None:
        """Project id used by the most recent backup of ``project_path``, if any."""
        entries = self.list_for_project(project_path)
        return entries[0].project_id if entries else None

    def _load_index(self) -> dict[str, dict]:
        if not self.index_path.exists():
            return {}
        try:
            with open(self.index_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidBackup(f"Backup index {self.index_path} is corrupt: {e}") from e
        except OSError as e:
            raise FilesystemError("read", self.index_path, e) from e
        if not isinstance(data, dict):
            raise InvalidBackup(f"Backup index {self.index_path} is corrupt")
        return data

    def _save_index(self):
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            with open(self.index_path, "w", encoding="utf-8") as f:
                json.dump(self._index, f, indent=2)
        except OSError as e:
            raise FilesystemError("write", self.index_path, e) from e


def _summary_to_dict(summary: BackupSummary) -> dict:
    return {
        "id": summary.id,
        "project_id": summary.project_id,
        "project_path": summary.project_path,
        "archive_path": summary.archive_path,
        "created_at": summary.created_at,
        "file_count": summary.file_count,
        "profile_id": summary.profile_id,
        "description": summary.description,
    }


def _dict_to_summary(data: dict) -> BackupSummary:
    return BackupSummary(
        id=data["id"],
        project_id=data["project_id"],
        project_path=data.get("project_path", ""),
        archive_path=data["archive_path"],
        created_at=data.get("created_at", ""),
        file_count=data.get("file_count", 0),
        profile_id=data.get("profile_id"),
        description=data.get("description"),
    )
