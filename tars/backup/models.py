"""Backup data models and their JSON document form.

A backup records the state of every file an apply touched, before it was
touched. Each entry is one of two kinds:

- ``NewFile``: the path did not exist, so restoring means deleting it.
- ``ExistingFile``: the path existed with these exact bytes (and their
  SHA256), so restoring means writing them back.

Keeping the two apart avoids confusing "no prior content" with "an empty
file". Content is embedded in the JSON document as an array of byte values.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from tars.errors import InvalidBackup
from tars.utils.hashing import sha256_hex


@dataclass(frozen=True)
class NewFile:
    """A path that did not exist before the apply."""

    path: PurePosixPath

    @property
    def was_new(self) -> bool:
        return True


@dataclass(frozen=True)
class ExistingFile:
    """A path that existed before the apply, with its original bytes."""

    path: PurePosixPath
    content: bytes
    sha256: str

    @classmethod
    def capture(cls, path: str | PurePosixPath, content: bytes) -> ExistingFile:
        """Build an entry for ``content``, hashing it now."""
        return cls(path=PurePosixPath(path), content=content, sha256=sha256_hex(content))

    @property
    def was_new(self) -> bool:
        return False


BackupFile = NewFile | ExistingFile


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Backup:
    """Pre-apply state of every file an apply touched, in apply order."""

    project_id: uuid.UUID
    archive_path: Path
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    profile_id: uuid.UUID | None = None
    description: str | None = None
    files: list[BackupFile] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)

    def add_file(self, entry: BackupFile) -> None:
        self.files.append(entry)

    def record_new(self, path: str | PurePosixPath) -> NewFile:
        entry = NewFile(path=PurePosixPath(path))
        self.add_file(entry)
        return entry

    def record_existing(self, path: str | PurePosixPath, content: bytes) -> ExistingFile:
        entry = ExistingFile.capture(path, content)
        self.add_file(entry)
        return entry

    @property
    def is_empty(self) -> bool:
        return not self.files

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "profile_id": str(self.profile_id) if self.profile_id else None,
            "description": self.description,
            "archive_path": str(self.archive_path),
            "files": [_file_to_dict(f) for f in self.files],
            "created_at": self.created_at.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> Backup:
        """Rebuild a backup from its document form.

        Raises:
            InvalidBackup: A field is missing or malformed.
        """
        if not isinstance(data, dict):
            raise InvalidBackup("Backup document must be a JSON object")

        if "archive_path" in data and not isinstance(data["archive_path"], str):
            raise InvalidBackup("Backup 'archive_path' must be a string")
        if data.get("description") is not None and not isinstance(data["description"], str):
            raise InvalidBackup("Backup 'description' must be a string")

        try:
            files_data = data["files"]
            backup = cls(
                id=_parse_uuid(data["id"], "id"),
                project_id=_parse_uuid(data["project_id"], "project_id"),
                profile_id=(
                    _parse_uuid(data["profile_id"], "profile_id")
                    if data.get("profile_id")
                    else None
                ),
                description=data.get("description"),
                archive_path=Path(data["archive_path"]),
                created_at=_parse_datetime(data["created_at"]),
            )
        except KeyError as e:
            raise InvalidBackup(f"Backup is missing required field: {e.args[0]}") from None

        if not isinstance(files_data, list):
            raise InvalidBackup("Backup 'files' must be a list")
        for i, entry in enumerate(files_data):
            backup.add_file(_file_from_dict(entry, i))
        return backup

    @classmethod
    def from_json(cls, text: str) -> Backup:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidBackup(f"Failed to parse backup: {e}") from e
        return cls.from_dict(data)


def _file_to_dict(entry: BackupFile) -> dict:
    if isinstance(entry, NewFile):
        return {"path": entry.path.as_posix(), "original_content": None, "sha256": None}
    if isinstance(entry, ExistingFile):
        return {
            "path": entry.path.as_posix(),
            "original_content": list(entry.content),
            "sha256": entry.sha256,
        }
    raise TypeError(f"Unhandled backup entry: {entry!r}")


def _file_from_dict(data, index: int) -> BackupFile:
    if not isinstance(data, dict) or not isinstance(data.get("path"), str):
        raise InvalidBackup(f"files[{index}] must be an object with a string 'path'")

    path = PurePosixPath(data["path"])
    content = data.get("original_content")
    digest = data.get("sha256")

    if content is None and digest is None:
        return NewFile(path=path)
    if content is None or digest is None:
        raise InvalidBackup(
            f"files[{index}] ({path}): sha256 and original_content must be present together"
        )
    if not isinstance(digest, str):
        raise InvalidBackup(f"files[{index}] ({path}): sha256 must be a hex string")

    try:
        if not isinstance(content, list):
            raise TypeError(type(content).__name__)
        raw = bytes(content)
    except (TypeError, ValueError):
        raise InvalidBackup(
            f"files[{index}] ({path}): original_content must be an array of byte values"
        ) from None

    # The stored hash is kept as-is; verify_backup_integrity compares it.
    return ExistingFile(path=path, content=raw, sha256=digest)


def _parse_uuid(value, field_name: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidBackup(f"Invalid UUID for {field_name}: {value}") from None


def _parse_datetime(value) -> datetime:
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise InvalidBackup(f"Invalid created_at timestamp: {value}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
