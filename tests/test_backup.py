"""Tests for backup models, creation, integrity, restore and the index."""

import json
import os
import tempfile
import uuid
from pathlib import Path

import pytest

from tars.apply.engine import apply_operations
from tars.backup.create import create_backup, create_full_backup, new_archive_path, save_backup
from tars.backup.index import BackupIndex
from tars.backup.models import Backup, ExistingFile, NewFile
from tars.backup.restore import (
    find_integrity_mismatches,
    load_backup,
    restore_from_backup,
    verify_backup_integrity,
    verify_restore,
)
from tars.diff.models import Create, Delete, DiffPlan, Modify
from tars.errors import BackupNotFound, HashMismatch, InvalidBackup, TraversalAttempt
from tars.utils.hashing import sha256_hex


def _backup(tmpdir: str, **kwargs) -> Backup:
    return Backup(project_id=uuid.uuid4(), archive_path=Path(tmpdir) / "b.json", **kwargs)


# --- Models ---


def test_sha256_hex_known_value():
    assert sha256_hex(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_backup_json_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup = _backup(tmpdir, profile_id=uuid.uuid4(), description="before apply")
        backup.record_new(".claude/skills/s/SKILL.md")
        backup.record_existing("CLAUDE.md", b"\x00\xffbinary")

        restored = Backup.from_json(backup.to_json())

        assert restored.id == backup.id
        assert restored.project_id == backup.project_id
        assert restored.profile_id == backup.profile_id
        assert restored.description == "before apply"
        assert restored.created_at == backup.created_at
        assert restored.files == backup.files


def test_backup_document_shape():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup = _backup(tmpdir)
        backup.record_new("new.md")
        backup.record_existing("CLAUDE.md", b"AB")

        data = json.loads(backup.to_json())
        assert data["files"][0] == {"path": "new.md", "original_content": None, "sha256": None}
        assert data["files"][1]["original_content"] == [65, 66]
        assert data["files"][1]["sha256"] == sha256_hex(b"AB")
        assert data["profile_id"] is None


def test_empty_existing_file_is_not_new():
    entry = ExistingFile.capture("empty.md", b"")
    assert not entry.was_new
    assert NewFile(path=entry.path).was_new


def test_from_dict_requires_paired_hash_and_content():
    base = {
        "id": str(uuid.uuid4()),
        "project_id": str(uuid.uuid4()),
        "archive_path": "/tmp/b.json",
        "created_at": "2024-01-01T00:00:00Z",
    }
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "files": [{"path": "a", "original_content": [1], "sha256": None}]})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "files": [{"path": "a", "original_content": None, "sha256": "ab"}]})


def test_from_dict_rejects_malformed_documents():
    base = {
        "id": str(uuid.uuid4()),
        "project_id": str(uuid.uuid4()),
        "archive_path": "/tmp/b.json",
        "created_at": "2024-01-01T00:00:00+00:00",
        "files": [],
    }
    assert Backup.from_dict(base).is_empty

    with pytest.raises(InvalidBackup):
        Backup.from_dict({k: v for k, v in base.items() if k != "files"})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "id": "not-a-uuid"})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "created_at": "yesterday"})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "files": [{"path": "a", "original_content": "text", "sha256": "x"}]})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "files": [{"path": "a", "original_content": [300], "sha256": "x"}]})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "archive_path": None})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "archive_path": 42})
    with pytest.raises(InvalidBackup):
        Backup.from_dict({**base, "description": ["not", "text"]})
    with pytest.raises(InvalidBackup):
        Backup.from_json("{not json")


def test_load_backup_with_null_archive_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "b.json"
        document = {
            "id": str(uuid.uuid4()),
            "project_id": str(uuid.uuid4()),
            "archive_path": None,
            "created_at": "2024-01-01T00:00:00Z",
            "files": [],
        }
        path.write_text(json.dumps(document))

        with pytest.raises(InvalidBackup):
            load_backup(path)


# --- Integrity ---


def test_integrity_passes_for_fresh_backup():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup = _backup(tmpdir)
        backup.record_existing("CLAUDE.md", b"original")
        backup.record_new("new.md")

        verify_backup_integrity(backup)
        assert find_integrity_mismatches(backup) == []


def test_tampered_content_fails_integrity():
    with tempfile.TemporaryDirectory() as tmpdir:
        backup = _backup(tmpdir)
        backup.record_existing("CLAUDE.md", b"original")
        save_backup(backup)

        data = json.loads(backup.archive_path.read_text())
        data["files"][0]["original_content"][0] ^= 0xFF
        backup.archive_path.write_text(json.dumps(data))

        loaded = load_backup(backup.archive_path)
        with pytest.raises(HashMismatch) as exc_info:
            verify_backup_integrity(loaded)

        assert exc_info.value.path == "CLAUDE.md"
        assert exc_info.value.expected == sha256_hex(b"original")
        assert len(find_integrity_mismatches(loaded)) == 1


def test_tampering_one_entry_reports_only_that_path():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        root = Path(tmpdir)
        commands = root / ".claude" / "commands"
        commands.mkdir(parents=True)
        (commands / "deploy.md").write_text("old deploy")
        (commands / "retired.md").write_text("retired")

        plan = DiffPlan(
            project_id=uuid.uuid4(),
            profile_id=uuid.uuid4(),
            operations=[
                Create(path=root / ".claude" / "agents" / "new.md", content=b"agent"),
                Modify(path=commands / "deploy.md", diff="", new_content=b"new deploy"),
                Delete(path=commands / "retired.md"),
            ],
        )
        backup = Backup(project_id=plan.project_id, archive_path=new_archive_path(store))
        apply_operations(plan, root, backup)
        save_backup(backup)

        data = json.loads(backup.archive_path.read_text())
        data["files"][1]["original_content"][0] ^= 0xFF
        backup.archive_path.write_text(json.dumps(data))

        loaded = load_backup(backup.archive_path)
        mismatches = find_integrity_mismatches(loaded)

        assert [m.path for m in mismatches] == [".claude/commands/deploy.md"]
        with pytest.raises(HashMismatch):
            verify_backup_integrity(loaded)


# --- Persistence ---


def test_load_backup_missing():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(BackupNotFound):
            load_backup(Path(tmpdir) / "nope.json")


def test_load_backup_invalid():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bad.json"
        path.write_text("[]")
        with pytest.raises(InvalidBackup):
            load_backup(path)


def test_new_archive_path_is_unique():
    with tempfile.TemporaryDirectory() as tmpdir:
        first = new_archive_path(tmpdir)
        second = new_archive_path(tmpdir)
        assert first != second
        assert first.parent == Path(tmpdir)
        assert first.name.startswith("backup-")
        assert first.suffix == ".json"


def test_create_backup_does_not_mutate_project():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        root = Path(tmpdir)
        (root / "CLAUDE.md").write_text("current")
        plan = DiffPlan(
            project_id=uuid.uuid4(),
            profile_id=uuid.uuid4(),
            operations=[
                Modify(path=root / "CLAUDE.md", diff="", new_content=b"next"),
                Create(path=root / "new.md", content=b"x"),
            ],
        )

        backup = create_backup(plan.project_id, root, plan, store)

        assert (root / "CLAUDE.md").read_text() == "current"
        assert not (root / "new.md").exists()
        assert backup.archive_path.exists()
        assert backup.files[0] == ExistingFile.capture("CLAUDE.md", b"current")
        assert isinstance(backup.files[1], NewFile)


def test_full_backup_skips_symlinks():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        root = Path(tmpdir)
        (root / "CLAUDE.md").write_text("main")
        agents = root / ".claude" / "agents"
        agents.mkdir(parents=True)
        (agents / "a.md").write_text("agent")
        os.symlink(root / "CLAUDE.md", agents / "link.md")

        backup = create_full_backup(uuid.uuid4(), root, store)

        assert [f.path.as_posix() for f in backup.files] == ["CLAUDE.md", ".claude/agents/a.md"]
        assert backup.archive_path.name.startswith("full-backup-")
        assert load_backup(backup.archive_path).files == backup.files


# --- Restore ---


def test_restore_removes_created_files_and_empty_dirs():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        root = Path(tmpdir)
        skill = root / ".claude" / "skills" / "s" / "SKILL.md"
        skill.parent.mkdir(parents=True)
        skill.write_text("created by apply")

        backup = _backup(store)
        backup.record_new(".claude/skills/s/SKILL.md")

        assert restore_from_backup(root, backup) == 1
        assert not (root / ".claude").exists()
        assert root.exists()


def test_restore_recreates_deleted_file():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        root = Path(tmpdir)
        backup = _backup(store)
        backup.record_existing(".claude/commands/gone.md", b"was here")

        restore_from_backup(root, backup)
        assert (root / ".claude" / "commands" / "gone.md").read_bytes() == b"was here"


def test_restore_tolerates_already_missing_new_file():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        backup = _backup(store)
        backup.record_new("never-written.md")
        assert restore_from_backup(Path(tmpdir), backup) == 1


def test_restore_rejects_unsafe_entry():
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as store:
        backup = _backup(store)
        backup.record_existing("../outside.md", b"x")

        with pytest.raises(TraversalAttempt):
            verify_restore(Path(tmpdir), backup)
        with pytest.raises(TraversalAttempt):
            restore_from_backup(Path(tmpdir), backup)


# --- Index ---


def test_index_register_and_load():
    with tempfile.TemporaryDirectory() as project, tempfile.TemporaryDirectory() as store:
        index = BackupIndex(store)
        backup = Backup(project_id=uuid.uuid4(), archive_path=new_archive_path(store))
        backup.record_existing("CLAUDE.md", b"x")
        save_backup(backup)

        summary = index.register(backup, project)
        assert summary.file_count == 1

        reopened = BackupIndex(store)
        assert reopened.get(str(backup.id)).project_path == str(Path(project).resolve())
        assert reopened.load(str(backup.id)).files == backup.files
        assert reopened.find_latest_project_id(project) == str(backup.project_id)


def test_index_lists_newest_first_per_project():
    with tempfile.TemporaryDirectory() as project, tempfile.TemporaryDirectory() as other, \
            tempfile.TemporaryDirectory() as store:
        index = BackupIndex(store)
        project_id = uuid.uuid4()
        older = Backup(project_id=project_id, archive_path=new_archive_path(store))
        newer = Backup(project_id=project_id, archive_path=new_archive_path(store))
        elsewhere = Backup(project_id=uuid.uuid4(), archive_path=new_archive_path(store))
        newer.created_at = older.created_at.replace(year=older.created_at.year + 1)

        for b, path in ((older, project), (newer, project), (elsewhere, other)):
            index.register(b, path)

        assert [s.id for s in index.list_for_project(project)] == [str(newer.id), str(older.id)]
        assert len(index.list_all()) == 3
        assert index.find_latest_project_id(Path(store) / "unknown") is None


def test_index_unknown_id():
    with tempfile.TemporaryDirectory() as store:
        with pytest.raises(BackupNotFound):
            BackupIndex(store).load(str(uuid.uuid4()))


def test_index_corrupt_file():
    with tempfile.TemporaryDirectory() as store:
        (Path(store) / "index.json").write_text("{broken")
        with pytest.raises(InvalidBackup):
            BackupIndex(store)
