"""Capture a project's current configuration as a profile."""

from __future__ import annotations

import logging
from pathlib import Path

from tars.errors import FilesystemError, PathSecurityError
from tars.profile.models import (
    AgentOverlay,
    ClaudeMdOverlay,
    CommandOverlay,
    OverlayMode,
    Profile,
    SkillOverlay,
)
from tars.utils.paths import validate_name

logger = logging.getLogger(__name__)


def snapshot_from_project(project_path: str | Path, name: str) -> Profile:
    """Create a profile from a project's CLAUDE.md and ``.claude`` overlays.

    The CLAUDE.md overlay uses replace mode, so applying the snapshot to
    another project reproduces the source project's file exactly.
    """
    project_path = Path(project_path)
    claude_dir = project_path / ".claude"
    profile = Profile(name=name)

    claude_md = project_path / "CLAUDE.md"
    if claude_md.is_file() and not claude_md.is_symlink():
        profile.repo_overlays.claude_md = ClaudeMdOverlay(
            content=_read_text(claude_md), mode=OverlayMode.REPLACE
        )

    profile.repo_overlays.skills = [
        SkillOverlay(name=n, content=c) for n, c in _snapshot_skills(claude_dir / "skills")
    ]
    profile.repo_overlays.commands = [
        CommandOverlay(name=n, content=c) for n, c in _snapshot_markdown(claude_dir / "commands")
    ]
    profile.repo_overlays.agents = [
        AgentOverlay(name=n, content=c) for n, c in _snapshot_markdown(claude_dir / "agents")
    ]

    logger.debug(
        "Snapshot of %s: %d overlay(s)", project_path, profile.repo_overlays.count
    )
    return profile


def _snapshot_skills(skills_dir: Path) -> list[tuple[str, str]]:
    found = []
    if not skills_dir.is_dir():
        return found

    for skill_dir in sorted(skills_dir.iterdir()):
        skill_file = skill_dir / "SKILL.md"
        if skill_dir.is_symlink() or not skill_dir.is_dir():
            continue
        if not skill_file.is_file() or skill_file.is_symlink():
            continue
        if not _usable_name(skill_dir.name):
            continue
        found.append((skill_dir.name, _read_text(skill_file)))
    return found


def _snapshot_markdown(directory: Path) -> list[tuple[str, str]]:
    found = []
    if not directory.is_dir():
        return found

    for path in sorted(directory.glob("*.md")):
        if path.is_symlink() or not path.is_file():
            continue
        if not _usable_name(path.stem):
            continue
        found.append((path.stem, _read_text(path)))
    return found


def _usable_name(name: str) -> bool:
    try:
        validate_name(name)
    except PathSecurityError as e:
        logger.debug("Skipping overlay with unusable name %r: %s", name, e)
        return False
    return True


def _read_text(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FilesystemError("read", path, e if isinstance(e, OSError) else None) from e
