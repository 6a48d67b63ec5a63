"""Inspect the git working tree of a target project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from git import GitError, Repo

logger = logging.getLogger(__name__)


@dataclass
class GitInfo:
    """Snapshot of a project's git state."""

    remote: str | None
    branch: str
    is_dirty: bool


def get_git_info(project_path: str | Path) -> GitInfo | None:
    """Return git information for a project, or None if it is not a git repo."""
    path = Path(project_path)
    if not (path / ".git").exists():
        return None

    try:
        repo = Repo(path)
        remote = repo.remotes[0].url if repo.remotes else None
        branch = "detached" if repo.head.is_detached else str(repo.active_branch)
        dirty = repo.is_dirty(untracked_files=True)
    except (GitError, ValueError) as e:
        logger.debug("Could not inspect git repo at %s: %s", path, e)
        return None

    return GitInfo(remote=remote, branch=branch, is_dirty=dirty)


def is_dirty(project_path: str | Path) -> bool:
    """True when the project is a git repo with uncommitted or untracked changes."""
    info = get_git_info(project_path)
    return bool(info and info.is_dirty)
