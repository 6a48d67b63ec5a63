"""Profile data models — reusable bundles of repository overlays.

A profile describes what a project's assistant configuration should look
like: a CLAUDE.md overlay plus named skills, commands and agents. Planning
treats a profile as an immutable snapshot.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from tars.errors import ProfileError


class OverlayMode(Enum):
    """How a CLAUDE.md overlay composes with the existing file."""

    REPLACE = "replace"  # Discard existing content
    PREPEND = "prepend"  # Overlay, blank line, existing
    APPEND = "append"  # Existing, blank line, overlay


@dataclass
class ClaudeMdOverlay:
    """Overlay for the project's CLAUDE.md."""

    content: str
    mode: OverlayMode = OverlayMode.REPLACE


@dataclass
class SkillOverlay:
    """Full SKILL.md content for ``.claude/skills/<name>/``."""

    name: str
    content: str


@dataclass
class CommandOverlay:
    """Full content for ``.claude/commands/<name>.md``."""

    name: str
    content: str


@dataclass
class AgentOverlay:
    """Full content for ``.claude/agents/<name>.md``."""

    name: str
    content: str


@dataclass
class RepoOverlays:
    """Repository-level overlays carried by a profile."""

    claude_md: ClaudeMdOverlay | None = None
    skills: list[SkillOverlay] = field(default_factory=list)
    commands: list[CommandOverlay] = field(default_factory=list)
    agents: list[AgentOverlay] = field(default_factory=list)

    @property
    def count(self) -> int:
        return (
            (1 if self.claude_md else 0)
            + len(self.skills)
            + len(self.commands)
            + len(self.agents)
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Profile:
    """A named configuration bundle applied to one or more projects."""

    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    description: str | None = None
    repo_overlays: RepoOverlays = field(default_factory=RepoOverlays)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def validate(self) -> None:
        """Reject overlays of the same kind that share a name.

        Two such overlays would target the same file, and only the last
        one would ever be written.
        """
        groups = (
            ("skill", self.repo_overlays.skills),
            ("command", self.repo_overlays.commands),
            ("agent", self.repo_overlays.agents),
        )
        for kind, overlays in groups:
            seen: set[str] = set()
            for overlay in overlays:
                if overlay.name in seen:
                    raise ProfileError(
                        f"Profile '{self.name}' defines {kind} '{overlay.name}' more than once"
                    )
                seen.add(overlay.name)
