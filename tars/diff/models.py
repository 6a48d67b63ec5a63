"""File operations and the plan that orders them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class Create:
    """Write a file that does not exist yet."""

    path: Path
    content: bytes


@dataclass(frozen=True)
class Modify:
    """Overwrite an existing file. ``diff`` is for display only."""

    path: Path
    diff: str
    new_content: bytes


@dataclass(frozen=True)
class Delete:
    """Remove an existing file."""

    path: Path


FileOperation = Create | Modify | Delete


class WarningSeverity(Enum):
    INFO = "info"
    WARNING = "warning"  # Proceed with caution
    ERROR = "error"  # Should not proceed


@dataclass
class PlanWarning:
    """An advisory message attached to a plan."""

    severity: WarningSeverity
    message: str


@dataclass
class DiffPlan:
    """Ordered file operations that align a project with a profile."""

    project_id: uuid.UUID
    profile_id: uuid.UUID
    operations: list[FileOperation] = field(default_factory=list)
    warnings: list[PlanWarning] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.operations

    def has_errors(self) -> bool:
        return any(w.severity == WarningSeverity.ERROR for w in self.warnings)

    @property
    def paths(self) -> list[Path]:
        return [op.path for op in self.operations]
