"""Diff planning — what applying a profile would change, before anything changes."""

from tars.diff.display import DiffSummary, format_plan_markdown, format_plan_terminal
from tars.diff.models import (
    Create,
    Delete,
    DiffPlan,
    FileOperation,
    Modify,
    PlanWarning,
    WarningSeverity,
)
from tars.diff.plan import check_git_dirty, generate_plan, generate_text_diff

__all__ = [
    "Create",
    "Delete",
    "DiffPlan",
    "DiffSummary",
    "FileOperation",
    "Modify",
    "PlanWarning",
    "WarningSeverity",
    "check_git_dirty",
    "format_plan_markdown",
    "format_plan_terminal",
    "generate_plan",
    "generate_text_diff",
]
