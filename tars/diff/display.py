"""Diff plan display — render a plan for review without touching the filesystem."""

from __future__ import annotations

from dataclasses import dataclass

from tars.diff.models import Create, Delete, DiffPlan, Modify, WarningSeverity

_TERMINAL_PREFIX = {
    WarningSeverity.INFO: "[INFO]",
    WarningSeverity.WARNING: "[WARN]",
    WarningSeverity.ERROR: "[ERROR]",
}

_MARKDOWN_MARKER = {
    WarningSeverity.INFO: "ℹ️",
    WarningSeverity.WARNING: "⚠️",
    WarningSeverity.ERROR: "❌",
}


def format_plan_terminal(plan: DiffPlan) -> str:
    """Format a plan as plain text for a terminal."""
    lines = ["=== Diff Plan ===", f"Operations: {len(plan.operations)}", ""]

    if plan.warnings:
        lines.append("Warnings:")
        for warning in plan.warnings:
            lines.append(f"  {_TERMINAL_PREFIX[warning.severity]} {warning.message}")
        lines.append("")

    for op in plan.operations:
        if isinstance(op, Create):
            lines.append(f"CREATE: {op.path}")
            lines.append(f"  Size: {len(op.content)} bytes")
        elif isinstance(op, Modify):
            lines.append(f"MODIFY: {op.path}")
            lines.extend(f"  {line}" for line in op.diff.splitlines())
        elif isinstance(op, Delete):
            lines.append(f"DELETE: {op.path}")
        else:
            raise TypeError(f"Unhandled file operation: {op!r}")
        lines.append("")

    return "\n".join(lines) + "\n"


def format_plan_markdown(plan: DiffPlan) -> str:
    """Format a plan as Markdown, e.g. for a pull request description."""
    lines = ["# Diff Plan", "", f"**Operations:** {len(plan.operations)}", ""]

    if plan.warnings:
        lines += ["## Warnings", ""]
        for warning in plan.warnings:
            lines.append(f"- {_MARKDOWN_MARKER[warning.severity]} {warning.message}")
        lines.append("")

    lines += ["## Changes", ""]

    for op in plan.operations:
        if isinstance(op, Create):
            lines += [f"### ➕ Create `{op.path}`", "", f"New file ({len(op.content)} bytes)"]
        elif isinstance(op, Modify):
            lines += [f"### ✏️ Modify `{op.path}`", "", "```diff", op.diff, "```"]
        elif isinstance(op, Delete):
            lines.append(f"### ➖ Delete `{op.path}`")
        else:
            raise TypeError(f"Unhandled file operation: {op!r}")
        lines.append("")

    return "\n".join(lines) + "\n"


@dataclass
class DiffSummary:
    """Counts and total bytes written for a plan."""

    creates: int = 0
    modifies: int = 0
    deletes: int = 0
    total_bytes: int = 0

    @classmethod
    def from_plan(cls, plan: DiffPlan) -> DiffSummary:
        summary = cls()
        for op in plan.operations:
            if isinstance(op, Create):
                summary.creates += 1
                summary.total_bytes += len(op.content)
            elif isinstance(op, Modify):
                summary.modifies += 1
                summary.total_bytes += len(op.new_content)
            elif isinstance(op, Delete):
                summary.deletes += 1
            else:
                raise TypeError(f"Unhandled file operation: {op!r}")
        return summary

    def one_line(self) -> str:
        return (
            f"{self.creates} create(s), {self.modifies} modify(s), "
            f"{self.deletes} delete(s) - {self.total_bytes} bytes total"
        )
