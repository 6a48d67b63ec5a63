"""Diff plan generation — compare a profile's overlays with a project on disk.

Every overlay maps to exactly one file under the project root:

- CLAUDE.md overlay        -> ``CLAUDE.md``
- skill ``<name>``         -> ``.claude/skills/<name>/SKILL.md``
- command ``<name>``       -> ``.claude/commands/<name>.md``
- agent ``<name>``         -> ``.claude/agents/<name>.md``

A missing file becomes a Create, a file whose bytes differ becomes a Modify,
and an identical file produces nothing. Planning never writes to disk.
"""

from __future__ import annotations

import difflib
import logging
import uuid
from pathlib import Path

from tars.diff.models import Create, DiffPlan, Modify, PlanWarning, WarningSeverity
from tars.errors import FilesystemError, PlanError
from tars.profile.models import ClaudeMdOverlay, OverlayMode, Profile
from tars.utils.git_ops import is_dirty
from tars.utils.paths import safe_join, validate_name

logger = logging.getLogger(__name__)

CLAUDE_MD = "CLAUDE.md"
SEPARATOR = b"\n\n"
LINE_ENDINGS_NOTE = "(line endings changed)"


def generate_plan(
    project_id: uuid.UUID,
    project_path: str | Path,
    profile: Profile,
    check_git: bool = False,
) -> DiffPlan:
    """Generate the plan for applying ``profile`` to the project at ``project_path``.

    Args:
        project_id: Identifier recorded on the plan (and later the backup).
        project_path: Project root directory.
        profile: Desired state.
        check_git: Add a warning when the project has uncommitted changes.

    Raises:
        PathSecurityError: An overlay name or target path is unsafe. No
            partial plan is returned.
        FilesystemError: An existing target could not be read.
        PlanError: Two overlays resolve to the same file.
    """
    project_path = Path(project_path)
    plan = DiffPlan(project_id=project_id, profile_id=profile.id)
    overlays = profile.repo_overlays

    if overlays.claude_md is not None:
        _plan_claude_md(project_path, overlays.claude_md, plan)

    for skill in overlays.skills:
        validate_name(skill.name)
        _plan_file(project_path, Path(".claude", "skills", skill.name, "SKILL.md"), skill.content, plan)

    for cmd in overlays.commands:
        validate_name(cmd.name)
        _plan_file(project_path, Path(".claude", "commands", f"{cmd.name}.md"), cmd.content, plan)

    for agent in overlays.agents:
        validate_name(agent.name)
        _plan_file(project_path, Path(".claude", "agents", f"{agent.name}.md"), agent.content, plan)

    if check_git:
        warning = check_git_dirty(project_path)
        if warning:
            plan.warnings.append(warning)

    logger.debug(
        "Planned %d operation(s) for profile %s on %s",
        len(plan.operations), profile.name, project_path,
    )
    return plan


def compose_claude_md(overlay: ClaudeMdOverlay, existing: bytes | None) -> bytes:
    """Return the CLAUDE.md bytes that result from applying ``overlay``.

    Composition works on bytes so existing content that is not valid UTF-8
    survives a prepend or append unchanged.
    """
    content = overlay.content.encode("utf-8")
    if existing is None or overlay.mode == OverlayMode.REPLACE:
        return content
    if overlay.mode == OverlayMode.PREPEND:
        return content + SEPARATOR + existing
    if overlay.mode == OverlayMode.APPEND:
        return existing + SEPARATOR + content
    raise TypeError(f"Unhandled overlay mode: {overlay.mode!r}")


def generate_text_diff(old: str, new: str, rel_path: str = "") -> str:
    """Unified line diff between two texts, for display only.

    Texts that differ only in line terminators produce the file headers and
    a note instead of an empty diff.
    """
    fromfile = f"a/{rel_path}" if rel_path else "a"
    tofile = f"b/{rel_path}" if rel_path else "b"
    lines = list(difflib.unified_diff(
        old.splitlines(), new.splitlines(),
        fromfile=fromfile, tofile=tofile,
        lineterm="",
    ))
    if not lines and old != new:
        lines = [f"--- {fromfile}", f"+++ {tofile}", LINE_ENDINGS_NOTE]
    return "\n".join(lines)


def check_git_dirty(project_path: str | Path) -> PlanWarning | None:
    """Warn when the project's git working tree has uncommitted changes.

    Advisory only: anything that prevents inspecting the repository means
    no warning.
    """
    if not is_dirty(project_path):
        return None
    return PlanWarning(
        severity=WarningSeverity.WARNING,
        message="Repository has uncommitted changes. Consider committing before applying.",
    )


def _plan_claude_md(project_path: Path, overlay: ClaudeMdOverlay, plan: DiffPlan) -> None:
    target = safe_join(project_path, CLAUDE_MD)
    existing = _read_existing(target)
    new_content = compose_claude_md(overlay, existing)
    _add_operation(plan, target, Path(CLAUDE_MD), existing, new_content)


def _plan_file(project_path: Path, rel_path: Path, content: str, plan: DiffPlan) -> None:
    target = safe_join(project_path, rel_path)
    existing = _read_existing(target)
    _add_operation(plan, target, rel_path, existing, content.encode("utf-8"))


def _add_operation(
    plan: DiffPlan,
    target: Path,
    rel_path: Path,
    existing: bytes | None,
    new_content: bytes,
) -> None:
    if target in plan.paths:
        raise PlanError(f"More than one overlay targets {rel_path.as_posix()}")

    if existing is None:
        plan.operations.append(Create(path=target, content=new_content))
        logger.debug("CREATE %s (%d bytes)", rel_path, len(new_content))
    elif existing != new_content:
        diff = generate_text_diff(
            existing.decode("utf-8", errors="replace"),
            new_content.decode("utf-8", errors="replace"),
            rel_path.as_posix(),
        )
        plan.operations.append(Modify(path=target, diff=diff, new_content=new_content))
        logger.debug("MODIFY %s", rel_path)
    else:
        logger.debug("unchanged %s", rel_path)


def _read_existing(target: Path) -> bytes | None:
    if not target.exists():
        return None
    try:
        return target.read_bytes()
    except OSError as e:
        raise FilesystemError("read", target, e) from e
