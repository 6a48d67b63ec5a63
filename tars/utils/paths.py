"""Path safety — the single gate every filesystem mutation passes through.

Overlay names and backup entries are untrusted input: a profile file or a
backup archive can come from anywhere. Before any of them becomes a path
on disk it is checked here:

- ``validate_name`` guards a single skill/command/agent name.
- ``safe_join`` joins an untrusted relative path to a trusted root, refusing
  ``..`` that climbs above the root, absolute paths, null bytes and symlinks.
"""

from __future__ import annotations

from pathlib import Path, PurePath

from tars.errors import (
    EscapesRoot,
    InvalidComponent,
    SymlinkNotAllowed,
    TraversalAttempt,
)

# The only dot-name allowed through validate_name.
ALLOWED_DOT_NAME = ".claude"


def validate_name(name: str) -> None:
    """Validate a skill, command or agent name for use as a path component.

    Raises:
        InvalidComponent: Empty name, leading dot, or null byte.
        TraversalAttempt: Path separator or ``..`` in the name.
    """
    if not name:
        raise InvalidComponent("Empty name")

    if "/" in name or "\\" in name:
        raise TraversalAttempt(f"Name contains path separator: {name}")

    if ".." in name:
        raise TraversalAttempt(f"Name contains parent directory reference: {name}")

    if name.startswith(".") and name != ALLOWED_DOT_NAME:
        raise InvalidComponent(f"Name cannot start with dot: {name}")

    if "\0" in name:
        raise InvalidComponent("Name contains null byte")


def safe_join(root: str | Path, untrusted_path: str | PurePath) -> Path:
    """Join ``untrusted_path`` onto ``root`` and prove the result stays under it.

    The target does not need to exist (Create operations write new files),
    so containment is checked on the normalized components first and then
    re-verified against the filesystem where it can be.

    Returns:
        The joined path, ``..`` and ``.`` already collapsed.

    Raises:
        InvalidComponent: Absolute path or null byte.
        TraversalAttempt: ``..`` would climb above ``root``.
        EscapesRoot: The joined path resolves outside ``root``.
        SymlinkNotAllowed: An existing component under ``root`` is a symlink.
    """
    root = Path(root)
    parts = _normalize(untrusted_path)
    joined = root.joinpath(*parts)

    _reject_symlinks(root, parts)
    _verify_under_root(root, joined)

    return joined


def reject_symlink(path: str | Path) -> None:
    """Raise ``SymlinkNotAllowed`` if ``path`` is a symlink."""
    if Path(path).is_symlink():
        raise SymlinkNotAllowed(str(path))


def relative_to_root(path: str | Path, root: str | Path) -> Path:
    """Return ``path`` relative to ``root``, or ``path`` unchanged if it is not under it.

    An unchanged absolute path is then rejected by ``safe_join``.
    """
    path = Path(path)
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def _normalize(untrusted_path: str | PurePath) -> list[str]:
    raw = str(untrusted_path)
    if "\0" in raw:
        raise InvalidComponent("Null byte in path")

    pure = PurePath(raw)
    if pure.anchor:
        raise InvalidComponent("Absolute path not allowed")

    parts: list[str] = []
    for part in pure.parts:
        if part == ".":
            continue
        if part == "..":
            if not parts:
                raise TraversalAttempt(raw)
            parts.pop()
            continue
        parts.append(part)
    return parts


def _reject_symlinks(root: Path, parts: list[str]) -> None:
    current = root
    for part in parts:
        current = current / part
        if current.is_symlink():
            raise SymlinkNotAllowed(str(current))
        if not current.exists():
            # Nothing below a missing directory can exist either.
            break


def _verify_under_root(root: Path, joined: Path) -> None:
    if root.exists() and joined.exists():
        try:
            canonical_root = root.resolve(strict=True)
            canonical_path = joined.resolve(strict=True)
        except OSError as exc:
            raise EscapesRoot(str(joined)) from exc
        if not canonical_path.is_relative_to(canonical_root):
            raise EscapesRoot(str(joined))
    elif not joined.is_relative_to(root):
        raise EscapesRoot(str(joined))
