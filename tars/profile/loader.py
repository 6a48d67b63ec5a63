"""Load and save profiles as YAML (or JSON, which YAML parses too)."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import yaml

from tars.errors import ProfileError
from tars.profile.models import (
    AgentOverlay,
    ClaudeMdOverlay,
    CommandOverlay,
    OverlayMode,
    Profile,
    RepoOverlays,
    SkillOverlay,
)


def load_profile(path: str | Path) -> Profile:
    """Load a profile from a YAML or JSON file.

    Raises:
        ProfileError: The file is missing, unparsable, or not a valid profile.
    """
    path = Path(path)
    if not path.exists():
        raise ProfileError(f"Profile file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid profile file {path}: {e}") from e
    except OSError as e:
        raise ProfileError(f"Could not read profile file {path}: {e}") from e

    return profile_from_dict(data)


def save_profile(profile: Profile, path: str | Path) -> Path:
    """Write a profile to ``path`` as YAML and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(profile_to_dict(profile), f, sort_keys=False, allow_unicode=True)
    return path


def profile_from_dict(data: dict) -> Profile:
    """Build and validate a Profile from its document form."""
    if not isinstance(data, dict):
        raise ProfileError("Profile document must be a mapping")
    if not data.get("name"):
        raise ProfileError("Profile is missing required field: name")

    overlays_data = data.get("repo_overlays") or {}
    if not isinstance(overlays_data, dict):
        raise ProfileError("repo_overlays must be a mapping")

    overlays = RepoOverlays(
        claude_md=_claude_md_from_dict(overlays_data.get("claude_md")),
        skills=[SkillOverlay(**d) for d in _named_items(overlays_data, "skills")],
        commands=[CommandOverlay(**d) for d in _named_items(overlays_data, "commands")],
        agents=[AgentOverlay(**d) for d in _named_items(overlays_data, "agents")],
    )

    profile = Profile(
        name=str(data["name"]),
        id=_parse_uuid(data.get("id")),
        description=data.get("description"),
        repo_overlays=overlays,
    )
    if data.get("created_at"):
        profile.created_at = _parse_datetime(data["created_at"])
    if data.get("updated_at"):
        profile.updated_at = _parse_datetime(data["updated_at"])

    profile.validate()
    return profile


def profile_to_dict(profile: Profile) -> dict:
    overlays = profile.repo_overlays
    data = {
        "id": str(profile.id),
        "name": profile.name,
        "description": profile.description,
        "created_at": profile.created_at.isoformat(),
        "updated_at": profile.updated_at.isoformat(),
        "repo_overlays": {
            "claude_md": (
                {"mode": overlays.claude_md.mode.value, "content": overlays.claude_md.content}
                if overlays.claude_md
                else None
            ),
            "skills": [{"name": s.name, "content": s.content} for s in overlays.skills],
            "commands": [{"name": c.name, "content": c.content} for c in overlays.commands],
            "agents": [{"name": a.name, "content": a.content} for a in overlays.agents],
        },
    }
    return data


def _claude_md_from_dict(data) -> ClaudeMdOverlay | None:
    if data is None:
        return None
    if not isinstance(data, dict) or "content" not in data:
        raise ProfileError("claude_md overlay must be a mapping with 'content'")

    mode_value = str(data.get("mode", OverlayMode.REPLACE.value)).lower()
    try:
        mode = OverlayMode(mode_value)
    except ValueError:
        valid = ", ".join(m.value for m in OverlayMode)
        raise ProfileError(
            f"Invalid claude_md mode '{mode_value}'. Must be one of: {valid}"
        ) from None

    if not isinstance(data["content"], str):
        raise ProfileError("claude_md overlay 'content' must be a string")

    return ClaudeMdOverlay(content=data["content"], mode=mode)


def _named_items(overlays_data: dict, key: str) -> list[dict]:
    items = overlays_data.get(key) or []
    if not isinstance(items, list):
        raise ProfileError(f"repo_overlays.{key} must be a list")

    result = []
    for i, item in enumerate(items):
        if not isinstance(item, dict) or "name" not in item or "content" not in item:
            raise ProfileError(f"repo_overlays.{key}[{i}] must have 'name' and 'content'")
        if not isinstance(item["content"], str):
            raise ProfileError(f"repo_overlays.{key}[{i}] 'content' must be a string")
        result.append({"name": str(item["name"]), "content": item["content"]})
    return result


def _parse_uuid(value) -> uuid.UUID:
    if not value:
        return uuid.uuid4()
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ProfileError(f"Invalid profile id: {value}") from None


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ProfileError(f"Invalid timestamp: {value}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
