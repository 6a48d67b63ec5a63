"""Profiles — the desired state a project is reconciled against."""

from tars.profile.loader import load_profile, profile_from_dict, profile_to_dict, save_profile
from tars.profile.models import (
    AgentOverlay,
    ClaudeMdOverlay,
    CommandOverlay,
    OverlayMode,
    Profile,
    RepoOverlays,
    SkillOverlay,
)
from tars.profile.snapshot import snapshot_from_project

__all__ = [
    "AgentOverlay",
    "ClaudeMdOverlay",
    "CommandOverlay",
    "OverlayMode",
    "Profile",
    "RepoOverlays",
    "SkillOverlay",
    "load_profile",
    "profile_from_dict",
    "profile_to_dict",
    "save_profile",
    "snapshot_from_project",
]
