"""Workspace root, local clock, path helpers for GoalRitual."""

from __future__ import annotations

import os
from datetime import date, datetime
from pathlib import Path

from goalritual.config import Settings, load_settings

STATE_KEY = "goalritual-state"


def workspace_root() -> Path:
    """Get the workspace root directory (contains config.yaml and state/)."""
    return Path(
        os.environ.get("GOALRITUAL_ROOT", str(Path.home() / "goalritual"))
    ).expanduser().resolve()


def config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "config.yaml"


def state_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "state"


def get_settings(root: Path | None = None) -> Settings:
    return load_settings(config_path(root))


def now_local(root: Path | None = None) -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_settings(root).tzinfo())


def today_local(root: Path | None = None) -> date:
    """Today's local calendar date. This is the default clock for the Store."""
    return now_local(root).date()
