from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from .errors import ConfigError


load_dotenv(override=False)

ROOT_ENV = "BUYERLOOKUP_ROOT"
WORK_DIR_ENV = "BUYERLOOKUP_WORK_DIR"
DEFAULT_PROFILE = "default"


@dataclass
class Profile:
    """A named lookup profile.

    Attributes:
        name: Profile key.
        display_name: Human readable name shown by the CLI.
        feed: Export feed section (url, timeouts, headers).
        parser: Parser section (delimiter, encoding, row policy).
    """

    name: str
    display_name: str
    feed: Dict[str, Any]
    parser: Dict[str, Any] = field(default_factory=dict)


def _project_root() -> Path:
    env = os.getenv(ROOT_ENV)
    if env:
        return Path(env)
    # In source layout, this file is under <root>/buyerlookup/core
    return Path(__file__).resolve().parents[2]


def _config_dir() -> Path:
    return _project_root() / "buyerlookup" / "config"


def _work_dir() -> Path:
    env = os.getenv(WORK_DIR_ENV)
    if env:
        return Path(env)
    return _project_root() / "buyerlookup" / "work"


def load_profiles(path: str | Path | None = None) -> dict[str, Profile]:
    """Load profiles from config/profiles.yaml.

    Returns a dict of profile-key -> Profile.
    """
    cfg_path = Path(path) if path else _config_dir() / "profiles.yaml"
    if not cfg_path.exists():
        raise ConfigError(f"profiles.yaml not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("profiles.yaml must contain a mapping")
    profiles_raw = data.get("profiles") or {}
    if not profiles_raw:
        raise ConfigError("No profiles defined in profiles.yaml")
    profiles: dict[str, Profile] = {}
    for key, p in profiles_raw.items():
        if not isinstance(p, dict):
            raise ConfigError(f"Profile {key} must be a mapping")
        feed = p.get("feed")
        if not isinstance(feed, dict):
            raise ConfigError(f"Profile {key} is missing a 'feed' section")
        profiles[str(key)] = Profile(
            name=str(key),
            display_name=p.get("display_name", key),
            feed=feed,
            parser=p.get("parser") or {},
        )
    return profiles


def load_profile(name: str = DEFAULT_PROFILE, path: str | Path | None = None) -> Profile:
    """Return a single profile by name."""

    profiles = load_profiles(path)
    try:
        return profiles[name]
    except KeyError:
        known = ", ".join(sorted(profiles))
        raise ConfigError(f"Profile '{name}' not found (known: {known})") from None


def expand_env(value: Any) -> Any:
    """Expand ``${VAR}`` placeholders, failing when a variable is unset."""

    if isinstance(value, str):
        expanded = os.path.expandvars(value)
        if "${" in expanded:
            raise ConfigError(f"Environment variable not set for value: {value}")
        return expanded
    return value
