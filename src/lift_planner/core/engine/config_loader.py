"""
YAML → typed runtime defaults.

Loads engine defaults from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.lift-planner/engine.yaml.

Usage:
    from lift_planner.core.engine.config_loader import load_engine_defaults
    defaults = load_engine_defaults()
    increment = defaults.weight_increment_kg

If a YAML file cannot be read or parsed, a warning is logged and the file
is ignored; lookups then fall back to the Python defaults in config.py.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..config import (
    DEFAULT_TRAINING_DAYS,
    DEFAULT_WEIGHT_INCREMENT_KG,
    EXPERIENCE_LEVELS,
    MAX_RECENT_SESSIONS,
    MAX_TRAINING_DAYS,
    MIN_TRAINING_DAYS,
)

logger = logging.getLogger(__name__)

USER_CONFIG_DIR = ".lift-planner"
CONFIG_FILENAME = "engine.yaml"


@dataclass(frozen=True)
class EngineDefaults:
    """Runtime defaults resolved from YAML."""

    weight_increment_kg: float = DEFAULT_WEIGHT_INCREMENT_KG
    training_days_per_week: int = DEFAULT_TRAINING_DAYS
    experience_level: str = "intermediate"
    recent_session_limit: int = MAX_RECENT_SESSIONS


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; return {} (and log) on any read or parse error."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("ignoring config file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _number(section: dict, key: str, default, cast, low=None, high=None):
    value = section.get(key, default)
    try:
        value = cast(value)
    except (TypeError, ValueError):
        logger.warning("invalid %s=%r in engine config, using %r", key, value, default)
        return default
    if (low is not None and value < low) or (high is not None and value > high):
        logger.warning("%s=%r out of range in engine config, using %r", key, value, default)
        return default
    return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled engine.yaml, or None if not found."""
    ref = importlib.resources.files("lift_planner").joinpath(CONFIG_FILENAME)
    if ref.is_file():
        return Path(str(ref))
    candidate = Path(__file__).parent.parent.parent / CONFIG_FILENAME
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.lift-planner/engine.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / USER_CONFIG_DIR / CONFIG_FILENAME
    return p if p.exists() else None


def load_engine_config() -> dict[str, Any]:
    """
    Load and merge engine configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/lift_planner/engine.yaml
    2. User override at ~/.lift-planner/engine.yaml

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = _deep_merge(config, _load_yaml_file(bundled))

    user = get_user_yaml_path()
    if user is not None:
        user_cfg = _load_yaml_file(user)
        if user_cfg:
            logger.debug("merging user engine config from %s", user)
            config = _deep_merge(config, user_cfg)

    return config


def load_engine_defaults(config: dict[str, Any] | None = None) -> EngineDefaults:
    """
    Resolve typed runtime defaults.

    Args:
        config: Already-loaded config dict (loads from YAML when None)

    Returns:
        EngineDefaults; invalid values fall back to config.py defaults
    """
    if config is None:
        config = load_engine_config()

    defaults = config.get("defaults") or {}
    history = config.get("history") or {}

    level = defaults.get("experience_level", "intermediate")
    if level not in EXPERIENCE_LEVELS:
        logger.warning("invalid experience_level=%r in engine config", level)
        level = "intermediate"

    return EngineDefaults(
        weight_increment_kg=_number(
            defaults, "weight_increment_kg", DEFAULT_WEIGHT_INCREMENT_KG, float, low=0.01
        ),
        training_days_per_week=_number(
            defaults,
            "training_days_per_week",
            DEFAULT_TRAINING_DAYS,
            int,
            low=MIN_TRAINING_DAYS,
            high=MAX_TRAINING_DAYS,
        ),
        experience_level=level,
        recent_session_limit=_number(
            history, "recent_session_limit", MAX_RECENT_SESSIONS, int, low=1, high=MAX_RECENT_SESSIONS
        ),
    )
