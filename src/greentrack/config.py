"""
greentrack configuration loader

This module centralizes configuration handling for greentrack.

Precedence (highest to lowest) for any given value:
1) CLI argument (handled by each entry point)
2) Environment variables (GREENTRACK_*)
3) User config: ~/.config/greentrack/config.toml
4) Repo config: <repo_root>/config/config.toml
5) Hard defaults

Sections understood:

    [tracking]
    min_displacement_m = 20.0   # jitter gate between accepted fixes

    [carbon.factors]            # kg CO2 per km, extends/overrides the table
    e_bike = 0.01

    [replay]
    work_root = "~/GPS/_work"   # where the replay tool looks for GPX files

This module uses Python's built-in tomllib on Python 3.11+, or `tomli`.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from greentrack.errors import ConfigError

# ---------------------------------------------------------------------------
# TOML loading helpers
# ---------------------------------------------------------------------------
def _load_toml(path: Path) -> dict[str, Any]:
    """
    Parse a TOML file at `path`.

    - Missing file -> empty dict (non-fatal).
    - Invalid TOML -> ConfigError naming the file.
    """
    if not path.is_file():
        return {}

    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib

    try:
        return tomllib.loads(path.read_text(encoding="utf-8")) or {}
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse TOML config: {path} ({e})") from e


# ---------------------------------------------------------------------------
# Generic coercion helpers
# ---------------------------------------------------------------------------
def _deep_get(d: dict[str, Any], dotted_key: str) -> Any:
    """
    Fetch nested dictionary values using dot-separated keys.

    Returns None if any part of the path is missing.
    """
    cur: Any = d
    for part in dotted_key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return None
        cur = cur[part]
    return cur


def _as_path(v: Any) -> Optional[Path]:
    if v is None:
        return None
    if isinstance(v, Path):
        return v.expanduser()
    if isinstance(v, str):
        return Path(v).expanduser()
    return None


def _as_float(v: Any, default: float) -> float:
    """Coerce to float; booleans and unparseable values fall back to `default`."""
    if v is None or isinstance(v, bool):
        return default
    try:
        return float(v)
    except (TypeError, ValueError):
        return default
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _as_factor(name: Any, v: Any, path: Optional[Path]) -> float:
    """Coerce an emission factor (kg CO2 per km); bad values raise ConfigError."""
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        raise ConfigError(f"carbon.factors.{name} must be a number ({path}): {v!r}")
    try:
        factor = float(v)
    except ValueError:
        raise ConfigError(f"carbon.factors.{name} must be a number ({path}): {v!r}") from None
    if not math.isfinite(factor) or factor < 0:
        raise ConfigError(f"carbon.factors.{name} must be a finite number >= 0 ({path}): {v!r}")
    return factor


# ---------------------------------------------------------------------------
# Repo discovery + defaults
# ---------------------------------------------------------------------------
def find_repo_root(start: Path) -> Optional[Path]:
    """
    Walk upward from `start` looking for the repo root.

    The presence of a `config/` directory marks the repo root.
    """
    start = start.resolve()
    for p in [start] + list(start.parents):
        if (p / "config").is_dir():
            return p
    return None


def default_work_root() -> Path:
    return Path.home() / "GPS" / "_work"


# ---------------------------------------------------------------------------
# Typed config dataclasses
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TrackingSettings:
    """
    Knobs for MotionTrackingSession.

    min_displacement_m: fixes closer than this to the last accepted fix are
        treated as GPS jitter and dropped.
    """

    min_displacement_m: float = 20.0

    def __post_init__(self) -> None:
        if self.min_displacement_m < 0:
            raise ValueError("min_displacement_m must be >= 0")


@dataclass(frozen=True)
class CarbonSettings:
    factors: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ReplaySettings:
    work_root: Path = field(default_factory=default_work_root)


@dataclass(frozen=True)
class GreenTrackConfig:
    """
    Fully merged configuration.

    Attributes:
    - tracking: session thresholds
    - carbon: emission-factor overrides
    - replay: replay tool paths
    - source: provenance map showing where each value came from
    """

    tracking: TrackingSettings
    carbon: CarbonSettings
    replay: ReplaySettings
    source: dict[str, str]


# ---------------------------------------------------------------------------
# Main config loader
# ---------------------------------------------------------------------------
ENV_MAP = {
    "GREENTRACK_MIN_DISPLACEMENT_M": "tracking.min_displacement_m",
    "GREENTRACK_WORK_ROOT": "replay.work_root",
}


def load_config(
    repo_root: Optional[Path] = None,
    repo_config_path: Optional[Path] = None,
    user_config_path: Optional[Path] = None,
) -> GreenTrackConfig:
    """
    Load, merge, and normalize all greentrack configuration.

    This function is the single authoritative entry point
    for configuration access.
    """

    if repo_root is None:
        repo_root = find_repo_root(Path.cwd())
    if repo_config_path is None and repo_root is not None:
        repo_config_path = repo_root / "config" / "config.toml"
    if user_config_path is None:
        user_config_path = Path.home() / ".config" / "greentrack" / "config.toml"

    repo_cfg = _load_toml(repo_config_path) if repo_config_path else {}
    user_cfg = _load_toml(user_config_path) if user_config_path else {}

    # Defaults
    min_displacement_m = TrackingSettings.min_displacement_m
    work_root = default_work_root()
    factors: dict[str, float] = {}

    src = {
        "tracking.min_displacement_m": "default",
        "carbon.factors": "default",
        "replay.work_root": "default",
    }

    # Repo, then user (user overrides repo)
    for cfg, label, path in (
        (repo_cfg, "repo", repo_config_path),
        (user_cfg, "user", user_config_path),
    ):
        v = _deep_get(cfg, "tracking.min_displacement_m")
        if v is not None:
            min_displacement_m = _as_float(v, min_displacement_m)
            src["tracking.min_displacement_m"] = f"{label}:{path}"

        block = _deep_get(cfg, "carbon.factors")
        if isinstance(block, dict) and block:
            for name, value in block.items():
                factors[str(name)] = _as_factor(name, value, path)
            src["carbon.factors"] = f"{label}:{path}"

        p = _as_path(_deep_get(cfg, "replay.work_root"))
        if p is not None:
            work_root = p
            src["replay.work_root"] = f"{label}:{path}"

    # Environment variable overrides (highest non-CLI precedence)
    for env, key in ENV_MAP.items():
        val = os.environ.get(env)
        if not val:
            continue
        if key == "tracking.min_displacement_m":
            min_displacement_m = _as_float(val, min_displacement_m)
        elif key == "replay.work_root":
            work_root = Path(val).expanduser()
        src[key] = f"env:{env}"

    try:
        tracking = TrackingSettings(
            min_displacement_m=min_displacement_m,
        )
    except ValueError as e:
        raise ConfigError(f"Invalid tracking settings: {e}") from e

    return GreenTrackConfig(
        tracking=tracking,
        carbon=CarbonSettings(factors=factors),
        replay=ReplaySettings(work_root=work_root.expanduser()),
        source=src,
    )
