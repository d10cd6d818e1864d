"""
levelcore.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for tuning (XP curve, autosave cadence, rank table)
and takes the store connection string from the same file or, failing
that, from ``DATABASE_URL`` (loaded from ``.env``).

Usage::

    from levelcore.config import load_config

    cfg = load_config()                   # reads ./config.yaml by default
    print(cfg.default_xp_per_level)       # 2500
    print(cfg.autosave_interval_seconds)  # 10800
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from levelcore.constants import (
    DEFAULT_ACTIVITY_HISTORY_CEILING,
    DEFAULT_AUTOSAVE_INTERVAL_SECONDS,
    DEFAULT_RANKS,
    DEFAULT_XP_PER_LEVEL,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LevelConfig:
    """Immutable configuration for a :class:`~levelcore.engine.manager.LevelManager`.

    ``ranks`` and ``achievements`` are raw mappings; the manager validates
    them into a :class:`~levelcore.engine.ranks.RankTable` and
    :class:`~levelcore.engine.achievements.Achievement` objects.
    """

    # Store
    store_connection_string: str

    # Progression
    default_xp_per_level: int = DEFAULT_XP_PER_LEVEL
    progression_function: str | None = None  # "module:attribute"
    floor_level_zero: bool = True
    multi_tier_advance: bool = False
    ranks: list[dict] = field(default_factory=lambda: [dict(r) for r in DEFAULT_RANKS])
    achievements: list[dict] = field(default_factory=list)

    # Persistence
    autosave_enabled: bool = True
    autosave_interval_seconds: float = DEFAULT_AUTOSAVE_INTERVAL_SECONDS
    activity_history_ceiling: int = DEFAULT_ACTIVITY_HISTORY_CEILING

    # Event handler modules exposing setup(bus)
    handler_modules: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> LevelConfig:
    """Read *path* and return a :class:`LevelConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    RuntimeError
        If neither the file nor ``DATABASE_URL`` provides a store
        connection string.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    load_dotenv()
    store_url = raw.get("store_connection_string") or os.getenv("DATABASE_URL")
    if not store_url:
        raise RuntimeError(
            "store_connection_string is not set.  "
            "Add it to config.yaml or set DATABASE_URL in .env."
        )

    return LevelConfig(
        store_connection_string=store_url,
        default_xp_per_level=int(raw.get("default_xp_per_level", DEFAULT_XP_PER_LEVEL)),
        progression_function=raw.get("progression_function") or None,
        floor_level_zero=bool(raw.get("floor_level_zero", True)),
        multi_tier_advance=bool(raw.get("multi_tier_advance", False)),
        ranks=list(raw["ranks"]) if raw.get("ranks") else [dict(r) for r in DEFAULT_RANKS],
        achievements=list(raw.get("achievements") or []),
        autosave_enabled=bool(raw.get("autosave_enabled", True)),
        autosave_interval_seconds=float(
            raw.get("autosave_interval_seconds", DEFAULT_AUTOSAVE_INTERVAL_SECONDS)
        ),
        activity_history_ceiling=int(
            raw.get("activity_history_ceiling", DEFAULT_ACTIVITY_HISTORY_CEILING)
        ),
        handler_modules=tuple(raw.get("handler_modules") or ()),
    )
