"""
levelcore.constants — Shared Constants
=======================================

Single source of truth for identifier formats, the reserved global scope,
the built-in rank table and the tuning defaults.  Import from here instead
of duplicating values across the engine and services.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------
# Snowflake-style identifiers are plain digit strings.
ID_PATTERN = re.compile(r"^[0-9]+$")

# Reserved scope for contexts without a guild.
GLOBAL_SCOPE = "global"


# ---------------------------------------------------------------------------
# Tuning defaults
# ---------------------------------------------------------------------------
DEFAULT_XP_PER_LEVEL = 2500
DEFAULT_AUTOSAVE_INTERVAL_SECONDS = 60 * 60 * 3
DEFAULT_ACTIVITY_HISTORY_CEILING = 2000
DEFAULT_LEADERBOARD_LIMIT = 10


# ---------------------------------------------------------------------------
# Built-in rank table (name, color, ordinal, min_level, max_level)
# ---------------------------------------------------------------------------
DEFAULT_RANKS: list[dict[str, object]] = [
    {"name": "Beta", "color": "#FCFFE7", "ordinal": 0, "min_level": 0, "max_level": 14},
    {"name": "Novice", "color": "#FFC6D3", "ordinal": 1, "min_level": 15, "max_level": 29},
    {"name": "Initiate", "color": "#BAD7E9", "ordinal": 2, "min_level": 30, "max_level": 44},
    {"name": "Wanderer", "color": "#3A4F7A", "ordinal": 3, "min_level": 45, "max_level": 59},
    {"name": "Standard", "color": "Orange", "ordinal": 4, "min_level": 60, "max_level": 74},
    {"name": "Guild Keeper", "color": "#2B3467", "ordinal": 5, "min_level": 75, "max_level": 89},
    {"name": "Omega", "color": "#862433", "ordinal": 6, "min_level": 90, "max_level": 104},
    {"name": "Alpha Omega", "color": "#EB455F", "ordinal": 7, "min_level": 105, "max_level": 120},
]
