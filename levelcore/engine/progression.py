"""
levelcore.engine.progression — XP Threshold Functions
======================================================

A progression function maps ``(level, xp)`` to the XP needed to reach the
next level.  It must be pure; the engine may call it any number of times.

The default is linear — ``level * base_xp_per_level`` — with a base of
2500.  :class:`ThresholdPolicy` decides how the engine feeds levels into
the function:

* ``floor_level_zero`` (default ``True``): level 0 is evaluated as level 1,
  so a brand-new member needs one full level's worth of XP instead of
  levelling up on their first award.
* ``multi_tier_advance`` (default ``False``): one tier step per XP award,
  even if a single jump crosses several tier boundaries.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from dataclasses import dataclass

from levelcore.constants import DEFAULT_XP_PER_LEVEL
from levelcore.engine.errors import ValidationError

__all__ = [
    "LinearProgression",
    "ProgressionFunction",
    "ThresholdPolicy",
    "load_progression_function",
]

ProgressionFunction = Callable[[int, int], int]


@dataclass(frozen=True, slots=True)
class LinearProgression:
    """``threshold = level * base_xp_per_level``."""

    base_xp_per_level: int = DEFAULT_XP_PER_LEVEL

    def __post_init__(self) -> None:
        if not isinstance(self.base_xp_per_level, int) or self.base_xp_per_level <= 0:
            raise ValidationError("base_xp_per_level must be a positive integer.")

    def __call__(self, level: int, xp: int) -> int:
        return level * self.base_xp_per_level


@dataclass(frozen=True, slots=True)
class ThresholdPolicy:
    """How the engine applies a :data:`ProgressionFunction`."""

    function: ProgressionFunction
    floor_level_zero: bool = True
    multi_tier_advance: bool = False

    def threshold(self, level: int, xp: int = 0) -> int:
        """XP required to leave *level*; always at least 1."""
        effective = max(level, 1) if self.floor_level_zero else level
        return max(int(self.function(effective, xp)), 1)


def load_progression_function(path: str) -> ProgressionFunction:
    """Import a ``"package.module:attribute"`` callable.

    Raises
    ------
    ValidationError
        If the path is malformed, the import fails, or the target is not
        callable.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValidationError(
            f"progression_function must look like 'module:attribute', got {path!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValidationError(f"Cannot import {module_name!r}: {exc}") from exc

    func = getattr(module, attr, None)
    if not callable(func):
        raise ValidationError(f"{path!r} is not a callable.")
    return func
