"""
levelcore.engine.users — UserRecord
====================================

The mutable per-member progression state held in the guild cache.  Only
the :class:`~levelcore.engine.manager.LevelManager` mutates records;
everything handed to event handlers or leaderboard callers is a
:meth:`UserRecord.snapshot` copy.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from levelcore.engine.achievements import AchievementProgress
from levelcore.engine.errors import ValidationError, validate_user_id
from levelcore.engine.ranks import RankTable, RankTier

__all__ = ["UserRecord"]


@dataclass(slots=True)
class UserRecord:
    user_id: str
    display_name: str
    rank: RankTier
    xp_to_next_level: int
    xp: int = 0
    level: int = 0
    recent_activity: list[str] = field(default_factory=list)
    extension: Any = None
    achievements: list[AchievementProgress] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"<UserRecord id={self.user_id} name={self.display_name!r} "
            f"lvl={self.level} xp={self.xp}/{self.xp_to_next_level} rank={self.rank.name!r}>"
        )

    def snapshot(self) -> UserRecord:
        """Deep copy, safe to hand to code outside the engine."""
        return copy.deepcopy(self)

    def progress_for(self, name: str) -> AchievementProgress | None:
        for entry in self.achievements:
            if entry.name == name:
                return entry
        return None

    def trim_activity(self, ceiling: int) -> int:
        """Keep only the newest *ceiling* activity ids; returns how many were dropped."""
        excess = len(self.recent_activity) - ceiling
        if excess <= 0:
            return 0
        del self.recent_activity[:excess]
        return excess

    # -------------------------------------------------------------------
    # Document (de)serialisation
    # -------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "xp": self.xp,
            "level": self.level,
            "xp_to_next_level": self.xp_to_next_level,
            "rank": self.rank.to_dict(),
            "recent_activity": list(self.recent_activity),
            "extension": copy.deepcopy(self.extension),
            "achievements": [a.to_dict() for a in self.achievements],
        }

    @classmethod
    def from_dict(cls, data: dict, ranks: RankTable) -> UserRecord:
        """Rebuild a record, re-resolving its rank against *ranks*.

        Accepts the legacy ``id``/``userId``, ``username`` and
        ``maxXpToLevelUp``/``messages`` keys.

        Raises
        ------
        ValidationError
            If *data* is not a mapping, the id is not a digit string, or a
            numeric field cannot be read.
        """
        if not isinstance(data, dict):
            raise ValidationError(f"User entry must be a mapping, got {type(data).__name__}.")
        try:
            user_id = validate_user_id(str(data.get("user_id") or data.get("userId") or data["id"]))
            level = max(int(data.get("level", 0)), 0)
            xp = max(int(data.get("xp", 0)), 0)
            threshold = int(data.get("xp_to_next_level") or data.get("maxXpToLevelUp") or 1)
            activity = data.get("recent_activity", data.get("messages")) or []
            if not isinstance(activity, list):
                raise TypeError(f"activity history must be a list, got {type(activity).__name__}")
            achievements = [
                AchievementProgress.from_dict(a) for a in data.get("achievements") or []
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed user document: {exc}") from exc

        return cls(
            user_id=user_id,
            display_name=str(data.get("display_name") or data.get("username") or ""),
            rank=ranks.resolve(data.get("rank"), level),
            xp_to_next_level=max(threshold, 1),
            xp=xp,
            level=level,
            recent_activity=[str(m) for m in activity],
            extension=data.get("extension", data.get("extraData")),
            achievements=achievements,
        )
