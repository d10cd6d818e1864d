"""
levelcore.engine.achievements — Achievement Definitions & Progress
===================================================================

Guilds carry a list of achievement definitions; every member carries one
progress entry per definition.  Two kinds exist:

* ``ONE_ACTION``  — completes on the first progress tick (goal is 1).
* ``PROGRESSIVE`` — completes once progress reaches ``goal``.

Completing an achievement awards its ``reward`` as XP (the manager routes
that through the normal ``add_xp`` path).

This module is pure data — no I/O.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass

from levelcore.engine.errors import ValidationError

__all__ = [
    "Achievement",
    "AchievementProgress",
    "AchievementType",
]


class AchievementType(enum.IntEnum):
    PROGRESSIVE = 0
    ONE_ACTION = 1


def _coerce_type(value: object) -> AchievementType:
    if isinstance(value, AchievementType):
        return value
    if isinstance(value, str):
        try:
            return AchievementType[value.strip().upper()]
        except KeyError:
            pass
    elif isinstance(value, int) and not isinstance(value, bool):
        try:
            return AchievementType(value)
        except ValueError:
            pass
    raise ValidationError(f"Unknown achievement type: {value!r}")


@dataclass(frozen=True, slots=True)
class Achievement:
    """An achievement definition, validated on construction."""

    name: str
    description: str
    reward: int = 0
    type: AchievementType = AchievementType.ONE_ACTION
    thumbnail: str | None = None
    goal: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Achievement name must be a non-empty string.")
        if not isinstance(self.description, str):
            raise ValidationError(f"Achievement {self.name!r}: description must be a string.")
        if not isinstance(self.reward, int) or isinstance(self.reward, bool) or self.reward < 0:
            raise ValidationError(f"Achievement {self.name!r}: reward must be a non-negative integer.")
        if self.thumbnail is not None and not isinstance(self.thumbnail, str):
            raise ValidationError(f"Achievement {self.name!r}: thumbnail must be a string.")
        if not isinstance(self.goal, int) or isinstance(self.goal, bool) or self.goal < 1:
            raise ValidationError(f"Achievement {self.name!r}: goal must be a positive integer.")
        # frozen: bypass __setattr__ to normalise the enum
        object.__setattr__(self, "type", _coerce_type(self.type))
        if self.type is AchievementType.ONE_ACTION and self.goal != 1:
            raise ValidationError(f"Achievement {self.name!r}: one-action achievements have goal 1.")

    @classmethod
    def from_dict(cls, data: dict) -> Achievement:
        if not isinstance(data, dict):
            raise ValidationError(f"Achievement must be a mapping, got {type(data).__name__}.")
        if not data.get("name"):
            raise ValidationError("Achievement is missing required field: name")
        # Legacy documents stored progress as [current, max]
        goal = data.get("goal")
        if goal is None and isinstance(data.get("progress"), (list, tuple)) and len(data["progress"]) == 2:
            goal = data["progress"][1]
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            reward=data.get("reward", 0),
            type=data.get("type", AchievementType.ONE_ACTION),
            thumbnail=data.get("thumbnail"),
            goal=goal if goal is not None else 1,
        )

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["type"] = int(self.type)
        return data

    def new_progress(self) -> AchievementProgress:
        return AchievementProgress(name=self.name)


@dataclass(slots=True)
class AchievementProgress:
    """One member's progress towards one achievement."""

    name: str
    progress: int = 0
    completed: bool = False

    def advance(self, achievement: Achievement, amount: int) -> bool:
        """Add *amount*; return True only if this call completed it."""
        if self.completed:
            return False
        self.progress = min(self.progress + amount, achievement.goal)
        if self.progress >= achievement.goal:
            self.completed = True
            return True
        return False

    @classmethod
    def from_dict(cls, data: dict) -> AchievementProgress:
        """Accepts the legacy ``progress: [current, max]`` pair as well."""
        if not isinstance(data, dict):
            raise ValidationError(
                f"Achievement progress must be a mapping, got {type(data).__name__}."
            )
        progress = data.get("progress", 0)
        if isinstance(progress, (list, tuple)):
            if len(progress) != 2:
                raise ValidationError(f"Malformed achievement progress: {progress!r}")
            progress = progress[0]
        try:
            return cls(
                name=str(data["name"]),
                progress=max(int(progress or 0), 0),
                completed=bool(data.get("completed", False)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed achievement progress: {exc}") from exc

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
