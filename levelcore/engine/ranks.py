"""
levelcore.engine.ranks — Rank Tiers & the Rank Table
=====================================================

A rank table is an ordered set of tiers, each covering a band of levels.
Ordering is by ``ordinal`` (higher = more senior); promotion and demotion
always move exactly one ordinal.  Level ranges may leave gaps — the engine
only ever asks "which tier follows / precedes this one".

This module is pure data — no I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass

from levelcore.engine.errors import ValidationError

logger = logging.getLogger(__name__)

__all__ = ["RankTable", "RankTier"]

# Field aliases accepted from older documents / configs
_ALIASES: dict[str, str] = {
    "nameplate": "name",
    "priority": "ordinal",
    "value": "ordinal",
    "min": "min_level",
    "max": "max_level",
}

_REQUIRED = ("name", "color", "ordinal", "min_level", "max_level")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# RankTier: one band of levels
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RankTier:
    """An immutable rank definition, validated on construction."""

    name: str
    color: str
    ordinal: int
    min_level: int
    max_level: int

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Rank name must be a non-empty string.")
        if not isinstance(self.color, str) or not self.color:
            raise ValidationError(f"Rank {self.name!r}: color must be a non-empty string.")
        for key in ("ordinal", "min_level", "max_level"):
            value = getattr(self, key)
            if not _is_int(value) or value < 0:
                raise ValidationError(
                    f"Rank {self.name!r}: {key} must be a non-negative integer."
                )
        if self.max_level < self.min_level:
            raise ValidationError(
                f"Rank {self.name!r}: max_level ({self.max_level}) is below "
                f"min_level ({self.min_level})."
            )

    @classmethod
    def from_dict(cls, data: dict) -> RankTier:
        """Build a tier from a plain mapping, accepting legacy key names."""
        if not isinstance(data, dict):
            raise ValidationError(f"Rank must be a mapping, got {type(data).__name__}.")
        normalized = {_ALIASES.get(k, k): v for k, v in data.items()}
        missing = [k for k in _REQUIRED if normalized.get(k) is None]
        if missing:
            raise ValidationError(f"Rank is missing required field(s): {', '.join(missing)}")
        return cls(**{k: normalized[k] for k in _REQUIRED})

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def covers(self, level: int) -> bool:
        return self.min_level <= level <= self.max_level


# ---------------------------------------------------------------------------
# RankTable: ordered, validated tiers
# ---------------------------------------------------------------------------
class RankTable:
    """Ordered collection of :class:`RankTier` with unique ordinals.

    Usage::

        table = RankTable.from_dicts(DEFAULT_RANKS)
        nxt = table.tier_following(user.rank)   # None at the top
        table.append([RankTier("Mythic", "#fff", 8, 121, 150)])
    """

    def __init__(self, tiers: Iterable[RankTier | dict]) -> None:
        self._tiers: list[RankTier] = self.validate(tiers)

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------
    @staticmethod
    def validate(tiers: Iterable[RankTier | dict]) -> list[RankTier]:
        """Return *tiers* as sorted :class:`RankTier` objects.

        Raises
        ------
        ValidationError
            On an empty table, a malformed tier, or a duplicate ordinal.
        """
        if isinstance(tiers, (str, bytes, dict)):
            raise ValidationError("Ranks must be a list of tiers.")
        built = [t if isinstance(t, RankTier) else RankTier.from_dict(t) for t in tiers]
        if not built:
            raise ValidationError("A rank table needs at least one tier.")

        seen: set[int] = set()
        for tier in built:
            if tier.ordinal in seen:
                raise ValidationError(
                    f"Duplicate rank ordinal {tier.ordinal} ({tier.name!r})."
                )
            seen.add(tier.ordinal)

        return sorted(built, key=lambda t: t.ordinal)

    @classmethod
    def from_dicts(cls, data: Iterable[dict]) -> RankTable:
        return cls(data)

    def to_dicts(self) -> list[dict[str, object]]:
        return [t.to_dict() for t in self._tiers]

    def copy(self) -> RankTable:
        return RankTable(self._tiers)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def tiers(self) -> tuple[RankTier, ...]:
        return tuple(self._tiers)

    @property
    def lowest(self) -> RankTier:
        return self._tiers[0]

    @property
    def highest(self) -> RankTier:
        return self._tiers[-1]

    def __iter__(self) -> Iterator[RankTier]:
        return iter(list(self._tiers))

    def __len__(self) -> int:
        return len(self._tiers)

    def __contains__(self, tier: object) -> bool:
        return tier in self._tiers

    def __repr__(self) -> str:
        return f"<RankTable {[t.ordinal for t in self._tiers]}>"

    def by_ordinal(self, ordinal: int) -> RankTier | None:
        for tier in self._tiers:
            if tier.ordinal == ordinal:
                return tier
        return None

    def tier_following(self, tier: RankTier) -> RankTier | None:
        """The tier with ``ordinal + 1``, or ``None`` at the top."""
        return self.by_ordinal(tier.ordinal + 1)

    def tier_preceding(self, tier: RankTier) -> RankTier | None:
        """The tier with ``ordinal - 1``, or ``None`` at the bottom."""
        if tier.ordinal == 0:
            return None
        return self.by_ordinal(tier.ordinal - 1)

    def tier_for_level(self, level: int) -> RankTier | None:
        """First tier (by ordinal) whose range covers *level*."""
        for tier in self._tiers:
            if tier.covers(level):
                return tier
        return None

    def resolve(self, tier: RankTier | dict | int | None, level: int) -> RankTier:
        """Map a possibly stale tier onto this table.

        Resolution order:
          1. same ordinal present in this table
          2. the tier covering *level*
          3. the lowest tier
        """
        ordinal: int | None = None
        if isinstance(tier, RankTier):
            ordinal = tier.ordinal
        elif isinstance(tier, dict):
            raw = tier.get("ordinal", tier.get("priority", tier.get("value")))
            ordinal = raw if _is_int(raw) else None
        elif _is_int(tier):
            ordinal = tier

        if ordinal is not None:
            found = self.by_ordinal(ordinal)
            if found is not None:
                return found
        return self.tier_for_level(level) or self.lowest

    # -------------------------------------------------------------------
    # Mutations (in place, re-validated)
    # -------------------------------------------------------------------
    def append(self, tiers: Iterable[RankTier | dict]) -> list[RankTier]:
        """Merge *tiers* into the table; returns the new sorted tiers."""
        if isinstance(tiers, (RankTier, dict)):
            tiers = [tiers]
        merged = self.validate([*self._tiers, *tiers])
        self._tiers = merged
        logger.debug("Rank table now has ordinals %s", [t.ordinal for t in merged])
        return list(merged)

    def remove(self, ordinals: Iterable[int]) -> list[RankTier]:
        """Drop tiers whose ordinal is in *ordinals*; returns the remainder."""
        doomed = set(ordinals)
        remaining = [t for t in self._tiers if t.ordinal not in doomed]
        if not remaining:
            raise ValidationError("Cannot remove every tier from a rank table.")
        self._tiers = remaining
        return list(remaining)
