"""
levelcore.engine.manager — The Progression Engine
==================================================

:class:`LevelManager` is the one object embedding code talks to.  It owns
the guild cache, the event bus and the persistence synchronizer, and
implements every progression operation:

* ``add_xp``        — award XP; may level up and advance one rank tier.
* ``level_up``      — manual bypass, one level up.
* ``degrade_level`` — one level down.
* ``rank_up``       — jump to the next tier's minimum level.
* ``degrade_rank``  — drop to the previous tier's minimum level.
* ``leaderboard``   — top-N members of a guild by level.

Every operation validates its ids before touching the cache, finishes all
awaited I/O (the identity lookup for a new member) before mutating, and
emits its events only once the record is consistent again.  Business
no-ops (already at the top tier, already level 0 …) return ``False``.

Usage::

    manager = LevelManager(cfg, engine, DiscordIdentityResolver(bot))
    manager.bus.subscribe(LevelEventType.LEVEL_UP, announce)
    await manager.start()

    await manager.add_xp(150, str(message.author.id), str(message.guild.id))
    top = manager.leaderboard(10, str(message.guild.id))

    await manager.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from levelcore.constants import DEFAULT_LEADERBOARD_LIMIT, GLOBAL_SCOPE
from levelcore.engine.achievements import Achievement
from levelcore.engine.cache import GuildCache, GuildScope
from levelcore.engine.errors import ValidationError, validate_guild_id
from levelcore.engine.events import EventBus, LevelEvent, LevelEventType
from levelcore.engine.progression import (
    LinearProgression,
    ProgressionFunction,
    ThresholdPolicy,
    load_progression_function,
)
from levelcore.engine.ranks import RankTable, RankTier
from levelcore.engine.users import UserRecord
from levelcore.services.handlers import load_handler_modules
from levelcore.services.persistence import PersistenceSynchronizer

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from levelcore.config import LevelConfig
    from levelcore.services.identity import IdentityResolver

logger = logging.getLogger(__name__)

__all__ = ["LevelManager"]


def _require_positive_int(value: object, label: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{label} must be a positive integer, got {value!r}.")
    return value


class LevelManager:
    """Leveling engine bound to one store and one identity provider.

    Parameters
    ----------
    cfg:
        Parsed :class:`~levelcore.config.LevelConfig`.
    engine:
        SQLAlchemy :class:`Engine` for the document store.
    identity:
        Resolves display names for members seen for the first time.
    progression_function:
        Overrides both ``cfg.progression_function`` and the linear default.
    default_extension:
        Template for each new record's opaque ``extension`` (deep-copied).
    bus:
        An existing :class:`EventBus` to share; a fresh one by default.
    """

    def __init__(
        self,
        cfg: LevelConfig,
        engine: Engine,
        identity: IdentityResolver,
        *,
        progression_function: ProgressionFunction | None = None,
        default_extension: Any = None,
        bus: EventBus | None = None,
    ) -> None:
        self.cfg = cfg
        self.engine = engine
        self.bus = bus if bus is not None else EventBus()

        if progression_function is None:
            if cfg.progression_function:
                progression_function = load_progression_function(cfg.progression_function)
            else:
                progression_function = LinearProgression(cfg.default_xp_per_level)
        self.policy = ThresholdPolicy(
            progression_function,
            floor_level_zero=cfg.floor_level_zero,
            multi_tier_advance=cfg.multi_tier_advance,
        )

        self.cache = GuildCache(
            identity,
            default_ranks=RankTable.from_dicts(cfg.ranks),
            policy=self.policy,
            default_achievements=[Achievement.from_dict(a) for a in cfg.achievements],
            default_extension=default_extension,
        )
        self.persistence = PersistenceSynchronizer(
            engine,
            self.cache,
            activity_ceiling=cfg.activity_history_ceiling,
            interval=cfg.autosave_interval_seconds,
        )
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    async def start(self) -> None:
        """Register handler modules, load the store, start autosave."""
        load_handler_modules(self.bus, self.cfg.handler_modules)
        guilds = await self.persistence.load_all()
        if self.cfg.autosave_enabled:
            self.persistence.start_autosave()
        self._ready = True
        logger.info("LevelManager ready (%d guilds cached)", guilds)
        self.bus.emit(LevelEvent(LevelEventType.MANAGER_READY, data={"guilds": guilds}))

    async def close(self) -> None:
        """Stop autosave and run a final flush."""
        await self.persistence.stop_autosave()
        await self.persistence.save_data()
        await self.bus.drain()
        self._ready = False
        logger.info("LevelManager closed")

    async def save_data(self) -> int | None:
        """Flush the cache to the store now (see :class:`PersistenceSynchronizer`)."""
        return await self.persistence.save_data()

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------
    async def _resolve(self, user_id: str, guild_id: str) -> tuple[GuildScope, UserRecord]:
        user = await self.cache.resolve_user(guild_id, user_id)
        return self.cache.resolve_scope(guild_id), user

    def _emit(
        self,
        event_type: LevelEventType,
        guild_id: str,
        user: UserRecord,
        author: Any = None,
        **data: Any,
    ) -> None:
        self.bus.emit(LevelEvent(
            type=event_type,
            guild_id=guild_id,
            user_id=user.user_id,
            user=user.snapshot(),
            author=author,
            data=data,
        ))

    def _advance_tier(self, scope: GuildScope, user: UserRecord) -> RankTier | None:
        """Step up while the level is past the tier; returns the old tier if it moved."""
        old = user.rank
        while user.level > user.rank.max_level:
            nxt = scope.ranks.tier_following(user.rank)
            if nxt is None:
                break
            user.rank = nxt
            if not self.policy.multi_tier_advance:
                break
        return old if user.rank != old else None

    def _regress_tier(self, scope: GuildScope, user: UserRecord) -> RankTier | None:
        """Step down while the level is below the tier; returns the old tier if it moved."""
        old = user.rank
        while user.level < user.rank.min_level:
            prev = scope.ranks.tier_preceding(user.rank)
            if prev is None:
                break
            user.rank = prev
            if not self.policy.multi_tier_advance:
                break
        return old if user.rank != old else None

    # -----------------------------------------------------------------------
    # XP & levels
    # -----------------------------------------------------------------------
    async def add_xp(self, amount: int, user_id: str, guild_id: str = GLOBAL_SCOPE) -> bool:
        """Award *amount* XP.

        Crossing ``xp_to_next_level`` raises the level by one; the threshold
        is recomputed at the new level and subtracted from the carried XP
        (never below zero).  If the new level is past the tier's range the
        member moves up to the following tier.

        Emits ``XP_ADDED``, then ``LEVEL_UP`` and ``RANK_UP`` as they apply.
        """
        self.cache.validate_ids(guild_id, user_id)
        _require_positive_int(amount, "XP amount")

        scope, user = await self._resolve(user_id, guild_id)

        old_level = user.level
        old_rank: RankTier | None = None
        user.xp += amount
        leveled = user.xp >= user.xp_to_next_level
        if leveled:
            user.level += 1
            user.xp_to_next_level = self.policy.threshold(user.level, user.xp)
            user.xp = max(user.xp - user.xp_to_next_level, 0)
            old_rank = self._advance_tier(scope, user)

        self._emit(LevelEventType.XP_ADDED, guild_id, user, xp=amount)
        if leveled:
            self._emit(LevelEventType.LEVEL_UP, guild_id, user, old_level=old_level)
        if old_rank is not None:
            self._emit(LevelEventType.RANK_UP, guild_id, user, old_rank=old_rank.to_dict())
        return True

    async def level_up(
        self, user_id: str, author: Any = None, guild_id: str = GLOBAL_SCOPE,
    ) -> bool:
        """Manually raise a member one level (XP resets to 0)."""
        self.cache.validate_ids(guild_id, user_id)
        scope, user = await self._resolve(user_id, guild_id)

        old_level = user.level
        user.level += 1
        user.xp = 0
        user.xp_to_next_level = self.policy.threshold(user.level)
        old_rank = self._advance_tier(scope, user)

        self._emit(LevelEventType.BYPASS, guild_id, user, author, old_level=old_level)
        if old_rank is not None:
            self._emit(LevelEventType.RANK_UP, guild_id, user, author, old_rank=old_rank.to_dict())
        return True

    async def degrade_level(
        self, user_id: str, author: Any = None, guild_id: str = GLOBAL_SCOPE,
    ) -> bool:
        """Lower a member one level; ``False`` if already at level 0."""
        self.cache.validate_ids(guild_id, user_id)
        scope, user = await self._resolve(user_id, guild_id)

        if user.level == 0:
            return False

        old_level = user.level
        user.level -= 1
        user.xp = 0
        user.xp_to_next_level = self.policy.threshold(user.level)
        old_rank = self._regress_tier(scope, user)

        self._emit(LevelEventType.DEGRADE_LEVEL, guild_id, user, author, old_level=old_level)
        if old_rank is not None:
            # Tier changes out of degrade_level are announced as RANK_UP
            self._emit(LevelEventType.RANK_UP, guild_id, user, author, old_rank=old_rank.to_dict())
        return True

    # -----------------------------------------------------------------------
    # Ranks
    # -----------------------------------------------------------------------
    async def rank_up(
        self, user_id: str, guild_id: str = GLOBAL_SCOPE, author: Any = None,
    ) -> bool:
        """Move a member to the next tier's minimum level; ``False`` at the top."""
        self.cache.validate_ids(guild_id, user_id)
        scope, user = await self._resolve(user_id, guild_id)

        nxt = scope.ranks.tier_following(user.rank)
        if nxt is None:
            return False

        old_rank, old_level = user.rank, user.level
        user.rank = nxt
        user.level = nxt.min_level
        user.xp = 0
        user.xp_to_next_level = self.policy.threshold(user.level)

        self._emit(
            LevelEventType.RANK_UP, guild_id, user, author,
            old_rank=old_rank.to_dict(), old_level=old_level,
        )
        return True

    async def degrade_rank(
        self, user_id: str, author: Any = None, guild_id: str = GLOBAL_SCOPE,
    ) -> bool:
        """Move a member to the previous tier's minimum level; ``False`` at the bottom."""
        self.cache.validate_ids(guild_id, user_id)
        scope, user = await self._resolve(user_id, guild_id)

        prev = scope.ranks.tier_preceding(user.rank)
        if prev is None:
            return False

        old_rank, old_level = user.rank, user.level
        user.rank = prev
        user.level = prev.min_level
        user.xp = 0
        user.xp_to_next_level = self.policy.threshold(user.level)

        self._emit(
            LevelEventType.DEGRADE_RANK, guild_id, user, author,
            old_rank=old_rank.to_dict(), old_level=old_level,
        )
        return True

    def append_ranks(
        self, tiers: Iterable[RankTier | dict], guild_id: str = GLOBAL_SCOPE,
    ) -> list[RankTier]:
        """Add tiers to a guild's table; members' ranks are re-resolved."""
        return self.cache.resolve_scope(guild_id).append_ranks(tiers)

    def remove_ranks(
        self, ordinals: Iterable[int], guild_id: str = GLOBAL_SCOPE,
    ) -> list[RankTier]:
        """Drop tiers by ordinal; members on a removed tier are re-resolved."""
        return self.cache.resolve_scope(guild_id).remove_ranks(ordinals)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------
    def leaderboard(
        self, limit: int = DEFAULT_LEADERBOARD_LIMIT, guild_id: str = GLOBAL_SCOPE,
    ) -> list[UserRecord]:
        """Up to *limit* snapshots ordered by level, highest first.

        Members on equal levels keep their cache order.  An unknown guild
        yields an empty list.
        """
        validate_guild_id(guild_id)
        _require_positive_int(limit, "Leaderboard limit")

        scope = self.cache.get_scope(guild_id)
        if scope is None:
            return []
        ranked = sorted(scope.users.values(), key=lambda u: u.level, reverse=True)
        return [u.snapshot() for u in ranked[:limit]]

    async def get_user(self, user_id: str, guild_id: str = GLOBAL_SCOPE) -> UserRecord:
        """The live record (created on first sight)."""
        return await self.cache.resolve_user(guild_id, user_id)

    async def record_activity(
        self, user_id: str, activity_id: str | int, guild_id: str = GLOBAL_SCOPE,
    ) -> None:
        """Append an opaque activity id (e.g. a message id) to the member's history."""
        user = await self.cache.resolve_user(guild_id, user_id)
        user.recent_activity.append(str(activity_id))

    # -----------------------------------------------------------------------
    # Achievements
    # -----------------------------------------------------------------------
    def append_achievement(
        self, achievement: Achievement | dict, guild_id: str = GLOBAL_SCOPE,
    ) -> Achievement:
        return self.cache.resolve_scope(guild_id).append_achievement(achievement)

    def delete_achievement(self, name: str, guild_id: str = GLOBAL_SCOPE) -> Achievement:
        return self.cache.resolve_scope(guild_id).delete_achievement(name)

    async def progress_achievement(
        self, user_id: str, name: str, amount: int = 1, guild_id: str = GLOBAL_SCOPE,
    ) -> bool:
        """Advance a member towards *name*; ``True`` if this call completed it.

        Completion awards the achievement's reward through :meth:`add_xp`,
        so the usual XP / level / rank events follow.
        """
        self.cache.validate_ids(guild_id, user_id)
        _require_positive_int(amount, "Progress amount")

        scope, user = await self._resolve(user_id, guild_id)
        achievement = scope.achievement(name)
        if achievement is None:
            raise ValidationError(f"Achievement {name!r} not found in guild {guild_id}.")

        progress = user.progress_for(name)
        if progress is None:
            progress = achievement.new_progress()
            user.achievements.append(progress)

        if not progress.advance(achievement, amount):
            return False

        logger.info("User %s completed achievement %r in guild %s", user_id, name, guild_id)
        if achievement.reward > 0:
            await self.add_xp(achievement.reward, user_id, guild_id)
        return True
