"""
levelcore.engine.cache — Guild Scopes & the Guild Cache
========================================================

Two-level in-memory state: ``guild_id → GuildScope`` and, inside each
scope, ``user_id → UserRecord``.  Scopes and records are created lazily
the first time they are touched.

User creation awaits the identity collaborator, which makes it the one
real race in the system: two coroutines asking for the same new member
at the same time.  :meth:`GuildCache.resolve_user` keeps one in-flight
creation task per ``(guild_id, user_id)``; later callers await that task
and receive the very same record.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from levelcore.engine.achievements import Achievement
from levelcore.engine.errors import (
    IdentityLookupError,
    ValidationError,
    validate_guild_id,
    validate_user_id,
)
from levelcore.engine.progression import ThresholdPolicy
from levelcore.engine.ranks import RankTable, RankTier
from levelcore.engine.users import UserRecord

if TYPE_CHECKING:
    from levelcore.services.identity import IdentityResolver

logger = logging.getLogger(__name__)

__all__ = ["GuildCache", "GuildScope"]


# ---------------------------------------------------------------------------
# GuildScope: one guild's users, ranks and achievements
# ---------------------------------------------------------------------------
class GuildScope:
    """Per-guild namespace.

    ``ranks`` starts as a copy of the manager's default table; changing it
    through :meth:`append_ranks` / :meth:`remove_ranks` re-resolves every
    member's rank so records never point at a tier the table lacks.
    """

    def __init__(
        self,
        guild_id: str,
        ranks: RankTable,
        achievements: Iterable[Achievement] = (),
        users: dict[str, UserRecord] | None = None,
    ) -> None:
        self.guild_id = guild_id
        self.ranks = ranks
        self.achievements: list[Achievement] = list(achievements)
        self.users: dict[str, UserRecord] = users if users is not None else {}

    def __repr__(self) -> str:
        return f"<GuildScope id={self.guild_id} users={len(self.users)} ranks={len(self.ranks)}>"

    # -------------------------------------------------------------------
    # Ranks
    # -------------------------------------------------------------------
    def append_ranks(self, tiers: Iterable[RankTier | dict]) -> list[RankTier]:
        result = self.ranks.append(tiers)
        self._reresolve_ranks()
        return result

    def remove_ranks(self, ordinals: Iterable[int]) -> list[RankTier]:
        result = self.ranks.remove(ordinals)
        self._reresolve_ranks()
        return result

    def _reresolve_ranks(self) -> None:
        for user in self.users.values():
            user.rank = self.ranks.resolve(user.rank, user.level)

    # -------------------------------------------------------------------
    # Achievements
    # -------------------------------------------------------------------
    def achievement(self, name: str) -> Achievement | None:
        for ach in self.achievements:
            if ach.name == name:
                return ach
        return None

    def append_achievement(self, achievement: Achievement | dict) -> Achievement:
        if isinstance(achievement, dict):
            achievement = Achievement.from_dict(achievement)
        if self.achievement(achievement.name) is not None:
            raise ValidationError(
                f"Achievement {achievement.name!r} already exists in guild {self.guild_id}."
            )
        self.achievements.append(achievement)
        for user in self.users.values():
            if user.progress_for(achievement.name) is None:
                user.achievements.append(achievement.new_progress())
        return achievement

    def delete_achievement(self, name: str) -> Achievement:
        achievement = self.achievement(name)
        if achievement is None:
            raise ValidationError(f"Achievement {name!r} not found in guild {self.guild_id}.")
        self.achievements.remove(achievement)
        for user in self.users.values():
            user.achievements = [a for a in user.achievements if a.name != name]
        return achievement

    # -------------------------------------------------------------------
    # Document (de)serialisation
    # -------------------------------------------------------------------
    def to_document(self) -> dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "ranks": self.ranks.to_dicts(),
            "achievements": [a.to_dict() for a in self.achievements],
            "users": [u.to_dict() for u in self.users.values()],
        }

    @classmethod
    def from_document(cls, document: dict, default_ranks: RankTable) -> GuildScope:
        """Rebuild a scope from a stored document.

        A malformed achievement or user entry is logged and dropped; the
        rest of the guild still loads.

        Raises
        ------
        ValidationError
            If the guild id or the rank table is malformed, or if
            ``achievements`` / ``users`` is not a list.
        """
        guild_id = validate_guild_id(document.get("guild_id"))
        raw_ranks = document.get("ranks")
        ranks = RankTable(raw_ranks) if raw_ranks else default_ranks.copy()

        achievements: list[Achievement] = []
        for raw in _entries(document, "achievements", guild_id):
            try:
                achievement = Achievement.from_dict(raw)
            except ValidationError as exc:
                logger.error("Guild %s: dropping malformed achievement: %s", guild_id, exc)
                continue
            if any(a.name == achievement.name for a in achievements):
                logger.error("Guild %s: dropping duplicate achievement %r", guild_id, achievement.name)
                continue
            achievements.append(achievement)

        users: dict[str, UserRecord] = {}
        for raw in _entries(document, "users", guild_id):
            try:
                user = UserRecord.from_dict(raw, ranks)
            except ValidationError as exc:
                logger.error("Guild %s: dropping malformed user entry: %s", guild_id, exc)
                continue
            # Members get an entry for every guild achievement
            for ach in achievements:
                if user.progress_for(ach.name) is None:
                    user.achievements.append(ach.new_progress())
            users[user.user_id] = user

        return cls(guild_id, ranks, achievements, users)


def _entries(document: dict, key: str, guild_id: str) -> list:
    raw = document.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(
            f"Guild {guild_id}: {key} must be a list, got {type(raw).__name__}."
        )
    return raw


# ---------------------------------------------------------------------------
# GuildCache: guild_id → GuildScope with lazy, de-duplicated creation
# ---------------------------------------------------------------------------
class GuildCache:
    """Owner of every :class:`GuildScope` for one manager.

    Usage::

        cache = GuildCache(identity, default_ranks=table, policy=policy)
        scope = cache.resolve_scope("1234")
        user = await cache.resolve_user("1234", "5678")
    """

    def __init__(
        self,
        identity: IdentityResolver,
        *,
        default_ranks: RankTable,
        policy: ThresholdPolicy,
        default_achievements: Iterable[Achievement] = (),
        default_extension: Any = None,
    ) -> None:
        self._identity = identity
        self._default_ranks = default_ranks
        self._default_achievements: list[Achievement] = list(default_achievements)
        self._default_extension = default_extension
        self._policy = policy
        self._scopes: dict[str, GuildScope] = {}
        # (guild_id, user_id) → in-flight creation task
        self._pending: dict[tuple[str, str], asyncio.Task[UserRecord]] = {}

    @property
    def default_ranks(self) -> RankTable:
        return self._default_ranks

    @default_ranks.setter
    def default_ranks(self, table: RankTable) -> None:
        # Applies to scopes created from now on; existing guilds keep theirs.
        self._default_ranks = table

    # -------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._scopes)

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._scopes

    def scopes(self) -> list[GuildScope]:
        return list(self._scopes.values())

    def get_scope(self, guild_id: str) -> GuildScope | None:
        return self._scopes.get(guild_id)

    def resolve_scope(self, guild_id: str) -> GuildScope:
        validate_guild_id(guild_id)
        scope = self._scopes.get(guild_id)
        if scope is None:
            scope = GuildScope(
                guild_id,
                self._default_ranks.copy(),
                self._default_achievements,
            )
            self._scopes[guild_id] = scope
            logger.debug("Created guild scope %s", guild_id)
        return scope

    def replace(self, scopes: Iterable[GuildScope]) -> None:
        """Swap the whole cache for *scopes* (bulk load)."""
        self._scopes = {s.guild_id: s for s in scopes}

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    @staticmethod
    def validate_ids(guild_id: str, user_id: str) -> None:
        """Raise :class:`ValidationError` unless both ids are well formed."""
        validate_guild_id(guild_id)
        validate_user_id(user_id)

    def get_user(self, guild_id: str, user_id: str) -> UserRecord | None:
        """Cached record or ``None`` — never creates."""
        scope = self._scopes.get(guild_id)
        return scope.users.get(user_id) if scope is not None else None

    async def resolve_user(self, guild_id: str, user_id: str) -> UserRecord:
        """Return the record for ``(guild_id, user_id)``, creating it if needed.

        Raises
        ------
        ValidationError
            On malformed ids (before touching the cache).
        IdentityLookupError
            If the display-name lookup for a new member fails.
        """
        self.validate_ids(guild_id, user_id)

        existing = self.get_user(guild_id, user_id)
        if existing is not None:
            return existing

        key = (guild_id, user_id)
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._create_user(guild_id, user_id))
            self._pending[key] = task
            task.add_done_callback(lambda _t, key=key: self._pending.pop(key, None))
        # shield: one caller being cancelled must not cancel the creation
        return await asyncio.shield(task)

    async def _create_user(self, guild_id: str, user_id: str) -> UserRecord:
        try:
            display_name = await self._identity.resolve(user_id)
        except IdentityLookupError:
            logger.warning("Identity lookup failed for user %s", user_id)
            raise
        except Exception as exc:
            logger.warning("Identity lookup failed for user %s: %s", user_id, exc)
            raise IdentityLookupError(user_id, str(exc)) from exc

        scope = self.resolve_scope(guild_id)
        existing = scope.users.get(user_id)
        if existing is not None:
            # A bulk load landed while we were waiting on the lookup
            return existing

        record = UserRecord(
            user_id=user_id,
            display_name=display_name,
            rank=scope.ranks.lowest,
            xp_to_next_level=self._policy.threshold(0),
            extension=copy.deepcopy(self._default_extension),
            achievements=[a.new_progress() for a in scope.achievements],
        )
        scope.users[user_id] = record
        logger.debug("Created user %s in guild %s", user_id, guild_id)
        return record
