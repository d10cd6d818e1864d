"""
levelcore.services.identity — Display-Name Resolution
======================================================

The guild cache needs a display name when it creates a member record.
Anything with an ``async resolve(user_id) -> str`` method will do; the
:class:`DiscordIdentityResolver` adapter covers the common case of a
``discord.py`` client.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import discord

from levelcore.engine.errors import IdentityLookupError

logger = logging.getLogger(__name__)

__all__ = ["DiscordIdentityResolver", "IdentityResolver", "StaticIdentityResolver"]


@runtime_checkable
class IdentityResolver(Protocol):
    async def resolve(self, user_id: str) -> str:
        """Return the display name for *user_id* or raise."""
        ...


class DiscordIdentityResolver:
    """Resolve names through a ``discord.Client``.

    Checks the client's user cache first and only falls back to an API
    call (``fetch_user``) on a miss.
    """

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def resolve(self, user_id: str) -> str:
        snowflake = int(user_id)
        user = self.client.get_user(snowflake)
        if user is None:
            try:
                user = await self.client.fetch_user(snowflake)
            except discord.NotFound as exc:
                raise IdentityLookupError(user_id, "unknown user") from exc
            except discord.HTTPException as exc:
                raise IdentityLookupError(user_id, f"HTTP {exc.status}") from exc
        return user.name


class StaticIdentityResolver:
    """Resolver backed by a plain mapping; unknown ids get a fallback name.

    Useful for scripts, imports and tests that run without a bot.
    """

    def __init__(self, names: dict[str, str] | None = None, fallback: str = "unknown") -> None:
        self.names = dict(names or {})
        self.fallback = fallback

    async def resolve(self, user_id: str) -> str:
        return self.names.get(user_id, self.fallback)
