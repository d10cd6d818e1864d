"""
levelcore.engine.errors — Exception Types
==========================================

Two kinds of failure leave the engine as exceptions:

* :class:`ValidationError` — the caller passed something malformed
  (bad identifier, non-positive XP, duplicate rank ordinal).  Raised
  before any state is touched.
* :class:`IdentityLookupError` — the identity collaborator could not
  resolve a new user, so no record was created.

Business no-ops (already at the top rank, already at level 0) are not
errors; the manager returns ``False`` for those.
"""

from __future__ import annotations

from levelcore.constants import GLOBAL_SCOPE, ID_PATTERN

__all__ = [
    "IdentityLookupError",
    "LevelCoreError",
    "ValidationError",
    "validate_guild_id",
    "validate_user_id",
]


class LevelCoreError(Exception):
    """Base class for every levelcore exception."""


class ValidationError(LevelCoreError, ValueError):
    """Malformed caller input."""


class IdentityLookupError(LevelCoreError):
    """The identity collaborator failed while creating a user record."""

    def __init__(self, user_id: str, reason: str) -> None:
        super().__init__(f"Could not resolve user {user_id}: {reason}")
        self.user_id = user_id


def validate_user_id(user_id: object) -> str:
    if not isinstance(user_id, str) or not ID_PATTERN.fullmatch(user_id):
        raise ValidationError(f"Invalid user id: {user_id!r}")
    return user_id


def validate_guild_id(guild_id: object) -> str:
    if not isinstance(guild_id, str):
        raise ValidationError(f"Invalid guild id: {guild_id!r}")
    if guild_id != GLOBAL_SCOPE and not ID_PATTERN.fullmatch(guild_id):
        raise ValidationError(f"Invalid guild id: {guild_id!r}")
    return guild_id
