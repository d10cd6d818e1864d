"""
levelcore.services.document_store — Guild Document Store
=========================================================

Synchronous find / upsert / delete over the ``guild_documents`` table.
Call these through :func:`levelcore.database.engine.run_db` from async
code.  Documents are plain dicts shaped like::

    {"guild_id": "123", "ranks": [...], "achievements": [...], "users": [...]}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from levelcore.database.engine import get_session
from levelcore.database.models import GuildDocument

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def find_all_documents(engine: Engine) -> list[dict]:
    """Every stored guild document."""
    with get_session(engine) as session:
        rows = session.scalars(select(GuildDocument)).all()
        return [row.to_document() for row in rows]


def find_document(engine: Engine, guild_id: str) -> dict | None:
    with get_session(engine) as session:
        row = session.get(GuildDocument, guild_id)
        return row.to_document() if row is not None else None


def upsert_document(engine: Engine, document: dict) -> None:
    """Insert or fully replace the document for ``document["guild_id"]``."""
    guild_id = document["guild_id"]
    with get_session(engine) as session:
        row = session.get(GuildDocument, guild_id)
        if row is None:
            row = GuildDocument(guild_id=guild_id)
            session.add(row)
        row.ranks = list(document.get("ranks") or [])
        row.achievements = list(document.get("achievements") or [])
        row.users = list(document.get("users") or [])


def delete_document(engine: Engine, guild_id: str) -> bool:
    """Remove a guild's document; returns False if there was none."""
    with get_session(engine) as session:
        row = session.get(GuildDocument, guild_id)
        if row is None:
            return False
        session.delete(row)
        logger.info("Deleted guild document %s", guild_id)
        return True
