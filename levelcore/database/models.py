"""
levelcore.database.models — SQLAlchemy 2.0 Data Models
=======================================================

The store is document-shaped: one row per guild, whose JSONB columns hold
the guild's rank table, achievement definitions and member records.  The
whole document is rewritten on every flush.

Tables:
- guild_documents — one progression document per guild (or "global")
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all levelcore ORM models."""


# ---------------------------------------------------------------------------
# Guild documents
# ---------------------------------------------------------------------------
class GuildDocument(Base):
    __tablename__ = "guild_documents"

    # Snowflakes are kept as strings; "global" is a valid id.
    guild_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    ranks: Mapped[list] = mapped_column(JSONB, default=list)
    achievements: Mapped[list] = mapped_column(JSONB, default=list)
    users: Mapped[list] = mapped_column(JSONB, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<GuildDocument guild_id={self.guild_id!r} users={len(self.users or [])}>"

    def to_document(self) -> dict:
        return {
            "guild_id": self.guild_id,
            "ranks": list(self.ranks or []),
            "achievements": list(self.achievements or []),
            "users": list(self.users or []),
        }
