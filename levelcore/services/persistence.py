"""
levelcore.services.persistence — Cache ⇄ Store Synchronizer
============================================================

* ``load_all()`` — replace the whole cache with what the store holds.
* ``save_data()`` — write every guild back, one document per guild.
* autosave — a background task that calls ``save_data()`` every
  ``interval`` seconds.

Failures here never escape: a store that cannot be read leaves the cache
empty (the manager keeps working on fresh records), and a guild that
cannot be written is logged and skipped so the others still land.

Flushes snapshot the cache synchronously on the event loop before any
thread hand-off, so a flush never observes a record mid-mutation.  Only
one flush runs at a time; an overlapping request is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from levelcore.constants import DEFAULT_ACTIVITY_HISTORY_CEILING, DEFAULT_AUTOSAVE_INTERVAL_SECONDS
from levelcore.database.engine import run_db
from levelcore.engine.cache import GuildCache, GuildScope
from levelcore.engine.errors import LevelCoreError
from levelcore.services.document_store import find_all_documents, upsert_document

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class PersistenceSynchronizer:
    """Moves the guild cache to and from the document store."""

    def __init__(
        self,
        engine: Engine,
        cache: GuildCache,
        *,
        activity_ceiling: int = DEFAULT_ACTIVITY_HISTORY_CEILING,
        interval: float = DEFAULT_AUTOSAVE_INTERVAL_SECONDS,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.activity_ceiling = activity_ceiling
        self.interval = interval
        self._flush_lock = asyncio.Lock()
        # Guilds whose stored document could not be parsed; never overwritten
        self._unreadable: set[str] = set()
        self._autosave_task: asyncio.Task | None = None

    # -------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------
    async def load_all(self) -> int:
        """Replace the cache with the store's contents; returns guilds loaded."""
        try:
            documents = await run_db(find_all_documents, self.engine)
        except Exception:
            logger.exception("Could not read guild documents — starting with an empty cache")
            self.cache.replace([])
            return 0

        scopes: list[GuildScope] = []
        unreadable: set[str] = set()
        for doc in documents:
            try:
                scopes.append(GuildScope.from_document(doc, self.cache.default_ranks))
            except LevelCoreError:
                logger.exception("Skipping malformed document for guild %r", doc.get("guild_id"))
                unreadable.add(str(doc.get("guild_id")))

        self._unreadable = unreadable

        self.cache.replace(scopes)
        logger.info(
            "Cache loaded: %d guilds, %d users",
            len(scopes), sum(len(s.users) for s in scopes),
        )
        return len(scopes)

    # -------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------
    def snapshot(self) -> list[dict]:
        """Serialise every scope, trimming activity history first.

        Guilds whose stored document failed to load are left out so the
        stored copy survives for manual repair.
        """
        documents: list[dict] = []
        for scope in self.cache.scopes():
            if scope.guild_id in self._unreadable:
                logger.warning(
                    "Not saving guild %s: its stored document could not be loaded", scope.guild_id,
                )
                continue
            for user in scope.users.values():
                user.trim_activity(self.activity_ceiling)
            documents.append(scope.to_document())
        return documents

    async def save_data(self) -> int | None:
        """Flush the cache; returns guilds written, or ``None`` if skipped."""
        if self._flush_lock.locked():
            logger.info("Flush already in progress — skipping")
            return None

        async with self._flush_lock:
            documents = self.snapshot()
            written = 0
            for doc in documents:
                try:
                    await run_db(upsert_document, self.engine, doc)
                    written += 1
                except Exception:
                    logger.exception("Failed to save guild %s", doc["guild_id"])

            logger.info("Flush complete: %d/%d guilds written", written, len(documents))
            return written

    # -------------------------------------------------------------------
    # Autosave loop
    # -------------------------------------------------------------------
    @property
    def autosave_running(self) -> bool:
        return self._autosave_task is not None and not self._autosave_task.done()

    def start_autosave(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start the background flush task (idempotent)."""
        if self.autosave_running:
            return

        async def _autosave_loop() -> None:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    await self.save_data()
                except Exception:
                    logger.exception("Autosave error")

        loop = loop or asyncio.get_running_loop()
        self._autosave_task = loop.create_task(_autosave_loop(), name="levelcore-autosave")
        logger.info("Autosave started (every %ss)", self.interval)

    async def stop_autosave(self) -> None:
        """Cancel the background flush task."""
        task, self._autosave_task = self._autosave_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Autosave stopped")
