"""
levelcore.engine.events — LevelEvent and the EventBus
======================================================

Every state transition the manager performs is announced as a
:class:`LevelEvent`.  Embedding code subscribes handlers on the manager's
:class:`EventBus`; dispatch is synchronous and happens only after the
manager has finished mutating the record, so a failing handler can never
leave the engine half-updated.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from levelcore.engine.users import UserRecord

logger = logging.getLogger(__name__)

__all__ = ["EventBus", "EventHandler", "LevelEvent", "LevelEventType"]


class LevelEventType(enum.StrEnum):
    """All lifecycle events emitted by the manager."""
    MANAGER_READY = "managerReady"
    XP_ADDED = "xpAdded"
    LEVEL_UP = "levelUp"
    BYPASS = "bypass"
    DEGRADE_LEVEL = "degradeLevel"
    RANK_UP = "rankUp"
    DEGRADE_RANK = "degradeRank"


# ---------------------------------------------------------------------------
# LevelEvent: the event envelope
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LevelEvent:
    """A progression event.

    ``user`` is a snapshot taken after the mutation; ``author`` is whoever
    triggered a manual override (opaque to the engine).  Operation-specific
    details (``xp``, ``old_level``, ``old_rank`` …) live in ``data``.
    """

    type: LevelEventType
    guild_id: str | None = None
    user_id: str | None = None
    user: UserRecord | None = None
    author: Any = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[LevelEvent], Any]


# ---------------------------------------------------------------------------
# EventBus: explicit subscriber registry
# ---------------------------------------------------------------------------
class EventBus:
    """Per-manager registry of event handlers.

    Handlers may be plain callables or coroutine functions.  Coroutines are
    scheduled on the running loop; their failures are logged, not raised.
    """

    def __init__(self) -> None:
        self._handlers: dict[LevelEventType, list[EventHandler]] = {}
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event_type: LevelEventType | str, handler: EventHandler) -> None:
        if not callable(handler):
            raise TypeError("Event handler must be callable.")
        key = LevelEventType(event_type)
        self._handlers.setdefault(key, []).append(handler)
        logger.debug("Subscribed %r to '%s'", handler, key)

    def unsubscribe(self, event_type: LevelEventType | str, handler: EventHandler) -> bool:
        handlers = self._handlers.get(LevelEventType(event_type), [])
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        return True

    def handlers(self, event_type: LevelEventType | str) -> list[EventHandler]:
        return list(self._handlers.get(LevelEventType(event_type), []))

    def emit(self, event: LevelEvent) -> None:
        """Dispatch *event* to every handler in registration order."""
        for handler in self.handlers(event.type):
            try:
                result = handler(event)
            except Exception:
                logger.exception("Handler %r failed on '%s'", handler, event.type)
                continue
            if inspect.isawaitable(result):
                self._schedule(handler, event, result)

    def _schedule(self, handler: EventHandler, event: LevelEvent, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: nothing can drive the coroutine.
            logger.warning(
                "Cannot schedule async handler %r for '%s' — no event loop", handler, event.type,
            )
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error(
                    "Async handler %r failed on '%s'", handler, event.type,
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for outstanding async handlers (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
