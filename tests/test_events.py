"""
tests/test_events.py — EventBus Tests
======================================

Dispatch order, handler isolation (a raising handler never reaches the
engine), and async handler scheduling.
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from levelcore.engine.events import EventBus, LevelEvent, LevelEventType


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _event(kind: LevelEventType = LevelEventType.XP_ADDED) -> LevelEvent:
    return LevelEvent(kind, guild_id="10", user_id="1", data={"xp": 5})


class TestSubscription:
    def test_handlers_run_in_registration_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(LevelEventType.XP_ADDED, lambda e: calls.append("a"))
        bus.subscribe("xpAdded", lambda e: calls.append("b"))
        bus.emit(_event())
        assert calls == ["a", "b"]

    def test_other_event_types_not_called(self):
        bus = EventBus()
        handler = MagicMock()
        bus.subscribe(LevelEventType.LEVEL_UP, handler)
        bus.emit(_event(LevelEventType.XP_ADDED))
        handler.assert_not_called()

    def test_unsubscribe(self):
        bus = EventBus()
        handler = MagicMock()
        bus.subscribe(LevelEventType.XP_ADDED, handler)
        assert bus.unsubscribe(LevelEventType.XP_ADDED, handler) is True
        assert bus.unsubscribe(LevelEventType.XP_ADDED, handler) is False
        bus.emit(_event())
        handler.assert_not_called()

    def test_unknown_event_name_rejected(self):
        with pytest.raises(ValueError):
            EventBus().subscribe("messageCreate", MagicMock())

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError):
            EventBus().subscribe(LevelEventType.XP_ADDED, "not callable")


class TestIsolation:
    def test_raising_handler_is_logged_and_skipped(self, caplog):
        bus = EventBus()
        after = MagicMock()

        def boom(event):
            raise RuntimeError("handler bug")

        bus.subscribe(LevelEventType.XP_ADDED, boom)
        bus.subscribe(LevelEventType.XP_ADDED, after)
        with caplog.at_level(logging.ERROR, logger="levelcore.engine.events"):
            bus.emit(_event())

        after.assert_called_once()
        assert "failed" in caplog.text


class TestAsyncHandlers:
    def test_coroutine_handler_is_scheduled(self):
        bus = EventBus()
        seen = []

        async def handler(event):
            await asyncio.sleep(0)
            seen.append(event.data["xp"])

        bus.subscribe(LevelEventType.XP_ADDED, handler)

        async def scenario():
            bus.emit(_event())
            await bus.drain()

        run_async(scenario())
        assert seen == [5]

    def test_failing_coroutine_is_logged(self, caplog):
        bus = EventBus()

        async def handler(event):
            raise RuntimeError("async bug")

        bus.subscribe(LevelEventType.XP_ADDED, handler)

        async def scenario():
            bus.emit(_event())
            await bus.drain()

        with caplog.at_level(logging.ERROR, logger="levelcore.engine.events"):
            run_async(scenario())
        assert "Async handler" in caplog.text

    def test_no_running_loop_warns(self, caplog):
        bus = EventBus()

        async def handler(event):
            pass

        bus.subscribe(LevelEventType.XP_ADDED, handler)
        with caplog.at_level(logging.WARNING, logger="levelcore.engine.events"):
            bus.emit(_event())
        assert "no event loop" in caplog.text
