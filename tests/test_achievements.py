"""
tests/test_achievements.py — Achievement Definition & Progress Tests
=====================================================================

Covers definition validation, legacy document shapes, progress
advancement, and the manager-level award path (reward routed through
``add_xp``).
"""

from __future__ import annotations

import asyncio

import pytest

from levelcore.engine.achievements import Achievement, AchievementProgress, AchievementType
from levelcore.engine.errors import ValidationError
from levelcore.engine.events import LevelEventType


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------
class TestAchievement:
    def test_defaults(self):
        ach = Achievement("First level", "Reach level 1")
        assert ach.type is AchievementType.ONE_ACTION
        assert ach.goal == 1
        assert ach.reward == 0

    @pytest.mark.parametrize("raw", [0, "progressive", "PROGRESSIVE", AchievementType.PROGRESSIVE])
    def test_type_coercion(self, raw):
        ach = Achievement("Chatter", "Send messages", type=raw, goal=100)
        assert ach.type is AchievementType.PROGRESSIVE

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Achievement("X", "", type=7)

    def test_one_action_goal_must_be_one(self):
        with pytest.raises(ValidationError):
            Achievement("X", "", type=AchievementType.ONE_ACTION, goal=5)

    @pytest.mark.parametrize("field, value", [("name", ""), ("reward", -1), ("goal", 0)])
    def test_bad_fields_rejected(self, field, value):
        kwargs = {"name": "X", "description": "", "type": 0, "goal": 3}
        kwargs[field] = value
        with pytest.raises(ValidationError):
            Achievement(**kwargs)

    def test_legacy_progress_pair_becomes_goal(self):
        ach = Achievement.from_dict(
            {"name": "Chatter", "description": "", "type": 0, "progress": [0, 50]}
        )
        assert ach.goal == 50

    def test_to_dict_stores_type_as_int(self):
        data = Achievement("Chatter", "", type=0, goal=10, reward=5).to_dict()
        assert data["type"] == 0
        assert Achievement.from_dict(data).goal == 10


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------
class TestAchievementProgress:
    def test_one_action_completes_immediately(self):
        ach = Achievement("Hello", "")
        progress = ach.new_progress()
        assert progress.advance(ach, 1) is True
        assert progress.completed

    def test_progressive_completes_at_goal(self):
        ach = Achievement("Chatter", "", type=0, goal=3)
        progress = ach.new_progress()
        assert progress.advance(ach, 2) is False
        assert progress.advance(ach, 5) is True
        assert progress.progress == 3

    def test_completed_entry_does_not_complete_again(self):
        ach = Achievement("Hello", "")
        progress = AchievementProgress("Hello", 1, True)
        assert progress.advance(ach, 1) is False

    def test_from_dict_reads_legacy_pair(self):
        progress = AchievementProgress.from_dict({"name": "Chatter", "progress": [3, 10]})
        assert (progress.progress, progress.completed) == (3, False)

    @pytest.mark.parametrize("bad", ["Chatter", {"progress": 1}, {"name": "Chatter", "progress": [1, 2, 3]}])
    def test_from_dict_malformed_rejected(self, bad):
        with pytest.raises(ValidationError):
            AchievementProgress.from_dict(bad)


# ---------------------------------------------------------------------------
# Manager integration
# ---------------------------------------------------------------------------
class TestManagerAchievements:
    def test_append_adds_progress_to_existing_users(self, manager):
        async def scenario():
            user = await manager.get_user("1", "10")
            manager.append_achievement({"name": "Hello", "description": "", "reward": 10}, "10")
            return user

        user = run_async(scenario())
        assert user.progress_for("Hello") is not None

    def test_duplicate_name_rejected(self, manager):
        manager.append_achievement(Achievement("Hello", ""), "10")
        with pytest.raises(ValidationError, match="already exists"):
            manager.append_achievement(Achievement("Hello", "again"), "10")

    def test_delete_removes_progress(self, manager):
        async def scenario():
            manager.append_achievement(Achievement("Hello", ""), "10")
            user = await manager.get_user("1", "10")
            manager.delete_achievement("Hello", "10")
            return user

        user = run_async(scenario())
        assert user.achievements == []
        with pytest.raises(ValidationError, match="not found"):
            manager.delete_achievement("Hello", "10")

    def test_completion_awards_reward_xp(self, manager):
        events = []
        manager.bus.subscribe(LevelEventType.XP_ADDED, events.append)

        async def scenario():
            manager.append_achievement(Achievement("Hello", "", reward=40), "10")
            first = await manager.progress_achievement("1", "Hello", guild_id="10")
            second = await manager.progress_achievement("1", "Hello", guild_id="10")
            return first, second, await manager.get_user("1", "10")

        first, second, user = run_async(scenario())
        assert (first, second) == (True, False)
        assert user.xp == 40
        assert [e.data["xp"] for e in events] == [40]

    def test_unknown_achievement_rejected(self, manager):
        with pytest.raises(ValidationError):
            run_async(manager.progress_achievement("1", "Nope", guild_id="10"))

    def test_config_achievements_seed_new_guilds(self, db_engine, identity):
        from levelcore.config import LevelConfig
        from levelcore.engine.manager import LevelManager

        cfg = LevelConfig(
            store_connection_string="sqlite://",
            autosave_enabled=False,
            achievements=[{"name": "First level", "description": "", "reward": 100, "type": 1}],
        )
        mgr = LevelManager(cfg, db_engine, identity)
        user = run_async(mgr.get_user("1", "10"))
        assert [a.name for a in user.achievements] == ["First level"]
