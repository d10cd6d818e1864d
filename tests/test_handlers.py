"""
tests/test_handlers.py — Handler Module Loader Tests
=====================================================
"""

from __future__ import annotations

import sys
import types

import pytest

from levelcore.engine.events import EventBus, LevelEventType
from levelcore.services.handlers import load_handler_modules


def _on_level_up(event):
    pass


@pytest.fixture
def fake_modules(monkeypatch):
    good = types.ModuleType("fake_handlers_good")
    good.setup = lambda bus: bus.subscribe(LevelEventType.LEVEL_UP, _on_level_up)

    no_setup = types.ModuleType("fake_handlers_nosetup")

    broken = types.ModuleType("fake_handlers_broken")

    def _broken_setup(bus):
        raise RuntimeError("bad handler module")

    broken.setup = _broken_setup

    for mod in (good, no_setup, broken):
        monkeypatch.setitem(sys.modules, mod.__name__, mod)


def test_loads_and_registers(fake_modules):
    bus = EventBus()
    loaded = load_handler_modules(bus, ["fake_handlers_good"])
    assert loaded == ["fake_handlers_good"]
    assert bus.handlers(LevelEventType.LEVEL_UP) == [_on_level_up]


def test_bad_modules_are_skipped(fake_modules, caplog):
    bus = EventBus()
    loaded = load_handler_modules(
        bus,
        [
            "fake_handlers_missing_entirely",
            "fake_handlers_nosetup",
            "fake_handlers_broken",
            "fake_handlers_good",
        ],
    )
    assert loaded == ["fake_handlers_good"]
    assert "Failed to import" in caplog.text
    assert "has no setup" in caplog.text
    assert "failed during setup" in caplog.text


def test_nothing_to_load():
    assert load_handler_modules(EventBus(), []) == []
