"""
levelcore.services.handlers — Event Handler Modules
====================================================

Embedding applications can keep their event reactions in plain modules
and list them under ``handler_modules`` in ``config.yaml``.  Each module
exposes a ``setup(bus)`` function, in the spirit of a discord.py
extension::

    # mybot/level_events.py
    from levelcore.engine.events import LevelEventType

    def setup(bus):
        bus.subscribe(LevelEventType.LEVEL_UP, announce_level_up)

A module that fails to import or set up is logged and skipped; the
remaining modules still load.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable

from levelcore.engine.events import EventBus

logger = logging.getLogger(__name__)


def load_handler_modules(bus: EventBus, module_names: Iterable[str]) -> list[str]:
    """Import each module and call its ``setup(bus)``; returns those loaded."""
    loaded: list[str] = []
    for name in module_names:
        try:
            module = importlib.import_module(name)
        except Exception as exc:
            logger.error("Failed to import handler module %s: %s", name, exc)
            continue

        setup = getattr(module, "setup", None)
        if not callable(setup):
            logger.error("Handler module %s has no setup(bus) function", name)
            continue

        try:
            setup(bus)
        except Exception:
            logger.exception("Handler module %s failed during setup", name)
            continue

        loaded.append(name)
        logger.info("Loaded handler module: %s", name)

    if not loaded:
        logger.info("No handler modules loaded")
    return loaded
