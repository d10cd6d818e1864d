"""
tests/test_config.py — Configuration Loader Tests
==================================================
"""

from __future__ import annotations

import textwrap

import pytest

from levelcore.config import load_config
from levelcore.constants import DEFAULT_RANKS


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch):
    # Keep a developer's .env out of these tests
    monkeypatch.setattr("levelcore.config.load_dotenv", lambda *a, **kw: False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


def _write(tmp_path, body: str):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_defaults(tmp_path):
    cfg = load_config(_write(tmp_path, "store_connection_string: sqlite://\n"))
    assert cfg.store_connection_string == "sqlite://"
    assert cfg.default_xp_per_level == 2500
    assert cfg.autosave_interval_seconds == 10800
    assert cfg.activity_history_ceiling == 2000
    assert cfg.floor_level_zero is True
    assert cfg.multi_tier_advance is False
    assert cfg.ranks == DEFAULT_RANKS
    assert cfg.achievements == []
    assert cfg.handler_modules == ()


def test_overrides(tmp_path):
    cfg = load_config(_write(tmp_path, """
        store_connection_string: sqlite://
        default_xp_per_level: 100
        autosave_enabled: false
        autosave_interval_seconds: 60
        floor_level_zero: false
        progression_function: operator:mul
        handler_modules: [mybot.events]
        ranks:
          - {name: Noobie, color: Red, ordinal: 0, min_level: 0, max_level: 9}
        achievements:
          - {name: Hello, description: Say hi, reward: 10}
    """))
    assert cfg.default_xp_per_level == 100
    assert cfg.autosave_enabled is False
    assert cfg.autosave_interval_seconds == 60.0
    assert cfg.floor_level_zero is False
    assert cfg.progression_function == "operator:mul"
    assert cfg.handler_modules == ("mybot.events",)
    assert cfg.ranks[0]["name"] == "Noobie"
    assert cfg.achievements[0]["reward"] == 10


def test_database_url_fallback(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://u:p@db/levelcore")
    cfg = load_config(_write(tmp_path, "default_xp_per_level: 2500\n"))
    assert cfg.store_connection_string.endswith("/levelcore")


def test_missing_connection_string(tmp_path):
    with pytest.raises(RuntimeError, match="store_connection_string"):
        load_config(_write(tmp_path, "default_xp_per_level: 2500\n"))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="config.yaml.example"):
        load_config(tmp_path / "nope.yaml")


def test_config_is_frozen(tmp_path):
    cfg = load_config(_write(tmp_path, "store_connection_string: sqlite://\n"))
    with pytest.raises(AttributeError):
        cfg.default_xp_per_level = 1
