"""
tests/test_main.py — Entry Point Tests
=======================================

Runs ``python -m levelcore`` in-process against a throwaway SQLite file.
"""

from __future__ import annotations

import logging

import pytest

from levelcore.__main__ import main
from levelcore.database.engine import create_db_engine, init_db
from levelcore.services.document_store import upsert_document


@pytest.fixture
def config_path(tmp_path):
    url = f"sqlite:///{tmp_path / 'levelcore.db'}"
    engine = create_db_engine(url)
    init_db(engine)
    upsert_document(engine, {
        "guild_id": "10",
        "users": [
            {"user_id": "1", "display_name": "alice", "level": 3, "xp": 10, "xp_to_next_level": 7500},
            {"user_id": "2", "display_name": "bob", "level": 8, "xp": 0, "xp_to_next_level": 20000},
        ],
    })
    engine.dispose()

    path = tmp_path / "config.yaml"
    path.write_text(f"store_connection_string: {url}\nautosave_enabled: false\n", encoding="utf-8")
    return path


def test_logs_guild_summary_and_leaderboard(config_path, caplog):
    with caplog.at_level(logging.INFO, logger="levelcore"):
        main(["--config", str(config_path), "--top", "1"])

    assert "Guild 10 — 2 users, 8 ranks, 0 achievements" in caplog.text
    assert "#1 bob — level 8" in caplog.text
    assert "alice" not in caplog.text


def test_missing_config_exits(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(tmp_path / "missing.yaml")])
    assert exc_info.value.code == 1
