"""
tests/test_migrations.py — Alembic Migration Tests
===================================================

Runs the real migration scripts against a throwaway SQLite file, both
online and as offline SQL.
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from alembic import command
from alembic.config import Config

SCRIPT_LOCATION = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture
def store_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'store.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


def _alembic_config(buffer=None) -> Config:
    cfg = Config(output_buffer=buffer)
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    return cfg


def _tables(url: str) -> set[str]:
    engine = create_engine(url)
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_upgrade_and_downgrade(store_url):
    cfg = _alembic_config()

    command.upgrade(cfg, "head")
    assert "guild_documents" in _tables(store_url)
    columns = {c["name"] for c in inspect(create_engine(store_url)).get_columns("guild_documents")}
    assert {"guild_id", "ranks", "achievements", "users"} <= columns

    command.downgrade(cfg, "base")
    assert "guild_documents" not in _tables(store_url)


def test_database_url_wins_over_ini(store_url):
    cfg = _alembic_config()
    cfg.set_main_option("sqlalchemy.url", "postgresql://nobody@unreachable/none")

    command.upgrade(cfg, "head")
    assert "guild_documents" in _tables(store_url)


def test_offline_mode_emits_sql(store_url):
    buffer = io.StringIO()
    command.upgrade(_alembic_config(buffer), "head", sql=True)
    assert "CREATE TABLE guild_documents" in buffer.getvalue()
