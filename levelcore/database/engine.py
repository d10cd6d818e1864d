"""
levelcore.database.engine — Database Connection & Async Helper
===============================================================

The manager lives on an ``asyncio`` event loop, while SQLAlchemy +
psycopg2 is **synchronous**.  Calling the store directly from a coroutine
would stall every other caller until the query returns.

Store work therefore goes through :func:`run_db`, which ships a sync
function to the default thread pool via :func:`asyncio.to_thread` and
awaits the result.  No async engine, no asyncpg.

Usage::

    from levelcore.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine(cfg.store_connection_string)
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    docs = await run_db(find_all_documents, engine)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from levelcore.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` for the document store.

    *url* defaults to the ``DATABASE_URL`` env var.  Pool settings only
    apply to server databases (SQLite uses its own pool classes):

    * ``pool_size=5`` / ``max_overflow=10``
    * ``pool_timeout=10`` — fail after 10 s if no connection is available.
    * ``pool_recycle=3600`` — recycle connections after 1 hour.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "No store connection string.  "
            "Set store_connection_string in config.yaml or DATABASE_URL in .env."
        )

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,   # Reconnect stale connections automatically
            pool_timeout=10,
            pool_recycle=3600,
        )
    logger.info("Database engine created → %s", engine.url.host or engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`levelcore.database.models`.

    Safe to call on every startup.  In production the schema is managed by
    Alembic (``alembic upgrade head``); ``create_all`` is the safety net for
    dev/test environments.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** store function on a background thread.

    ::

        docs = await run_db(find_all_documents, engine)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
