"""
levelcore.__main__ — Entry point for ``python -m levelcore``
============================================================

Inspects what the document store currently holds:

1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Load every guild document into a LevelManager's cache.
5. Log a per-guild summary (and, with ``--top N``, each leaderboard).

Run with::

    python -m levelcore --top 5
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from levelcore.config import load_config
from levelcore.database.engine import create_db_engine, init_db
from levelcore.engine.manager import LevelManager
from levelcore.services.identity import StaticIdentityResolver

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("levelcore")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="levelcore", description=__doc__.splitlines()[1])
    parser.add_argument("--config", default="config.yaml", help="path to config.yaml")
    parser.add_argument(
        "--top", type=int, default=0, metavar="N",
        help="also log the top N members of every guild",
    )
    return parser.parse_args(argv)


async def _summarize(manager: LevelManager, top: int) -> None:
    await manager.persistence.load_all()
    for scope in manager.cache.scopes():
        logger.info(
            "Guild %s — %d users, %d ranks, %d achievements",
            scope.guild_id, len(scope.users), len(scope.ranks), len(scope.achievements),
        )
        if top > 0:
            for pos, user in enumerate(manager.leaderboard(top, scope.guild_id), start=1):
                logger.info(
                    "  #%d %s — level %d (%d/%d xp) — %s",
                    pos, user.display_name or user.user_id, user.level,
                    user.xp, user.xp_to_next_level, user.rank.name,
                )


def main(argv: list[str] | None = None) -> None:
    """Bootstrap the store and log what it contains."""
    args = _parse_args(argv)

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    try:
        cfg = load_config(args.config)
    except (FileNotFoundError, RuntimeError) as exc:
        logger.critical("%s", exc)
        sys.exit(1)

    # 3. Database.
    engine = create_db_engine(cfg.store_connection_string)
    init_db(engine)

    # 4–5. Load and summarise.  Nothing is created here, so names never resolve.
    manager = LevelManager(cfg, engine, StaticIdentityResolver())
    asyncio.run(_summarize(manager, args.top))
    engine.dispose()


if __name__ == "__main__":
    main()
