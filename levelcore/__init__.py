"""
levelcore — Guild-Scoped XP, Levels & Ranks
============================================
Tracks experience points, levels, tiered ranks and achievements for
community-server members, keeps them in an in-memory guild cache, and
flushes that cache to a document store on a timer and on demand.
Embedding code (usually a chat bot) awards XP and reacts to the
progression events the manager emits.

Package layout::

    levelcore/
    ├── config.py          # YAML + .env → typed LevelConfig
    ├── constants.py       # Identifier format, default ranks, defaults
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # GuildDocument ORM model
    ├── engine/
    │   ├── errors.py      # ValidationError & friends
    │   ├── ranks.py       # RankTier + RankTable
    │   ├── progression.py # XP threshold functions + policy
    │   ├── achievements.py # Achievement definitions + user progress
    │   ├── users.py       # UserRecord
    │   ├── events.py      # LevelEvent + EventBus
    │   ├── cache.py       # GuildScope + GuildCache (lazy creation)
    │   └── manager.py     # LevelManager, the progression engine
    └── services/
        ├── document_store.py # Find / upsert guild documents
        ├── persistence.py # Bulk load, flush, autosave loop
        ├── identity.py    # Display-name resolution (discord.py adapter)
        └── handlers.py    # Import-based event handler modules

Usage::

    from levelcore.config import load_config
    from levelcore.database.engine import create_db_engine, init_db
    from levelcore.engine.manager import LevelManager

    cfg = load_config()
    engine = create_db_engine(cfg.store_connection_string)
    init_db(engine)

    manager = LevelManager(cfg, engine, identity)
    await manager.start()
    await manager.add_xp(25, "1234", guild_id="5678")
"""

__version__ = "0.1.0"
