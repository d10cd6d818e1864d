"""Alembic environment for the levelcore document store.

The target database is chosen the same way the running engine chooses
it: ``DATABASE_URL`` first, then ``store_connection_string`` from
``config.yaml``, then ``sqlalchemy.url`` in ``alembic.ini``.
"""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from alembic import context

from levelcore.config import load_config
from levelcore.database.models import Base

load_dotenv()

config = context.config

# Keep loggers created before the migration run (levelcore.*) enabled
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def _database_url() -> str | None:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    try:
        return load_config(os.getenv("LEVELCORE_CONFIG", "config.yaml")).store_connection_string
    except (FileNotFoundError, RuntimeError):
        logger.info("No levelcore config found; using sqlalchemy.url from alembic.ini")
    return config.get_main_option("sqlalchemy.url")


def _configure(**kwargs) -> None:
    url = str(kwargs.get("url") or kwargs["connection"].engine.url)
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most columns in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without a live connection."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations to the store."""
    url = _database_url()
    if not url:
        raise RuntimeError(
            "No store connection string.  "
            "Set DATABASE_URL, store_connection_string in config.yaml, or sqlalchemy.url."
        )
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = url
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
    logger.info("Migrations applied to %s", connectable.url.render_as_string(hide_password=True))


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
