"""Alembic environment for the Willing Tree schema."""

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from willing_tree.config import get_settings
from willing_tree.db.base import Base
from willing_tree.db import models  # noqa: F401 - registers the tables on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

# Migrations run on the sync psycopg2 driver; the app itself uses asyncpg
config.set_main_option("sqlalchemy.url", get_settings().database_url_sync)


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()
    logger.info("Migrations applied")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
