from __future__ import annotations

import os
from logging.config import fileConfig
from sqlalchemy import engine_from_config
from sqlalchemy import pool
from alembic import context

# import the base class and the models so autogenerate sees every table
from app.db.base_class import Base
from app.models.device import Device  # noqa: F401 - registers the model
from app.models.device_model import DeviceModel  # noqa: F401 - registers the model
from app.models.outbox import OutboxMessage  # noqa: F401 - registers the model

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

def _alembic_url() -> str:
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or ""
    if not url:
        from app.core.config import settings
        url = settings.database_url
    # Alembic runs synchronously; swap asyncpg for psycopg2
    return url.replace("+asyncpg", "+psycopg2")

config.set_main_option("sqlalchemy.url", _alembic_url())

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
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


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
