"""Alembic environment for the Genfuze sqlite schema (users, sessions, qa_data, revoked_tokens)."""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine
from sqlmodel import SQLModel

from alembic import context

# project root on sys.path so `genfuze` and `config` import without installing
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import genfuze.db.models as _models  # noqa: F401, E402  registers the tables
from genfuze.db.engine import get_engine, _make_absolute_sqlite_url, _resolve_db_url  # noqa: E402

target_metadata = SQLModel.metadata


def _ini_url() -> str:
    """sqlalchemy.url from alembic.ini, unless it is still the template placeholder."""
    url = config.get_main_option("sqlalchemy.url", default="") or ""
    return "" if url.startswith("driver://") else url


def _get_url() -> str:
    return _make_absolute_sqlite_url(_ini_url() or _resolve_db_url())


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(
        url=_get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,  # sqlite ALTER TABLE
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # an explicit ini URL wins; otherwise share the app engine (and its sqlite pragmas)
    connectable = create_engine(_get_url()) if _ini_url() else get_engine()
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
