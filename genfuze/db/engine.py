"""
Centralized SQLAlchemy/SQLModel engine and session factory.

The database URL is resolved from the GENFUZE_DATABASE_URL environment
variable or the ``database.url`` entry of config/genfuze_config(.local).json,
falling back to ``sqlite:///data/genfuze.db`` under the project root.
"""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from config.settings import _RAW_CONFIG

_engine: Engine | None = None

DEFAULT_DB_URL = "sqlite:///data/genfuze.db"

def _resolve_db_url() -> str:
    env_url = os.environ.get("GENFUZE_DATABASE_URL")
    if env_url:
        return env_url
    url = (_RAW_CONFIG.get("database") or {}).get("url")
    return url or DEFAULT_DB_URL

def _make_absolute_sqlite_url(url: str) -> str:
    """
    Resolve relative sqlite:/// paths against the project root so the DB
    lands in <project_root>/data/ regardless of cwd.
    """
    if not url.startswith("sqlite:///") or url == "sqlite:///:memory:":
        return url
    rel_path = url[len("sqlite:///"):]
    if os.path.isabs(rel_path):
        Path(rel_path).parent.mkdir(parents=True, exist_ok=True)
        return url
    root = Path(__file__).resolve().parents[2]
    abs_path = (root / rel_path).resolve()
    abs_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{abs_path}"

def get_engine() -> Engine:
    """Return the singleton SQLAlchemy engine, creating it on first call."""
    global _engine
    if _engine is not None:
        return _engine

    db_url = _make_absolute_sqlite_url(_resolve_db_url())
    is_sqlite = db_url.startswith("sqlite")
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

    _engine = create_engine(
        db_url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
    )

    if is_sqlite:
        @event.listens_for(_engine, "connect")
        def _set_sqlite_pragmas(dbapi_conn, _connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

    return _engine

def reset_engine() -> None:
    """Dispose the cached engine; the next get_engine() re-reads the URL (tests, scripts)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None

def init_db() -> None:
    """
    Create all tables that are not yet present.
    Alembic owns the schema in deployed environments; this covers tests
    and fresh local installs.
    """
    from genfuze.db import models as _models  # noqa: F401  registers tables on SQLModel.metadata
    SQLModel.metadata.create_all(get_engine())
