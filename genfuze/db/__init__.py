"""
genfuze/db: engine singleton and SQLModel tables behind the sqlite session store.

Usage:
    from genfuze.db import get_engine
    from genfuze.db.models import User, QASession, QAData
"""

from genfuze.db.engine import get_engine, init_db, reset_engine

__all__ = ["get_engine", "init_db", "reset_engine"]
