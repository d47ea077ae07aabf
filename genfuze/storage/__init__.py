"""
会话存储：sqlite（默认）/ json / memory 三种后端，按 settings.storage.backend 选择。

    from genfuze.storage import get_store
    store = get_store()
    store.list_sessions("question", user_id)
"""

from __future__ import annotations

from threading import Lock
from typing import Optional

from config.settings import settings
from genfuze.log import get_logger
from genfuze.storage.base import SessionStore, StorageError
from genfuze.storage.records import QASessionRecord, SessionFilters, UserRecord

logger = get_logger(__name__)

_store: Optional[SessionStore] = None
_store_lock = Lock()


def create_store(backend: str) -> SessionStore:
    backend = (backend or "sqlite").lower()
    if backend == "sqlite":
        from genfuze.storage.sql_store import SQLSessionStore
        return SQLSessionStore()
    if backend == "json":
        from genfuze.storage.json_store import JSONSessionStore
        json_dir = settings.path.base / settings.storage.json_dir
        return JSONSessionStore(json_dir)
    if backend == "memory":
        from genfuze.storage.memory_store import MemorySessionStore
        return MemorySessionStore()
    raise ValueError(f"Unknown storage backend: {backend}")


def get_store() -> SessionStore:
    """进程级单例。"""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = create_store(settings.storage.backend)
                logger.info("[storage] using %s backend", _store.backend)
    return _store


def set_store(store: Optional[SessionStore]) -> None:
    """替换/清空单例（测试与脚本使用）。"""
    global _store
    with _store_lock:
        _store = store


__all__ = [
    "SessionStore",
    "StorageError",
    "QASessionRecord",
    "SessionFilters",
    "UserRecord",
    "create_store",
    "get_store",
    "set_store",
]
