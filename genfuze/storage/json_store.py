"""
JSON-file store: users.json, sessions.json and user-sessions.json in one
directory. The whole file is rewritten on each mutation (write to a temp
file, then rename), which is fine for the single-user desk setups this
backend is meant for.
"""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path

from genfuze.log import get_logger
from genfuze.storage.memory_store import MemorySessionStore
from genfuze.storage.records import QASessionRecord, UserRecord, UserSessionRecord

logger = get_logger(__name__)

USERS_FILE = "users.json"
SESSIONS_FILE = "sessions.json"
USER_SESSIONS_FILE = "user-sessions.json"


def _read_list(path: Path) -> list:
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "[]")
    except ValueError as e:
        logger.error("[storage] %s is not valid JSON, starting empty: %s", path, e)
        return []
    return data if isinstance(data, list) else []


def _atomic_write(path: Path, payload: list) -> None:
    fd, tmp = tempfile.mkstemp(prefix=path.stem, suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class JSONSessionStore(MemorySessionStore):
    """Memory store whose state is loaded from and flushed to JSON files."""

    backend = "json"

    def __init__(self, data_dir: str | Path):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        for raw in _read_list(self.data_dir / USERS_FILE):
            user = UserRecord.model_validate(raw)
            self._users[user.id] = user
        for raw in _read_list(self.data_dir / USER_SESSIONS_FILE):
            rec = UserSessionRecord.model_validate(raw)
            self._user_sessions[rec.refresh_token] = rec
        for raw in _read_list(self.data_dir / SESSIONS_FILE):
            session = QASessionRecord.model_validate(raw)
            self._sessions[session.id] = session
        logger.info(
            "[storage] json store loaded from %s: %d users, %d sessions",
            self.data_dir, len(self._users), len(self._sessions),
        )

    def _flush_users(self) -> None:
        # password is excluded from wire dumps; the file must keep it
        payload = [{**u.to_wire(), "password": u.password} for u in self._users.values()]
        _atomic_write(self.data_dir / USERS_FILE, payload)

    def _flush_user_sessions(self) -> None:
        _atomic_write(self.data_dir / USER_SESSIONS_FILE, [s.to_wire() for s in self._user_sessions.values()])

    def _flush_sessions(self) -> None:
        _atomic_write(self.data_dir / SESSIONS_FILE, [s.to_wire() for s in self._sessions.values()])

    @contextmanager
    def _writing(self, table: str):
        """快照 self._<table>；写盘失败时回滚内存，保证内存与文件一致。"""
        data = getattr(self, f"_{table}")
        snapshot = dict(data)
        try:
            yield
            getattr(self, f"_flush_{table}")()
        except BaseException:
            data.clear()
            data.update(snapshot)
            raise

    # ── users ──

    def create_user(self, user: UserRecord) -> UserRecord:
        with self._lock, self._writing("users"):
            return super().create_user(user)

    def upsert_user(self, user: UserRecord) -> UserRecord:
        with self._lock, self._writing("users"):
            return super().upsert_user(user)

    def update_last_login(self, user_id: str) -> None:
        with self._lock, self._writing("users"):
            super().update_last_login(user_id)

    # ── refresh-token sessions ──

    def save_user_session(self, user_id: str, refresh_token: str, expires_at: str) -> UserSessionRecord:
        with self._lock, self._writing("user_sessions"):
            return super().save_user_session(user_id, refresh_token, expires_at)

    def delete_user_session(self, refresh_token: str) -> bool:
        with self._lock, self._writing("user_sessions"):
            return super().delete_user_session(refresh_token)

    def delete_expired_user_sessions(self) -> int:
        with self._lock, self._writing("user_sessions"):
            return super().delete_expired_user_sessions()

    # ── Q&A sessions ──

    def save_session(self, session: QASessionRecord) -> str:
        with self._lock, self._writing("sessions"):
            return super().save_session(session)

    def delete_session(self, session_id: str, user_id: str) -> bool:
        with self._lock, self._writing("sessions"):
            return super().delete_session(session_id, user_id)
