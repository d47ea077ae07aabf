"""In-process store; nothing survives a restart. Used for demos and tests."""

from __future__ import annotations

import uuid
from threading import RLock
from typing import Dict, Iterator, List, Optional, Tuple

from genfuze.storage.base import SessionStore, StorageError, is_expired, matches_filters
from genfuze.storage.records import (
    QAItem,
    QASessionRecord,
    SessionFilters,
    UserRecord,
    UserSessionRecord,
    now_iso,
)


class MemorySessionStore(SessionStore):
    backend = "memory"

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}
        self._user_sessions: Dict[str, UserSessionRecord] = {}  # keyed by refresh token
        self._sessions: Dict[str, QASessionRecord] = {}
        self._lock = RLock()

    # ── users ──

    def create_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            if user.id in self._users or self.get_user_by_email(user.email):
                raise StorageError(f"User already exists: {user.email}")
            self._users[user.id] = user.model_copy(deep=True)
            return user

    def upsert_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            owner = self.get_user_by_email(user.email)
            if owner is not None and owner.id != user.id:
                raise StorageError(f"E-mail already bound to another account: {user.email}")
            now = now_iso()
            existing = self._users.get(user.id)
            if existing is None:
                stored = user.model_copy(update={"last_login_at": now, "updated_at": now, "is_active": True})
            else:
                stored = existing.model_copy(update={
                    "email": user.email,
                    "name": user.name,
                    "display_name": user.display_name,
                    "tenant_id": user.tenant_id,
                    "roles": list(user.roles),
                    "is_active": True,
                    "last_login_at": now,
                    "updated_at": now,
                })
            self._users[user.id] = stored
            return stored.model_copy(deep=True)

    def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.email == email:
                return user.model_copy(deep=True)
        return None

    def update_last_login(self, user_id: str) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user:
                now = now_iso()
                self._users[user_id] = user.model_copy(update={"last_login_at": now, "updated_at": now})

    # ── refresh-token sessions ──

    def save_user_session(self, user_id: str, refresh_token: str, expires_at: str) -> UserSessionRecord:
        rec = UserSessionRecord(
            id=str(uuid.uuid4()), user_id=user_id, refresh_token=refresh_token, expires_at=expires_at
        )
        with self._lock:
            self._user_sessions[refresh_token] = rec
        return rec

    def get_user_session(self, refresh_token: str) -> Optional[UserSessionRecord]:
        return self._user_sessions.get(refresh_token)

    def delete_user_session(self, refresh_token: str) -> bool:
        with self._lock:
            return self._user_sessions.pop(refresh_token, None) is not None

    def delete_expired_user_sessions(self) -> int:
        with self._lock:
            expired = [t for t, s in self._user_sessions.items() if is_expired(s.expires_at)]
            for token in expired:
                del self._user_sessions[token]
            return len(expired)

    # ── Q&A sessions ──

    def save_session(self, session: QASessionRecord) -> str:
        if not session.user_id:
            raise StorageError("Session has no owner")
        with self._lock:
            existing = self._sessions.get(session.id)
            if existing is not None and existing.user_id != session.user_id:
                raise StorageError(f"Session id already in use: {session.id}")
            self._sessions[session.id] = session.model_copy(deep=True)
        return session.id

    def list_sessions(
        self, session_type: str, user_id: str, filters: Optional[SessionFilters] = None
    ) -> List[QASessionRecord]:
        rows = [
            s.model_copy(deep=True)
            for s in self._sessions.values()
            if s.user_id == user_id and s.type == session_type and matches_filters(s, filters)
        ]
        rows.sort(key=lambda s: s.timestamp, reverse=True)
        return rows

    def get_session(self, session_id: str, user_id: str) -> Optional[QASessionRecord]:
        s = self._sessions.get(session_id)
        if s is None or s.user_id != user_id:
            return None
        return s.model_copy(deep=True)

    def delete_session(self, session_id: str, user_id: str) -> bool:
        with self._lock:
            s = self._sessions.get(session_id)
            if s is None or s.user_id != user_id:
                return False
            del self._sessions[session_id]
            return True

    def _iter_qa_items(self, user_id: str) -> Iterator[Tuple[QASessionRecord, QAItem]]:
        for s in list(self._sessions.values()):
            if s.user_id != user_id:
                continue
            for item in s.qa_data:
                yield s, item
