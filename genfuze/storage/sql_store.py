"""
SQLite (SQLModel) store: the default backend.

A session is written as one transaction: the sessions row, its
session_statistics row and every qa_data row. Deleting the sessions row
cascades to both child tables.
"""

from __future__ import annotations

import json
import uuid
from typing import Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from genfuze.db.engine import get_engine, init_db
from genfuze.db.models import (
    QAData,
    QASession,
    SessionStatistics as StatisticsRow,
    User,
    UserSession,
)
from genfuze.log import get_logger
from genfuze.storage.base import SessionStore, StorageError, is_expired, matches_filters
from genfuze.storage.records import (
    QAItem,
    QASessionRecord,
    SessionFilters,
    SessionStatistics,
    UserRecord,
    UserSessionRecord,
    now_iso,
)

logger = get_logger(__name__)


def _dumps(value) -> Optional[str]:
    return json.dumps(value) if value is not None else None


# ── row <-> record ────────────────────────────────────────────────────────────

def _user_to_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        name=row.name,
        display_name=row.display_name,
        password=row.password,
        tenant_id=row.tenant_id,
        roles=row.get_roles(),
        is_active=bool(row.is_active),
        last_login_at=row.last_login_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _item_to_record(row: QAData) -> QAItem:
    return QAItem(
        question=row.question,
        answer=row.answer,
        accuracy=row.accuracy,
        sentiment=row.sentiment,
        input_tokens=row.input_tokens,
        output_tokens=row.output_tokens,
        total_tokens=row.total_tokens,
        cost=row.cost,
        question_order=row.question_order,
        embedding=row.get_embedding(),
        question_embedding=row.get_question_embedding(),
    )


def _session_to_record(row: QASession, with_items: bool = True) -> QASessionRecord:
    stats = row.statistics
    return QASessionRecord(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        type=row.type,
        timestamp=row.timestamp,
        model=row.model,
        question_provider=row.question_provider,
        question_model=row.question_model,
        answer_provider=row.answer_provider,
        answer_model=row.answer_model,
        blog_content=row.blog_content,
        blog_url=row.blog_url,
        source_urls=row.get_source_urls(),
        crawl_mode=row.crawl_mode,
        crawled_pages=row.get_crawled_pages(),
        total_input_tokens=row.total_input_tokens,
        total_output_tokens=row.total_output_tokens,
        qa_data=[_item_to_record(i) for i in row.qa_items] if with_items else [],
        statistics=SessionStatistics(
            total_questions=stats.total_questions,
            avg_accuracy=stats.avg_accuracy,
            total_cost=stats.total_cost,
        ) if stats else SessionStatistics(),
    )


def _record_to_row(rec: QASessionRecord) -> QASession:
    row = QASession(
        id=rec.id,
        user_id=rec.user_id,
        name=rec.name,
        type=rec.type,
        timestamp=rec.timestamp,
        model=rec.model or "",
        question_provider=rec.question_provider,
        question_model=rec.question_model,
        answer_provider=rec.answer_provider,
        answer_model=rec.answer_model,
        blog_content=rec.blog_content,
        blog_url=rec.blog_url,
        source_urls=json.dumps(rec.source_urls),
        crawl_mode=rec.crawl_mode,
        crawled_pages=json.dumps(rec.crawled_pages),
        total_input_tokens=rec.total_input_tokens,
        total_output_tokens=rec.total_output_tokens,
    )
    row.statistics = StatisticsRow(
        session_id=rec.id,
        total_questions=rec.statistics.total_questions,
        avg_accuracy=rec.statistics.avg_accuracy,
        total_cost=rec.statistics.total_cost,
    )
    row.qa_items = [
        QAData(
            session_id=rec.id,
            question=item.question,
            answer=item.answer,
            accuracy=item.accuracy,
            sentiment=item.sentiment,
            input_tokens=item.input_tokens,
            output_tokens=item.output_tokens,
            total_tokens=item.total_tokens,
            cost=item.cost,
            question_order=item.question_order if item.question_order is not None else idx,
            embedding=_dumps(item.embedding),
            question_embedding=_dumps(item.question_embedding),
        )
        for idx, item in enumerate(rec.qa_data)
    ]
    return row


class SQLSessionStore(SessionStore):
    backend = "sqlite"

    def __init__(self, create_tables: bool = True):
        if create_tables:
            init_db()

    @staticmethod
    def _db() -> Session:
        return Session(get_engine(), expire_on_commit=False)

    # ── users ──

    def create_user(self, user: UserRecord) -> UserRecord:
        row = User(
            id=user.id,
            email=user.email,
            name=user.name,
            display_name=user.display_name,
            password=user.password,
            tenant_id=user.tenant_id,
            roles=json.dumps(user.roles),
            is_active=1 if user.is_active else 0,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        with self._db() as db:
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise StorageError(f"User already exists: {user.email}") from e
            return _user_to_record(row)

    def upsert_user(self, user: UserRecord) -> UserRecord:
        now = now_iso()
        with self._db() as db:
            row = db.get(User, user.id)
            if row is None:
                row = User(id=user.id, email=user.email, created_at=now)
            row.email = user.email
            row.name = user.name
            row.display_name = user.display_name
            row.tenant_id = user.tenant_id
            row.roles = json.dumps(user.roles)
            row.is_active = 1
            row.last_login_at = now
            row.updated_at = now
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise StorageError(f"E-mail already bound to another account: {user.email}") from e
            return _user_to_record(row)

    def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self._db() as db:
            row = db.get(User, user_id)
            return _user_to_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._db() as db:
            row = db.exec(select(User).where(User.email == email)).first()
            return _user_to_record(row) if row else None

    def update_last_login(self, user_id: str) -> None:
        with self._db() as db:
            row = db.get(User, user_id)
            if row is None:
                return
            now = now_iso()
            row.last_login_at = now
            row.updated_at = now
            db.add(row)
            db.commit()

    # ── refresh-token sessions ──

    def save_user_session(self, user_id: str, refresh_token: str, expires_at: str) -> UserSessionRecord:
        row = UserSession(id=str(uuid.uuid4()), user_id=user_id, refresh_token=refresh_token, expires_at=expires_at)
        with self._db() as db:
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise StorageError(f"Unknown user: {user_id}") from e
            return UserSessionRecord.model_validate(row.model_dump())

    def get_user_session(self, refresh_token: str) -> Optional[UserSessionRecord]:
        with self._db() as db:
            row = db.exec(select(UserSession).where(UserSession.refresh_token == refresh_token)).first()
            return UserSessionRecord.model_validate(row.model_dump()) if row else None

    def delete_user_session(self, refresh_token: str) -> bool:
        with self._db() as db:
            rows = db.exec(select(UserSession).where(UserSession.refresh_token == refresh_token)).all()
            for row in rows:
                db.delete(row)
            db.commit()
            return bool(rows)

    def delete_expired_user_sessions(self) -> int:
        with self._db() as db:
            expired = [r for r in db.exec(select(UserSession)).all() if is_expired(r.expires_at)]
            for row in expired:
                db.delete(row)
            db.commit()
        if expired:
            logger.info("[storage] removed %d expired refresh-token sessions", len(expired))
        return len(expired)

    # ── Q&A sessions ──

    def save_session(self, session: QASessionRecord) -> str:
        if not session.user_id:
            raise StorageError("Session has no owner")
        with self._db() as db:
            existing = db.get(QASession, session.id)
            if existing is not None:
                if existing.user_id != session.user_id:
                    raise StorageError(f"Session id already in use: {session.id}")
                db.delete(existing)
                db.flush()
            db.add(_record_to_row(session))
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise StorageError(f"Could not save session {session.id}: {e.orig}") from e
        return session.id

    def _owned_query(self, user_id: str):
        return (
            select(QASession)
            .where(QASession.user_id == user_id)
            .options(selectinload(QASession.qa_items), selectinload(QASession.statistics))
        )

    def list_sessions(
        self, session_type: str, user_id: str, filters: Optional[SessionFilters] = None
    ) -> List[QASessionRecord]:
        stmt = self._owned_query(user_id).where(QASession.type == session_type)
        if filters and filters.from_date:
            stmt = stmt.where(QASession.timestamp >= filters.from_date)
        if filters and filters.to_date:
            stmt = stmt.where(QASession.timestamp <= filters.to_date + "T23:59:59")
        stmt = stmt.order_by(QASession.timestamp.desc())
        with self._db() as db:
            records = [_session_to_record(r) for r in db.exec(stmt).all()]
        # provider/model/link/search are cheap to check on the loaded rows
        return [r for r in records if matches_filters(r, filters)]

    def get_session(self, session_id: str, user_id: str) -> Optional[QASessionRecord]:
        stmt = self._owned_query(user_id).where(QASession.id == session_id)
        with self._db() as db:
            row = db.exec(stmt).first()
            return _session_to_record(row) if row else None

    def delete_session(self, session_id: str, user_id: str) -> bool:
        with self._db() as db:
            row = db.get(QASession, session_id)
            if row is None or row.user_id != user_id:
                return False
            db.delete(row)
            db.commit()
            return True

    def _iter_qa_items(self, user_id: str) -> Iterator[Tuple[QASessionRecord, QAItem]]:
        stmt = self._owned_query(user_id)
        with self._db() as db:
            rows = db.exec(stmt).all()
            pairs = []
            for row in rows:
                header = _session_to_record(row, with_items=False)
                pairs.extend((header, _item_to_record(i)) for i in row.qa_items)
        return iter(pairs)
