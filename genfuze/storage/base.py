"""
SessionStore: the storage contract every backend implements.

Ownership rule: every session read, delete and similarity search takes the
caller's user id and only ever sees that user's records. A session owned by
someone else is indistinguishable from a missing one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from pydantic import ValidationError

from genfuze.analysis.similarity import cosine_similarity
from genfuze.log import get_logger
from genfuze.storage.records import (
    BulkResultItem,
    BulkSaveResult,
    BulkSummary,
    QAItem,
    QASessionRecord,
    SessionFilters,
    SimilarQA,
    UserRecord,
    UserSessionRecord,
)

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when a backend cannot complete a write."""


def _parse_ts(value: str) -> Optional[datetime]:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_expired(expires_at: str, now: Optional[datetime] = None) -> bool:
    expiry = _parse_ts(expires_at)
    if expiry is None:
        return True
    return expiry <= (now or datetime.now(timezone.utc))


def matches_filters(session: QASessionRecord, filters: Optional[SessionFilters]) -> bool:
    """In-process equivalent of the SQL WHERE clause built by the sqlite store."""
    if filters is None:
        return True
    ts = session.timestamp or ""
    if filters.from_date and ts < filters.from_date:
        return False
    if filters.to_date and ts > filters.to_date + "T23:59:59":
        return False
    if session.type == "question":
        provider, model = session.question_provider, session.question_model
    else:
        provider, model = session.answer_provider, session.answer_model
    if filters.llm_provider and provider != filters.llm_provider:
        return False
    if filters.llm_model and model != filters.llm_model:
        return False
    if filters.blog_link:
        needle = filters.blog_link.lower()
        if not any(needle in (url or "").lower() for url in session.all_urls()):
            return False
    if filters.search and filters.search not in ts:
        return False
    return True


class SessionStore(ABC):
    backend: str = "abstract"

    # ── users ────────────────────────────────────────────────────────────────

    @abstractmethod
    def create_user(self, user: UserRecord) -> UserRecord:
        """Insert a new user; StorageError if the id or e-mail is taken."""

    @abstractmethod
    def upsert_user(self, user: UserRecord) -> UserRecord:
        """Insert or refresh an externally authenticated (Entra ID) user; stamps last login."""

    @abstractmethod
    def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def update_last_login(self, user_id: str) -> None:
        ...

    # ── refresh-token sessions ───────────────────────────────────────────────

    @abstractmethod
    def save_user_session(self, user_id: str, refresh_token: str, expires_at: str) -> UserSessionRecord:
        ...

    @abstractmethod
    def get_user_session(self, refresh_token: str) -> Optional[UserSessionRecord]:
        ...

    @abstractmethod
    def delete_user_session(self, refresh_token: str) -> bool:
        ...

    @abstractmethod
    def delete_expired_user_sessions(self) -> int:
        ...

    # ── Q&A sessions ─────────────────────────────────────────────────────────

    @abstractmethod
    def save_session(self, session: QASessionRecord) -> str:
        """
        Persist the whole record (session row, statistics, every QA item)
        atomically. Re-saving an id the same user already owns replaces it;
        an id owned by another user is rejected with StorageError.
        """

    @abstractmethod
    def list_sessions(
        self, session_type: str, user_id: str, filters: Optional[SessionFilters] = None
    ) -> List[QASessionRecord]:
        """Newest first."""

    @abstractmethod
    def get_session(self, session_id: str, user_id: str) -> Optional[QASessionRecord]:
        ...

    @abstractmethod
    def delete_session(self, session_id: str, user_id: str) -> bool:
        ...

    @abstractmethod
    def _iter_qa_items(self, user_id: str) -> Iterator[Tuple[QASessionRecord, QAItem]]:
        """Yield (session, item) for every stored QA item of the user."""

    def count_sessions(self, session_type: str, user_id: str) -> int:
        return len(self.list_sessions(session_type, user_id))

    def bulk_save_sessions(self, sessions: Iterable[Any], user_id: str) -> BulkSaveResult:
        """
        Save each record independently; one bad record is reported in
        ``results`` and does not stop the others.
        """
        results: List[BulkResultItem] = []
        for raw in sessions:
            raw_id = raw.get("id") if isinstance(raw, dict) else getattr(raw, "id", None)
            try:
                if isinstance(raw, QASessionRecord):
                    record = raw.model_copy(update={"user_id": user_id})
                else:
                    record = QASessionRecord.model_validate({**(raw or {}), "userId": user_id})
                saved_id = self.save_session(record)
                results.append(BulkResultItem(id=saved_id, success=True))
            except (ValidationError, StorageError, TypeError) as e:
                logger.warning("[storage] bulk save skipped %s: %s", raw_id, e)
                results.append(BulkResultItem(id=raw_id, success=False, error=str(e)))
        ok = sum(1 for r in results if r.success)
        return BulkSaveResult(
            success=True,
            results=results,
            summary=BulkSummary(total=len(results), successful=ok, failed=len(results) - ok),
        )

    # ── similarity search ────────────────────────────────────────────────────

    def _find_similar(
        self,
        query: List[float],
        user_id: str,
        limit: int,
        threshold: float,
        field: str,
    ) -> List[SimilarQA]:
        hits: List[SimilarQA] = []
        for session, item in self._iter_qa_items(user_id):
            stored = getattr(item, field)
            if not stored:
                continue
            score = cosine_similarity(query, stored)
            if score < threshold:
                continue
            hits.append(
                SimilarQA(
                    question=item.question,
                    answer=item.answer,
                    similarity=score,
                    session_id=session.id,
                    session_name=session.name,
                    session_timestamp=session.timestamp,
                    blog_url=session.blog_url,
                    source_urls=session.source_urls,
                    accuracy=item.accuracy,
                    sentiment=item.sentiment,
                )
            )
        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:limit]

    def find_similar_questions(
        self, embedding: List[float], user_id: str, limit: int = 10, threshold: float = 0.7
    ) -> List[SimilarQA]:
        return self._find_similar(embedding, user_id, limit, threshold, "question_embedding")

    def find_similar_answers(
        self, embedding: List[float], user_id: str, limit: int = 10, threshold: float = 0.7
    ) -> List[SimilarQA]:
        return self._find_similar(embedding, user_id, limit, threshold, "embedding")

    def close(self) -> None:
        """Release backend resources (no-op unless overridden)."""
