"""
SQLModel table definitions for the sqlite storage backend.

Design rules for SQLModel compatibility:
  - primary_key=True and foreign_key="..." must be set in Field() only,
    never combined with sa_column (SQLModel raises RuntimeError otherwise).
  - JSON list columns (roles, source_urls, crawled_pages, embeddings) stay
    as TEXT with Python-side serialization.
  - Child tables cascade from their owner so deleting a session removes its
    statistics row and every qa_data row in one statement.
"""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import Column, Float, Index, Integer, Text
from sqlmodel import Field, Relationship, SQLModel


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _loads_list(raw: Optional[str]) -> List[Any]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


# ──────────────────────────────────────────────────────────────────────────────
# 1. Users  (local accounts + Entra ID accounts share one table)
# ──────────────────────────────────────────────────────────────────────────────

class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email", unique=True),
        Index("idx_users_tenant_id", "tenant_id"),
    )

    id: str = Field(primary_key=True)
    email: str = Field(sa_column=Column(Text, nullable=False))
    name: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    display_name: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    # bcrypt hash; NULL for Entra ID accounts
    password: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    tenant_id: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    roles: str = Field(default='["user"]', sa_column=Column(Text, nullable=False, server_default='["user"]'))
    is_active: int = Field(default=1, sa_column=Column(Integer, nullable=False, server_default="1"))
    last_login_at: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    updated_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))

    refresh_sessions: List["UserSession"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    qa_sessions: List["QASession"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    def get_roles(self) -> List[str]:
        return [str(r) for r in _loads_list(self.roles)]


class UserSession(SQLModel, table=True):
    """Refresh-token record; rows are rotated on refresh and swept once expired."""

    __tablename__ = "user_sessions"
    __table_args__ = (
        Index("idx_user_sessions_user_id", "user_id"),
        Index("idx_user_sessions_refresh_token", "refresh_token"),
    )

    id: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="users.id")
    refresh_token: str = Field(sa_column=Column(Text, nullable=False))
    expires_at: str = Field(sa_column=Column(Text, nullable=False))
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))

    user: Optional[User] = Relationship(back_populates="refresh_sessions")


# ──────────────────────────────────────────────────────────────────────────────
# 2. Q&A sessions
# ──────────────────────────────────────────────────────────────────────────────

class QASession(SQLModel, table=True):
    __tablename__ = "sessions"
    __table_args__ = (
        Index("idx_sessions_user_id", "user_id"),
        Index("idx_sessions_type", "type"),
        Index("idx_sessions_timestamp", "timestamp"),
    )

    id: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="users.id")
    name: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    type: str = Field(sa_column=Column(Text, nullable=False))  # question | answer
    timestamp: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    model: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    question_provider: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    question_model: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    answer_provider: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    answer_model: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    blog_content: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    blog_url: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    source_urls: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))
    crawl_mode: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    crawled_pages: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))
    total_input_tokens: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    total_output_tokens: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    created_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
    updated_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))

    user: Optional[User] = Relationship(back_populates="qa_sessions")
    statistics: Optional["SessionStatistics"] = Relationship(
        back_populates="session",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "uselist": False},
    )
    qa_items: List["QAData"] = Relationship(
        back_populates="session",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "QAData.question_order"},
    )

    def get_source_urls(self) -> List[str]:
        return [str(u) for u in _loads_list(self.source_urls)]

    def get_crawled_pages(self) -> List[str]:
        return [str(u) for u in _loads_list(self.crawled_pages)]


class SessionStatistics(SQLModel, table=True):
    __tablename__ = "session_statistics"

    session_id: str = Field(foreign_key="sessions.id", primary_key=True)
    total_questions: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    avg_accuracy: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    total_cost: str = Field(default="0", sa_column=Column(Text, nullable=False, server_default="0"))

    session: Optional[QASession] = Relationship(back_populates="statistics")


class QAData(SQLModel, table=True):
    __tablename__ = "qa_data"
    __table_args__ = (
        Index("idx_qa_data_session_id", "session_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(foreign_key="sessions.id")
    question: str = Field(sa_column=Column(Text, nullable=False))
    answer: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    accuracy: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    sentiment: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    input_tokens: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    output_tokens: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    total_tokens: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    cost: float = Field(default=0.0, sa_column=Column(Float, nullable=False, server_default="0"))
    question_order: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    # JSON-encoded float arrays from the embedding model
    embedding: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    question_embedding: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    session: Optional[QASession] = Relationship(back_populates="qa_items")

    def get_embedding(self) -> Optional[List[float]]:
        vec = _loads_list(self.embedding)
        return vec or None

    def get_question_embedding(self) -> Optional[List[float]]:
        vec = _loads_list(self.question_embedding)
        return vec or None


# ──────────────────────────────────────────────────────────────────────────────
# 3. Auth: JWT revocation list
# ──────────────────────────────────────────────────────────────────────────────

class RevokedToken(SQLModel, table=True):
    """Stores SHA-256 hashes of access tokens revoked by logout.

    Normal validation only does a primary-key lookup here. Rows whose
    `expires_at` is in the past can be purged.
    """

    __tablename__ = "revoked_tokens"
    __table_args__ = (
        Index("idx_revoked_tokens_expires_at", "expires_at"),
    )

    token_hash: str = Field(sa_column=Column(Text, primary_key=True, nullable=False))
    expires_at: str = Field(sa_column=Column(Text, nullable=False))
    revoked_at: str = Field(default_factory=_now_iso, sa_column=Column(Text, nullable=False))
