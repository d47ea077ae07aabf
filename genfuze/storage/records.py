"""
Wire/storage records shared by every backend.

Field names are snake_case in Python and camelCase on the wire (the SPA's
shape); ``populate_by_name`` lets stores build records from either.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SessionType = Literal["question", "answer"]
SESSION_TYPES = ("question", "answer")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self, **kwargs: Any) -> dict:
        return self.model_dump(by_alias=True, **kwargs)


def _as_text(value: Any) -> Any:
    # SPA sends accuracy/cost sometimes as numbers, sometimes as "85%" strings
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class QAItem(CamelModel):
    question: str
    answer: str = ""
    accuracy: Optional[str] = None
    sentiment: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0
    question_order: Optional[int] = None
    embedding: Optional[List[float]] = None
    question_embedding: Optional[List[float]] = None

    @field_validator("accuracy", mode="before")
    @classmethod
    def accuracy_text(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("sentiment", "answer", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("cost", mode="before")
    @classmethod
    def cost_number(cls, v: Any) -> Any:
        if v in (None, ""):
            return 0.0
        return v


class SessionStatistics(CamelModel):
    total_questions: int = 0
    avg_accuracy: str = ""
    total_cost: str = "0"

    @field_validator("avg_accuracy", "total_cost", mode="before")
    @classmethod
    def stats_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return _as_text(v)


class QASessionRecord(CamelModel):
    id: str
    user_id: str = ""
    name: str
    type: SessionType
    timestamp: str = Field(default_factory=now_iso)
    model: str = ""
    question_provider: Optional[str] = None
    question_model: Optional[str] = None
    answer_provider: Optional[str] = None
    answer_model: Optional[str] = None
    blog_content: Optional[str] = None
    blog_url: Optional[str] = None
    source_urls: List[str] = Field(default_factory=list)
    crawl_mode: Optional[str] = None
    crawled_pages: List[str] = Field(default_factory=list)
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    qa_data: List[QAItem] = Field(default_factory=list)
    statistics: SessionStatistics = Field(default_factory=SessionStatistics)

    @field_validator("source_urls", "crawled_pages", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def all_urls(self) -> List[str]:
        urls = list(self.source_urls)
        if self.blog_url:
            urls.append(self.blog_url)
        return urls


class SessionFilters(CamelModel):
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    llm_provider: Optional[str] = None
    llm_model: Optional[str] = None
    blog_link: Optional[str] = None
    search: Optional[str] = None


class UserRecord(CamelModel):
    id: str
    email: str
    name: str = ""
    display_name: str = ""
    password: Optional[str] = Field(default=None, exclude=True)
    tenant_id: Optional[str] = None
    roles: List[str] = Field(default_factory=lambda: ["user"])
    is_active: bool = True
    last_login_at: Optional[str] = None
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)


class UserSessionRecord(CamelModel):
    id: str
    user_id: str
    refresh_token: str
    expires_at: str
    created_at: str = Field(default_factory=now_iso)


class SimilarQA(CamelModel):
    """A stored Q&A pair matched by embedding similarity."""

    question: str
    answer: str
    similarity: float
    session_id: str
    session_name: str = ""
    session_timestamp: str = ""
    blog_url: Optional[str] = None
    source_urls: List[str] = Field(default_factory=list)
    accuracy: Optional[str] = None
    sentiment: str = ""


class BulkResultItem(CamelModel):
    id: Optional[str] = None
    success: bool
    error: Optional[str] = None


class BulkSummary(CamelModel):
    total: int
    successful: int
    failed: int


class BulkSaveResult(CamelModel):
    success: bool = True
    results: List[BulkResultItem]
    summary: BulkSummary
