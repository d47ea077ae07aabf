"""
API 请求 Pydantic 模型

字段一律可选，缺失字段由路由给出与前端约定的 400 文案；线上字段为 camelCase。
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from genfuze.storage.records import CamelModel


# ── auth ──

class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = None


class LocalLoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AzureLoginRequest(CamelModel):
    msal_token: Optional[str] = None
    client_id: Optional[str] = None
    tenant_id: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


# ── sessions ──

class BulkSessionsRequest(CamelModel):
    sessions: Any = None


# ── llm ──

class GenerateQuestionsRequest(CamelModel):
    content: Optional[str] = None
    question_count: Optional[int] = None
    provider: Optional[str] = None
    model: Optional[str] = None


class GenerateAnswersRequest(CamelModel):
    content: Optional[str] = None
    questions: Any = None
    provider: Optional[str] = None
    model: Optional[str] = None


class ConfidenceRequest(CamelModel):
    question: Optional[str] = None
    content: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None


class CompareQuestionsRequest(CamelModel):
    question1: Optional[str] = None
    question2: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None


class RelevanceRequest(CamelModel):
    source_urls: Optional[List[str]] = None
    blog_url: Optional[str] = None
    question_text: Optional[str] = None


class AnswerScoreRequest(CamelModel):
    answer: Optional[str] = None
    content: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None


class GeoScoreRequest(CamelModel):
    accuracy: float = 0
    question: str = ""
    answer: str = ""
    important_questions: List[str] = Field(default_factory=list)
    all_confidences: List[float] = Field(default_factory=list)
    source_url: Optional[str] = None
    content: str = ""


class ExtractContentRequest(CamelModel):
    url: Optional[str] = None


# ── embeddings ──

class EmbeddingRequest(CamelModel):
    text: Optional[str] = None
    type: str = "answer"


class QuestionSearchRequest(CamelModel):
    question: Optional[str] = None
    limit: int = 10
    threshold: float = 0.7


class AnswerSearchRequest(CamelModel):
    answer: Optional[str] = None
    limit: int = 10
    threshold: float = 0.7


class SimilaritiesRequest(CamelModel):
    qa_data: Any = None
    content: Optional[str] = None


# ── email ──

class CrawlCompletionRequest(CamelModel):
    crawl_data: Optional[Dict[str, Any]] = None


class CrawlErrorRequest(CamelModel):
    error_data: Optional[Dict[str, Any]] = None


# ── automation ──

class QuestionsRequest(CamelModel):
    questions: Any = None


class WebAnswersRequest(CamelModel):
    questions: Any = None
    answer_provider: Optional[str] = None
    model: Optional[str] = None
    blog_content: Optional[str] = None
    blog_url: Optional[str] = None
    source_urls: Optional[List[str]] = None
