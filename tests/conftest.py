"""
共享 Fixtures: 临时 SQLite、Mock LLM / Embedding / 邮件服务、带 token 的 TestClient。
"""

import sys
import uuid
from pathlib import Path
from unittest.mock import MagicMock

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from genfuze.auth.tokens import create_access_token
from genfuze.db.engine import reset_engine
from genfuze.llm import LLMResult, LLMService, set_embedding_service, set_llm_service
from genfuze.notify import EmailService, set_email_service
from genfuze.storage import set_store
from genfuze.storage.records import UserRecord


@pytest.fixture(autouse=True)
def temp_database(tmp_path, monkeypatch):
    """每个测试一份独立的 sqlite 文件，单例全部清空。"""
    monkeypatch.setenv("GENFUZE_DATABASE_URL", f"sqlite:///{tmp_path / 'genfuze-test.db'}")
    reset_engine()
    set_store(None)
    yield
    set_store(None)
    set_llm_service(None)
    set_embedding_service(None)
    set_email_service(None)
    reset_engine()


@pytest.fixture
def sql_store():
    from genfuze.storage.sql_store import SQLSessionStore
    store = SQLSessionStore()
    set_store(store)
    return store


@pytest.fixture
def make_user(sql_store):
    def _make(email=None, roles=None):
        user = UserRecord(
            id=str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            name="Test User",
            display_name="Test User",
            roles=roles or ["user"],
        )
        return sql_store.create_user(user)
    return _make


@pytest.fixture
def user(make_user):
    return make_user("alice@example.com")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def mock_llm_service():
    """模拟 LLMService：所有 provider 视为已配置，回复由 reply 属性控制。"""
    service = MagicMock(spec=LLMService)
    service.reply = "Q: What is GEO?\nQ: Why does structure matter?"

    def _call(prompt, provider, model=None, is_question=False):
        return LLMResult(
            text=service.reply,
            input_tokens=10,
            output_tokens=5,
            provider=provider,
            model=model or "gemini-1.5-flash",
        )

    service.call.side_effect = _call
    service.is_configured.return_value = True
    service.configured_providers.return_value = ["gemini"]
    set_llm_service(service)
    return service


@pytest.fixture
def mock_embedder():
    """确定性的 3 维向量：同一文本得到同一向量。"""
    embedder = MagicMock()

    def _embed(text):
        n = float(len(text))
        return [1.0, n % 7 + 1.0, n % 3 + 1.0]

    embedder.embed.side_effect = _embed
    set_embedding_service(embedder)
    return embedder


@pytest.fixture
def mock_email_service():
    mailer = MagicMock(spec=EmailService)
    mailer.send_test.return_value = {"success": True, "messageId": "<test@genfuze>"}
    mailer.send_crawl_completion.return_value = {"success": True, "messageId": "<done@genfuze>"}
    mailer.send_crawl_error.return_value = {"success": False, "error": "SMTP not configured"}
    set_email_service(mailer)
    return mailer


@pytest.fixture
def client(sql_store, mock_llm_service, mock_embedder, mock_email_service):
    from fastapi.testclient import TestClient
    from genfuze.api.server import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def sample_session():
    """前端保存的 question 会话（camelCase）。"""
    def _make(session_id="s-1", session_type="question", **overrides):
        data = {
            "id": session_id,
            "name": "GEO blog questions",
            "type": session_type,
            "timestamp": "2026-05-01T10:00:00.000Z",
            "model": "gemini-1.5-flash",
            "questionProvider": "gemini",
            "questionModel": "gemini-1.5-flash",
            "blogUrl": "https://blog.example.com/geo",
            "sourceUrls": ["https://blog.example.com/geo"],
            "totalInputTokens": 120,
            "totalOutputTokens": 40,
            "qaData": [
                {
                    "question": 'What does "GEO" stand for?',
                    "answer": "Generative engine optimisation, a practice for AI search.",
                    "accuracy": "85",
                    "sentiment": "positive",
                    "inputTokens": 60,
                    "outputTokens": 20,
                    "totalTokens": 80,
                    "cost": 0.0001,
                },
            ],
            "statistics": {"totalQuestions": 1, "avgAccuracy": "85", "totalCost": "0.0001"},
        }
        data.update(overrides)
        return data
    return _make
