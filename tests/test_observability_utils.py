"""
指标路径归一化、/metrics 端点、TTL 缓存、prompt 模板。
"""

import pytest

from genfuze.observability.middleware import _normalize_path
from genfuze.utils import _make_key
from genfuze.utils import cache as cache_mod
from genfuze.utils.cache import TTLCache, get_cache
from genfuze.utils.prompt_manager import PromptManager


# ---------------------------------------------------------------------------
# middleware
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("path,expected", [
    ("/api/sessions/question/abc123", "/api/sessions/question/{id}"),
    ("/api/sessions/answer", "/api/sessions/answer"),
    ("/api/sessions/8f1c-uuid", "/api/sessions/{id}"),
    ("/api/sessions/bulk", "/api/sessions/bulk"),
    ("/api/llm/generate-questions", "/api/llm/generate-questions"),
])
def test_normalize_path(path, expected):
    assert _normalize_path(path) == expected


def test_metrics_endpoint_counts_requests(client, auth_headers):
    client.get("/api/sessions/question/some-id", headers=auth_headers)
    body = client.get("/metrics").text
    assert "genfuze_http_requests_total" in body
    assert 'endpoint="/api/sessions/question/{id}"' in body
    assert "some-id" not in body


# ---------------------------------------------------------------------------
# TTLCache
# ---------------------------------------------------------------------------

def test_cache_evicts_least_recently_used():
    c = TTLCache(maxsize=2, ttl_seconds=0)
    c.set("a", 1)
    c.set("b", 2)
    assert c.get("a") == 1
    c.set("c", 3)
    assert c.get("b") is None
    assert c.get("a") == 1
    assert len(c) == 2


def test_cache_entries_expire(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_mod.time, "monotonic", lambda: now[0])
    c = TTLCache(maxsize=10, ttl_seconds=60)
    c.set("k", "v")
    now[0] += 59
    assert c.get("k") == "v"
    now[0] += 2
    assert c.get("k") is None
    assert c.misses == 1


def test_get_or_set_calls_factory_once():
    c = TTLCache()
    calls = []
    assert c.get_or_set("k", lambda: calls.append(1) or [0.1]) == [0.1]
    assert c.get_or_set("k", lambda: calls.append(1) or [0.2]) == [0.1]
    assert calls == [1]


def test_disabled_cache_is_none():
    assert get_cache(False) is None


def test_make_key_is_stable_for_dicts():
    assert _make_key("p", {"b": 1, "a": 2}) == _make_key("p", {"a": 2, "b": 1})
    assert _make_key("p", "x") != _make_key("q", "x")


# ---------------------------------------------------------------------------
# prompts
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("name,kwargs", [
    ("generate_questions.txt", {"content": "BODY", "count": 3}),
    ("generate_answer.txt", {"content": "BODY", "question": "QUESTION"}),
])
def test_prompt_templates_render(name, kwargs):
    text = PromptManager().render(name, **kwargs)
    for value in kwargs.values():
        assert str(value) in text


def test_prompt_manager_is_singleton():
    assert PromptManager() is PromptManager()
