"""
三种存储后端共用的行为测试：归属隔离、过滤、批量保存、相似度检索、refresh token 会话。
"""

from datetime import datetime, timedelta, timezone

import pytest

from genfuze.storage import StorageError, create_store
from genfuze.storage.base import matches_filters
from genfuze.storage.json_store import JSONSessionStore
from genfuze.storage.memory_store import MemorySessionStore
from genfuze.storage.records import QASessionRecord, SessionFilters, UserRecord
from genfuze.storage.sql_store import SQLSessionStore


@pytest.fixture(params=["memory", "json", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemorySessionStore()
    elif request.param == "json":
        s = JSONSessionStore(tmp_path / "json-store")
    else:
        s = SQLSessionStore()
    for uid in ("alice", "bob"):
        s.create_user(UserRecord(id=uid, email=f"{uid}@example.com", name=uid))
    return s


def _session(session_id, user_id="alice", session_type="question", **kw):
    data = dict(
        id=session_id,
        user_id=user_id,
        name=f"session {session_id}",
        type=session_type,
        timestamp="2026-05-01T10:00:00.000Z",
        question_provider="gemini",
        question_model="gemini-1.5-flash",
        answer_provider="openai",
        answer_model="gpt-4",
        blog_url="https://blog.example.com/geo",
        source_urls=["https://docs.example.com/guide"],
        qa_data=[{"question": "What is GEO?", "answer": "An optimisation practice.", "accuracy": 85}],
        statistics={"totalQuestions": 1, "avgAccuracy": 85, "totalCost": 0.0001},
    )
    data.update(kw)
    return QASessionRecord.model_validate(data)


def test_save_and_get_round_trip(store):
    store.save_session(_session("s-1"))
    loaded = store.get_session("s-1", "alice")
    assert loaded is not None
    assert loaded.name == "session s-1"
    assert loaded.qa_data[0].question == "What is GEO?"
    assert loaded.qa_data[0].accuracy == "85"
    assert loaded.statistics.total_questions == 1
    assert loaded.source_urls == ["https://docs.example.com/guide"]


def test_other_users_session_is_invisible(store):
    store.save_session(_session("s-1"))
    assert store.get_session("s-1", "bob") is None
    assert store.list_sessions("question", "bob") == []
    assert store.delete_session("s-1", "bob") is False
    assert store.get_session("s-1", "alice") is not None


def test_resave_by_owner_replaces(store):
    store.save_session(_session("s-1"))
    store.save_session(_session("s-1", name="renamed", qa_data=[
        {"question": "Q1", "answer": "A1"}, {"question": "Q2", "answer": "A2"},
    ]))
    loaded = store.get_session("s-1", "alice")
    assert loaded.name == "renamed"
    assert [qa.question for qa in loaded.qa_data] == ["Q1", "Q2"]


def test_id_owned_by_someone_else_is_rejected(store):
    store.save_session(_session("s-1"))
    with pytest.raises(StorageError):
        store.save_session(_session("s-1", user_id="bob"))


def test_session_without_owner_is_rejected(store):
    with pytest.raises(StorageError):
        store.save_session(_session("s-1", user_id=""))


def test_list_is_newest_first_and_typed(store):
    store.save_session(_session("old", timestamp="2026-01-01T00:00:00Z"))
    store.save_session(_session("new", timestamp="2026-03-01T00:00:00Z"))
    store.save_session(_session("ans", session_type="answer", timestamp="2026-02-01T00:00:00Z"))
    assert [s.id for s in store.list_sessions("question", "alice")] == ["new", "old"]
    assert [s.id for s in store.list_sessions("answer", "alice")] == ["ans"]
    assert store.count_sessions("question", "alice") == 2


def test_list_filters(store):
    store.save_session(_session("jan", timestamp="2026-01-15T08:00:00Z"))
    store.save_session(_session("feb", timestamp="2026-02-15T08:00:00Z", question_provider="openai",
                                question_model="gpt-4", blog_url="https://other.example.net/post",
                                source_urls=[]))

    def ids(**kw):
        return [s.id for s in store.list_sessions("question", "alice", SessionFilters(**kw))]

    assert ids(from_date="2026-02-01") == ["feb"]
    assert ids(to_date="2026-01-15") == ["jan"]
    assert ids(llm_provider="openai") == ["feb"]
    assert ids(llm_model="gemini-1.5-flash") == ["jan"]
    assert ids(blog_link="OTHER.example") == ["feb"]
    assert ids(blog_link="docs.example.com") == ["jan"]
    assert ids(search="2026-01") == ["jan"]


def test_answer_sessions_filter_on_answer_provider(store):
    store.save_session(_session("a-1", session_type="answer"))
    hits = store.list_sessions("answer", "alice", SessionFilters(llm_provider="openai"))
    assert [s.id for s in hits] == ["a-1"]
    assert store.list_sessions("answer", "alice", SessionFilters(llm_provider="gemini")) == []


def test_delete_removes_session(store):
    store.save_session(_session("s-1"))
    assert store.delete_session("s-1", "alice") is True
    assert store.get_session("s-1", "alice") is None
    assert store.delete_session("s-1", "alice") is False


def test_bulk_save_reports_each_record(store):
    good = _session("b-1").to_wire()
    bad = {"id": "b-2", "type": "not-a-type", "name": "broken"}
    result = store.bulk_save_sessions([good, bad], "alice")
    assert result.summary.total == 2
    assert result.summary.successful == 1
    assert result.summary.failed == 1
    assert result.results[0].success and result.results[0].id == "b-1"
    assert not result.results[1].success and result.results[1].error
    assert store.get_session("b-1", "alice") is not None


def test_bulk_save_assigns_caller_as_owner(store):
    raw = _session("b-1", user_id="bob").to_wire()
    store.bulk_save_sessions([raw], "alice")
    assert store.get_session("b-1", "alice") is not None
    assert store.get_session("b-1", "bob") is None


def test_similarity_search_ranks_and_thresholds(store):
    store.save_session(_session("s-1", qa_data=[
        {"question": "close", "answer": "a", "embedding": [1.0, 0.0], "questionEmbedding": [1.0, 0.0]},
        {"question": "near", "answer": "b", "embedding": [0.8, 0.6], "questionEmbedding": [0.8, 0.6]},
        {"question": "far", "answer": "c", "embedding": [0.0, 1.0], "questionEmbedding": [0.0, 1.0]},
        {"question": "no vector", "answer": "d"},
    ]))
    store.save_session(_session("s-2", user_id="bob", qa_data=[
        {"question": "bob's", "answer": "x", "embedding": [1.0, 0.0]},
    ]))

    hits = store.find_similar_answers([1.0, 0.0], "alice", limit=10, threshold=0.7)
    assert [h.question for h in hits] == ["close", "near"]
    assert hits[0].similarity == pytest.approx(1.0)
    assert hits[0].session_id == "s-1"

    top = store.find_similar_questions([1.0, 0.0], "alice", limit=1, threshold=0.0)
    assert [h.question for h in top] == ["close"]


def test_refresh_sessions_lifecycle(store):
    future = (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    store.save_user_session("alice", "tok-live", future)
    store.save_user_session("alice", "tok-dead", past)

    assert store.get_user_session("tok-live").user_id == "alice"
    assert store.delete_expired_user_sessions() == 1
    assert store.get_user_session("tok-dead") is None
    assert store.delete_user_session("tok-live") is True
    assert store.delete_user_session("tok-live") is False


def test_duplicate_email_is_rejected(store):
    with pytest.raises(StorageError):
        store.create_user(UserRecord(id="alice-2", email="alice@example.com"))


def test_upsert_user_updates_profile_and_login(store):
    stored = store.upsert_user(UserRecord(id="carol", email="carol@example.com", name="Carol", tenant_id="t1"))
    assert stored.last_login_at
    again = store.upsert_user(UserRecord(id="carol", email="carol@example.com", name="Carol B", tenant_id="t1"))
    assert again.name == "Carol B"
    assert store.get_user_by_email("carol@example.com").id == "carol"


def test_upsert_user_rejects_email_of_another_account(store):
    with pytest.raises(StorageError):
        store.upsert_user(UserRecord(id="azure-oid-1", email="bob@example.com", name="Impostor"))
    assert store.get_user_by_email("bob@example.com").id == "bob"
    assert store.get_user_by_id("azure-oid-1") is None


def test_json_store_survives_reload(tmp_path):
    path = tmp_path / "persist"
    first = JSONSessionStore(path)
    first.create_user(UserRecord(id="alice", email="alice@example.com", password="hashed"))
    first.save_session(_session("s-1"))

    second = JSONSessionStore(path)
    assert second.get_session("s-1", "alice").name == "session s-1"
    # the hash must survive even though wire dumps exclude it
    assert second.get_user_by_id("alice").password == "hashed"


def test_json_store_rolls_back_when_write_fails(tmp_path, monkeypatch):
    from genfuze.storage import json_store

    store = JSONSessionStore(tmp_path / "flaky")
    store.create_user(UserRecord(id="alice", email="alice@example.com"))
    store.save_session(_session("s-1"))

    def disk_full(path, payload):
        raise OSError("No space left on device")

    monkeypatch.setattr(json_store, "_atomic_write", disk_full)
    with pytest.raises(OSError):
        store.save_session(_session("s-2"))
    with pytest.raises(OSError):
        store.delete_session("s-1", "alice")
    with pytest.raises(OSError):
        store.create_user(UserRecord(id="bob", email="bob@example.com"))

    assert store.get_session("s-2", "alice") is None
    assert store.get_session("s-1", "alice") is not None
    assert store.get_user_by_id("bob") is None

    reloaded = JSONSessionStore(tmp_path / "flaky")
    assert [s.id for s in reloaded.list_sessions("question", "alice")] == ["s-1"]


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_store("mongo")


def test_matches_filters_without_filters():
    assert matches_filters(_session("s-1"), None)
    assert matches_filters(_session("s-1"), SessionFilters())
