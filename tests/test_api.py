"""
HTTP 层集成测试：TestClient + 临时 sqlite + Mock LLM / Embedding / 邮件服务。

浏览器自动化路由通过 monkeypatch runner 测试，不启动浏览器。
"""

import pytest

from config.settings import settings
from genfuze.auth.tokens import create_access_token
from genfuze.automation import runner
from genfuze.automation.extractor import AUTOMATION_ERROR
from genfuze.llm import LLMError


@pytest.fixture
def local_auth(monkeypatch):
    monkeypatch.setattr(settings.auth, "enable_local_auth", True)


def _register(client, email="new@example.com", password="Passw0rd", name="New User"):
    return client.post("/api/auth/register", json={"email": email, "password": password, "name": name})


# ---------------------------------------------------------------------------
# health / errors
# ---------------------------------------------------------------------------

def test_health_is_public(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_protected_route_requires_token(client):
    resp = client.get("/api/sessions/question")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Access token required"}


def test_bad_token_is_403(client):
    resp = client.get("/api/sessions/question", headers={"Authorization": "Bearer nonsense"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Invalid or expired token"


def test_new_user_sees_empty_session_list(client, make_user):
    user = make_user("ghost@example.com")
    headers = {"Authorization": f"Bearer {create_access_token(user)}"}
    resp = client.get("/api/sessions/answer", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["sessions"] == []


def test_malformed_body_is_invalid_request(client, auth_headers):
    resp = client.post("/api/llm/generate-questions", json={"questionCount": "many"}, headers=auth_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert body["details"][0]["field"] == "questionCount"


def test_unexpected_error_is_json_500(client, sql_store, auth_headers, monkeypatch):
    from fastapi.testclient import TestClient
    from genfuze.api.server import app

    def broken(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(sql_store, "list_sessions", broken)
    # 不让 TestClient 重新抛出服务端异常，只看响应
    quiet = TestClient(app, raise_server_exceptions=False)
    resp = quiet.get("/api/sessions/question", headers=auth_headers)
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {"error": "Internal server error", "details": "disk on fire"}


# ---------------------------------------------------------------------------
# auth
# ---------------------------------------------------------------------------

def test_local_auth_routes_hidden_when_disabled(client):
    assert _register(client).status_code == 404
    assert client.post("/api/auth/local-login", json={"email": "a@b.co", "password": "x"}).status_code == 404


def test_register_returns_user_and_tokens(client, local_auth):
    resp = _register(client)
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["displayName"] == "New User"
    assert "password" not in body["user"]
    assert body["accessToken"] and body["refreshToken"] and body["expiresAt"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new@example.com"


@pytest.mark.parametrize("payload,status,error", [
    ({"email": "x@example.com", "password": "Passw0rd"}, 400, "Missing required fields: email, password, name"),
    ({"email": "not-an-email", "password": "Passw0rd", "name": "X"}, 400, "Invalid email format"),
    ({"email": "x@example.com", "password": "weak", "name": "X"}, 400,
     "Password must be at least 8 characters with uppercase, lowercase, and number"),
])
def test_register_validation(client, local_auth, payload, status, error):
    resp = client.post("/api/auth/register", json=payload)
    assert resp.status_code == status
    assert resp.json()["error"] == error


def test_register_duplicate_is_409(client, local_auth):
    _register(client)
    resp = _register(client)
    assert resp.status_code == 409
    assert resp.json()["error"] == "User already exists"


def test_local_login(client, local_auth):
    _register(client)
    ok = client.post("/api/auth/local-login", json={"email": "new@example.com", "password": "Passw0rd"})
    assert ok.status_code == 200
    assert ok.json()["user"]["lastLoginAt"]

    bad = client.post("/api/auth/local-login", json={"email": "new@example.com", "password": "Wr0ngpass"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "Invalid credentials"

    unknown = client.post("/api/auth/local-login", json={"email": "nobody@example.com", "password": "Passw0rd"})
    assert unknown.status_code == 401


def test_refresh_rotates_token(client, local_auth):
    tokens = _register(client).json()
    first = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert first.status_code == 200
    rotated = first.json()
    assert rotated["refreshToken"] != tokens["refreshToken"]

    replay = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert replay.status_code == 401
    assert client.post("/api/auth/refresh", json={"refreshToken": rotated["refreshToken"]}).status_code == 200


def test_refresh_rejects_access_token(client, auth_headers):
    access = auth_headers["Authorization"].split(" ", 1)[1]
    resp = client.post("/api/auth/refresh", json={"refreshToken": access})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Token refresh failed"
    assert client.post("/api/auth/refresh", json={}).status_code == 400


def test_logout_revokes_access_and_refresh(client, local_auth):
    tokens = _register(client).json()
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}
    resp = client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Logged out successfully"

    assert client.get("/api/auth/me", headers=headers).status_code == 403
    assert client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401


def test_azure_login_missing_fields(client):
    resp = client.post("/api/auth/login", json={"msalToken": "t"})
    assert resp.status_code == 400


def test_azure_login_upserts_user(client, monkeypatch):
    import genfuze.api.routes_auth as routes_auth

    monkeypatch.setattr(routes_auth, "validate_azure_token", lambda token, tenant_id=None: {"tid": "tenant-1"})
    monkeypatch.setattr(routes_auth, "fetch_graph_user", lambda token: {
        "id": "aad-42", "givenName": "Ada", "surname": "Lovelace", "mail": "ada@example.com",
    })
    resp = client.post("/api/auth/login", json={"msalToken": "t", "clientId": "c", "tenantId": "tenant-1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["id"] == "aad-42"
    assert body["user"]["tenantId"] == "tenant-1"
    assert body["user"]["name"] == "Ada Lovelace"


# ---------------------------------------------------------------------------
# sessions
# ---------------------------------------------------------------------------

def test_save_list_get_delete_session(client, auth_headers, sample_session, mock_embedder):
    resp = client.post("/api/sessions", json=sample_session(), headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["sessionId"] == "s-1"
    # question + answer embeddings for the single QA item
    assert mock_embedder.embed.call_count == 2

    listed = client.get("/api/sessions/question", headers=auth_headers).json()
    assert listed["totalCount"] == 1
    stored = listed["sessions"][0]
    assert stored["qaData"][0]["questionEmbedding"]
    assert stored["statistics"]["avgAccuracy"] == "85"

    detail = client.get("/api/sessions/question/s-1", headers=auth_headers)
    assert detail.json()["session"]["name"] == "GEO blog questions"

    assert client.delete("/api/sessions/s-1", headers=auth_headers).status_code == 200
    assert client.get("/api/sessions/question/s-1", headers=auth_headers).status_code == 404
    assert client.delete("/api/sessions/s-1", headers=auth_headers).status_code == 404


def test_save_session_survives_embedding_failure(client, auth_headers, sample_session, mock_embedder):
    mock_embedder.embed.side_effect = LLMError("Missing Gemini API key")
    resp = client.post("/api/sessions", json=sample_session(), headers=auth_headers)
    assert resp.status_code == 201
    stored = client.get("/api/sessions/question/s-1", headers=auth_headers).json()["session"]
    assert stored["qaData"][0]["embedding"] is None


def test_save_session_requires_fields(client, auth_headers):
    resp = client.post("/api/sessions", json={"id": "x"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing required fields: id, name, type"


def test_save_session_rejects_bad_type(client, auth_headers, sample_session):
    resp = client.post("/api/sessions", json=sample_session(session_type="other"), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid session data"


def test_sessions_are_private(client, auth_headers, make_user, sample_session):
    client.post("/api/sessions", json=sample_session(), headers=auth_headers)
    other = make_user("mallory@example.com")
    other_headers = {"Authorization": f"Bearer {create_access_token(other)}"}

    assert client.get("/api/sessions/question", headers=other_headers).json()["sessions"] == []
    assert client.get("/api/sessions/question/s-1", headers=other_headers).status_code == 404
    assert client.delete("/api/sessions/s-1", headers=other_headers).status_code == 404
    # an id already owned by someone else cannot be overwritten
    clash = client.post("/api/sessions", json=sample_session(), headers=other_headers)
    assert clash.status_code == 500


def test_list_filters_from_query(client, auth_headers, sample_session):
    client.post("/api/sessions", json=sample_session("s-old", timestamp="2026-01-01T00:00:00Z"),
                headers=auth_headers)
    client.post("/api/sessions", json=sample_session("s-new", timestamp="2026-06-01T00:00:00Z",
                                                     questionProvider="openai"), headers=auth_headers)

    resp = client.get("/api/sessions/question", params={"fromDate": "2026-03-01"}, headers=auth_headers).json()
    assert [s["id"] for s in resp["sessions"]] == ["s-new"]
    assert resp["filters"]["fromDate"] == "2026-03-01"

    resp = client.get("/api/sessions/question", params={"llmProvider": "gemini"}, headers=auth_headers).json()
    assert [s["id"] for s in resp["sessions"]] == ["s-old"]


def test_invalid_session_type(client, auth_headers):
    resp = client.get("/api/sessions/comment", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == 'Invalid session type. Must be "question" or "answer"'


def test_stats(client, auth_headers, sample_session):
    empty = client.get("/api/stats/question", headers=auth_headers).json()["stats"]
    assert empty == {"totalSessions": 0, "totalCost": "0.00000000", "totalQuestions": 0,
                     "averageQuestionsPerSession": 0}

    client.post("/api/sessions", json=sample_session("a"), headers=auth_headers)
    client.post("/api/sessions", json=sample_session("b", statistics={"totalQuestions": 4, "totalCost": "0.5"}),
                headers=auth_headers)
    stats = client.get("/api/stats/question", headers=auth_headers).json()["stats"]
    assert stats["totalSessions"] == 2
    assert stats["totalQuestions"] == 5
    assert stats["totalCost"] == "0.50010000"
    assert stats["averageQuestionsPerSession"] == "2.5"


def test_bulk_and_migrate(client, auth_headers, sample_session):
    payload = {"sessions": [sample_session("m-1"), {"id": "m-2", "name": "broken", "type": "nope"}]}
    resp = client.post("/api/sessions/bulk", json=payload, headers=auth_headers).json()
    assert resp["summary"] == {"total": 2, "successful": 1, "failed": 1}
    assert resp["results"][1]["success"] is False

    migrated = client.post("/api/migrate", json={"sessions": [sample_session("m-3")]}, headers=auth_headers).json()
    assert migrated["summary"]["successful"] == 1
    assert client.get("/api/sessions/question/m-3", headers=auth_headers).status_code == 200

    bad = client.post("/api/sessions/bulk", json={"sessions": "nope"}, headers=auth_headers)
    assert bad.status_code == 400
    assert bad.json()["error"] == "Invalid sessions data"


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------

def test_export_csv(client, auth_headers, sample_session):
    assert client.get("/api/export/question/csv", headers=auth_headers).status_code == 404

    client.post("/api/sessions", json=sample_session(), headers=auth_headers)
    resp = client.get("/api/export/question/csv", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="question-sessions-' in resp.headers["content-disposition"]
    lines = resp.text.split("\n")
    assert lines[0].startswith("Session ID,Name,Type")
    assert '"What does ""GEO"" stand for?"' in lines[1]


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------

def test_providers_is_public(client, mock_llm_service):
    body = client.get("/api/llm/providers").json()
    assert body["configuredProviders"] == ["gemini"]
    assert "gemini" in body["availableModels"]


def test_generate_questions(client, auth_headers):
    resp = client.post("/api/llm/generate-questions", json={
        "content": "Blog body", "questionCount": 1, "provider": "gemini", "model": "gemini-1.5-flash",
    }, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["questions"] == ["What is GEO?"]


def test_generate_questions_validation(client, auth_headers, mock_llm_service):
    missing = client.post("/api/llm/generate-questions", json={"content": "x"}, headers=auth_headers)
    assert missing.status_code == 400

    mock_llm_service.is_configured.return_value = False
    resp = client.post("/api/llm/generate-questions", json={
        "content": "Blog", "questionCount": 2, "provider": "openai", "model": "gpt-4",
    }, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Provider openai is not configured"


def test_generate_questions_upstream_failure(client, auth_headers, mock_llm_service):
    mock_llm_service.call.side_effect = LLMError("Gemini API Rate Limited: Too many requests")
    resp = client.post("/api/llm/generate-questions", json={
        "content": "Blog", "questionCount": 2, "provider": "gemini", "model": "gemini-1.5-flash",
    }, headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate questions",
                           "details": "Gemini API Rate Limited: Too many requests"}


def test_generate_answers(client, auth_headers, mock_llm_service):
    mock_llm_service.reply = "Because structure helps."
    resp = client.post("/api/llm/generate-answers", json={
        "content": "Blog", "questions": ["q1", "q2"], "provider": "gemini", "model": "gemini-1.5-flash",
    }, headers=auth_headers).json()
    assert [a["question"] for a in resp["answers"]] == ["q1", "q2"]
    assert resp["totalInputTokens"] == 20
    assert resp["totalCost"] > 0


def test_confidence_and_compare(client, auth_headers, mock_llm_service):
    mock_llm_service.reply = '{"confidence": 88, "similarity": 40, "reasoning": "ok"}'
    conf = client.post("/api/llm/calculate-confidence", json={
        "question": "q", "content": "c", "provider": "gemini", "model": "m",
    }, headers=auth_headers).json()
    assert conf["confidence"] == 88

    cmp = client.post("/api/llm/compare-questions", json={
        "question1": "a", "question2": "b", "provider": "gemini", "model": "m",
    }, headers=auth_headers).json()
    assert cmp["similarity"] == 40


def test_check_relevance(client, auth_headers, sample_session, mock_llm_service):
    client.post("/api/sessions", json=sample_session(), headers=auth_headers)
    mock_llm_service.reply = '{"relevanceScore": 0.93, "reasoning": "same intent"}'

    resp = client.post("/api/questions/check-relevance", json={
        "sourceUrls": ["https://blog.example.com/geo"], "questionText": "What is GEO?",
    }, headers=auth_headers).json()
    assert resp["totalChecked"] == 1
    hit = resp["relevantQuestions"][0]
    assert hit["relevanceScore"] == pytest.approx(0.93)
    assert hit["similarityGroup"] == "highly-similar"
    assert hit["originalProvider"] == "gemini"
    assert mock_llm_service.call.call_args[0][1] == "gemini"

    mock_llm_service.reply = '{"relevanceScore": 0.4}'
    low = client.post("/api/questions/check-relevance", json={
        "blogUrl": "https://blog.example.com/geo", "questionText": "Unrelated",
    }, headers=auth_headers).json()
    assert low["relevantQuestions"] == []


def test_check_relevance_needs_urls(client, auth_headers):
    resp = client.post("/api/questions/check-relevance", json={"questionText": "q"}, headers=auth_headers)
    assert resp.status_code == 400


def test_check_relevance_no_matching_sessions(client, auth_headers):
    resp = client.post("/api/questions/check-relevance", json={
        "blogUrl": "https://nowhere.example.com", "questionText": "q",
    }, headers=auth_headers).json()
    assert resp["relevantQuestions"] == []
    assert resp["message"] == "No questions found from other LLM providers for this content"


# ---------------------------------------------------------------------------
# analysis
# ---------------------------------------------------------------------------

def test_accuracy_and_citation(client, auth_headers, mock_llm_service):
    mock_llm_service.reply = "Score: 64"
    body = {"answer": "a", "content": "c", "provider": "gemini", "model": "gemini-1.5-flash"}
    assert client.post("/api/accuracy/calculate", json=body, headers=auth_headers).json() == {"accuracy": 64}
    assert client.post("/api/citation-likelihood/calculate", json=body,
                       headers=auth_headers).json() == {"citationLikelihood": 64}

    gemini = client.post("/api/accuracy/gemini", json={"answer": "a", "content": "c"}, headers=auth_headers)
    assert gemini.json() == {"accuracy": 64}
    assert mock_llm_service.call.call_args[0][2] == "gemini-1.5-flash"


def test_accuracy_upstream_failure_is_500(client, auth_headers, mock_llm_service):
    mock_llm_service.call.side_effect = LLMError("down")
    resp = client.post("/api/accuracy/calculate", json={
        "answer": "a", "content": "c", "provider": "gemini", "model": "m",
    }, headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json()["error"] == "LLM API call failed"


def test_geo_score_endpoint(client, auth_headers):
    resp = client.post("/api/geo-score", json={
        "accuracy": 80, "question": "what is geo", "answer": "Short.",
        "importantQuestions": ["what is geo"], "allConfidences": [100],
    }, headers=auth_headers).json()
    # 0.4*80 + 0.2*100 + 0.2*0 + 10*0 + 10*1
    assert resp["geoScore"] == 62
    assert resp["breakdown"]["access"] == 1


def test_extract_content(client, auth_headers, monkeypatch):
    import genfuze.api.routes_analysis as routes_analysis
    from genfuze.content import ContentFetchError

    monkeypatch.setattr(routes_analysis, "extract_content",
                        lambda url: {"content": "Body", "title": "T", "description": "D"})
    ok = client.post("/api/extract-content", json={"url": "https://a.example.com"}, headers=auth_headers).json()
    assert ok == {"success": True, "content": "Body", "title": "T", "description": "D"}

    def _fail(url):
        raise ContentFetchError(404, url)

    monkeypatch.setattr(routes_analysis, "extract_content", _fail)
    bad = client.post("/api/extract-content", json={"url": "https://a.example.com/x"}, headers=auth_headers)
    assert bad.status_code == 400
    assert bad.json() == {"error": "Failed to fetch URL", "status": 404}

    assert client.post("/api/extract-content", json={}, headers=auth_headers).status_code == 400


# ---------------------------------------------------------------------------
# embeddings
# ---------------------------------------------------------------------------

def test_generate_embedding(client, auth_headers):
    resp = client.post("/api/embeddings/generate", json={"text": "hello"}, headers=auth_headers).json()
    assert resp["dimensions"] == 3
    assert resp["type"] == "answer"


def test_generate_embedding_failure(client, auth_headers, mock_embedder):
    mock_embedder.embed.side_effect = LLMError("Missing Gemini API key")
    resp = client.post("/api/embeddings/generate", json={"text": "hello"}, headers=auth_headers)
    assert resp.status_code == 500
    assert resp.json()["details"] == "Missing Gemini API key"


def test_search_similar_questions_and_answers(client, auth_headers, sample_session):
    session = sample_session()
    client.post("/api/sessions", json=session, headers=auth_headers)
    question = session["qaData"][0]["question"]
    answer = session["qaData"][0]["answer"]

    q = client.post("/api/embeddings/search/questions", json={"question": question},
                    headers=auth_headers).json()
    assert q["totalFound"] == 1
    assert q["similarQuestions"][0]["similarity"] == pytest.approx(1.0)
    assert q["similarQuestions"][0]["sessionId"] == "s-1"

    a = client.post("/api/embeddings/search/answers", json={"answer": answer, "threshold": 0.99},
                    headers=auth_headers).json()
    assert a["similarAnswers"][0]["question"] == question

    assert client.post("/api/embeddings/search/questions", json={}, headers=auth_headers).status_code == 400


def test_calculate_similarities(client, auth_headers, sample_session):
    session = sample_session()
    client.post("/api/sessions", json=session, headers=auth_headers)
    qa = session["qaData"][0]

    resp = client.post("/api/embeddings/calculate-similarities", json={
        "qaData": [{"question": qa["question"], "answer": qa["answer"]}, {}],
        "content": qa["answer"],
    }, headers=auth_headers).json()
    assert resp["totalProcessed"] == 2
    first, second = resp["results"]
    assert first["questionSimilarity"] == pytest.approx(1.0)
    assert first["questionConfidence"] == "Very High"
    assert first["contentSimilarity"] == pytest.approx(1.0)
    assert second["index"] == 1
    assert second["answerSimilarity"] is None

    assert client.post("/api/embeddings/calculate-similarities", json={"qaData": []},
                       headers=auth_headers).status_code == 400


# ---------------------------------------------------------------------------
# email
# ---------------------------------------------------------------------------

def test_email_routes(client, auth_headers, mock_email_service):
    assert client.post("/api/email/test", headers=auth_headers).json()["messageId"] == "<test@genfuze>"

    done = client.post("/api/email/crawl-completion", json={"crawlData": {"websiteUrl": "https://a.example.com"}},
                       headers=auth_headers)
    assert done.status_code == 200
    to, data = mock_email_service.send_crawl_completion.call_args[0]
    assert to == "alice@example.com"
    assert data["websiteUrl"] == "https://a.example.com"

    failed = client.post("/api/email/crawl-error", json={"errorData": {"error": "timeout"}}, headers=auth_headers)
    assert failed.status_code == 400
    assert failed.json() == {"success": False, "error": "SMTP not configured"}

    assert client.post("/api/email/crawl-completion", json={}, headers=auth_headers).status_code == 400


# ---------------------------------------------------------------------------
# browser automation
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_runner(monkeypatch):
    calls = []

    async def fake_run(target, questions, *args, **kwargs):
        calls.append(target.name)
        return [{"question": q, "answer": f"{target.label} says {q}"} for q in questions]

    async def fake_compare(questions, *args, **kwargs):
        return [{"question": q, "chatgpt": "c", "perplexity": "p", "gemini": "g", "claude": "cl"}
                for q in questions]

    monkeypatch.setattr(runner, "run_questions", fake_run)
    monkeypatch.setattr(runner, "compare_answers", fake_compare)
    return calls


def test_chatgpt_automation(client, auth_headers, fake_runner):
    resp = client.post("/api/automation/chatgpt", json={"questions": ["q1"]}, headers=auth_headers).json()
    assert resp == {"success": True, "answers": [{"question": "q1", "answer": "ChatGPT says q1"}]}
    assert client.post("/api/automation/chatgpt", json={"questions": []}, headers=auth_headers).status_code == 400


def test_web_answers_for_perplexity_are_saved(client, auth_headers, fake_runner):
    resp = client.post("/api/llm/generate-answers-web", json={
        "questions": ["q1", "q2"], "answerProvider": "perplexity",
        "blogUrl": "https://blog.example.com/geo", "sourceUrls": ["https://blog.example.com/geo"],
    }, headers=auth_headers).json()
    assert resp["automationUsed"] == "playwright"
    assert resp["model"] == "perplexity-web"
    assert resp["answers"][0]["inputTokens"] == 0
    assert resp["sessionId"]

    saved = client.get(f"/api/sessions/answer/{resp['sessionId']}", headers=auth_headers).json()["session"]
    assert saved["name"].startswith("Perplexity Session - ")
    assert saved["answerProvider"] == "perplexity"
    assert [qa["question"] for qa in saved["qaData"]] == ["q1", "q2"]


def test_web_answers_for_chatgpt_are_not_saved(client, auth_headers, fake_runner):
    resp = client.post("/api/llm/generate-answers-web", json={
        "questions": ["q1"], "answerProvider": "chatgpt", "model": "gpt-4o",
    }, headers=auth_headers).json()
    assert resp["sessionId"] is None
    assert resp["model"] == "gpt-4o"
    assert fake_runner == ["chatgpt"]


def test_web_answers_unknown_provider(client, auth_headers, fake_runner):
    resp = client.post("/api/llm/generate-answers-web", json={"questions": ["q"], "answerProvider": "bard"},
                       headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unsupported provider"


def test_web_answers_pass_through_batch_errors(client, auth_headers, monkeypatch):
    async def broken(target, questions, *args, **kwargs):
        return [{"question": AUTOMATION_ERROR, "answer": "Not logged in to ChatGPT."}]

    monkeypatch.setattr(runner, "run_questions", broken)
    resp = client.post("/api/llm/generate-answers-web", json={"questions": ["q"], "answerProvider": "chatgpt"},
                       headers=auth_headers).json()
    assert resp["answers"][0]["question"] == AUTOMATION_ERROR


def test_compare_answers(client, auth_headers, fake_runner):
    resp = client.post("/api/compare-answers", json={"questions": ["q1", "q2"]}, headers=auth_headers).json()
    assert [r["question"] for r in resp["results"]] == ["q1", "q2"]
    assert set(resp["results"][0]) == {"question", "chatgpt", "perplexity", "gemini", "claude"}
