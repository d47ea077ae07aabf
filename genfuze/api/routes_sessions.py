"""
会话 API：保存（含向量生成）、按类型列出与过滤、详情、删除、统计、批量导入。
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError

from genfuze.api.deps import embedding_dep, get_current_user, store_dep
from genfuze.api.errors import api_error
from genfuze.api.schemas import BulkSessionsRequest
from genfuze.auth.tokens import CurrentUser
from genfuze.llm import EmbeddingService, LLMError
from genfuze.log import get_logger
from genfuze.observability import metrics
from genfuze.storage import QASessionRecord, SessionFilters, SessionStore, StorageError
from genfuze.storage.records import SESSION_TYPES

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["sessions"])

INVALID_TYPE = 'Invalid session type. Must be "question" or "answer"'


def check_session_type(session_type: str) -> str:
    if session_type not in SESSION_TYPES:
        raise HTTPException(status_code=400, detail=INVALID_TYPE)
    return session_type


def attach_embeddings(qa_data: Any, embedder: EmbeddingService) -> None:
    """为每个 QA 生成 questionEmbedding / embedding；单条失败只记日志。"""
    if not isinstance(qa_data, list) or not qa_data:
        return
    logger.info("[embeddings] generating embeddings for %d Q&A pairs", len(qa_data))
    for i, qa in enumerate(qa_data):
        if not isinstance(qa, dict):
            continue
        try:
            if qa.get("question"):
                qa["questionEmbedding"] = embedder.embed(qa["question"])
            if qa.get("answer"):
                qa["embedding"] = embedder.embed(qa["answer"])
        except LLMError as e:
            logger.warning("[embeddings] Q&A pair %d skipped: %s", i, e.message)


@router.post("/sessions", status_code=201)
def save_session(
    payload: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
    embedder: EmbeddingService = Depends(embedding_dep),
) -> dict:
    if not payload.get("id") or not payload.get("name") or not payload.get("type"):
        raise HTTPException(status_code=400, detail="Missing required fields: id, name, type")

    data = {**payload, "userId": user.id}
    attach_embeddings(data.get("qaData"), embedder)
    try:
        record = QASessionRecord.model_validate(data)
    except ValidationError as e:
        raise api_error(400, "Invalid session data", e.errors(include_url=False, include_context=False))
    try:
        saved_id = store.save_session(record)
    except StorageError as e:
        logger.error("[storage] saving session %s failed: %s", record.id, e)
        raise api_error(500, "Failed to save session", str(e))
    metrics.sessions_saved_total.labels(type=record.type).inc()
    return {"success": True, "sessionId": saved_id, "message": "Session saved successfully"}


@router.get("/sessions/{session_type}")
def list_sessions(
    session_type: str,
    from_date: str | None = Query(None, alias="fromDate"),
    to_date: str | None = Query(None, alias="toDate"),
    llm_provider: str | None = Query(None, alias="llmProvider"),
    llm_model: str | None = Query(None, alias="llmModel"),
    blog_link: str | None = Query(None, alias="blogLink"),
    search: str | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    check_session_type(session_type)
    filters = SessionFilters(
        from_date=from_date or None,
        to_date=to_date or None,
        llm_provider=llm_provider or None,
        llm_model=llm_model or None,
        blog_link=blog_link or None,
        search=search or None,
    )
    sessions = store.list_sessions(session_type, user.id, filters)
    return {
        "success": True,
        "sessions": [s.to_wire() for s in sessions],
        "filters": filters.to_wire(),
        "totalCount": len(sessions),
    }


@router.get("/sessions/{session_type}/{session_id}")
def get_session(
    session_type: str,
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    session = store.get_session(session_id, user.id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True, "session": session.to_wire()}


@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    if not store.delete_session(session_id, user.id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True, "message": "Session deleted successfully"}


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


@router.get("/stats/{session_type}")
def session_stats(
    session_type: str,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    check_session_type(session_type)
    count = store.count_sessions(session_type, user.id)
    sessions = store.list_sessions(session_type, user.id)
    total_cost = sum(_as_float(s.statistics.total_cost) for s in sessions)
    total_questions = sum(s.statistics.total_questions or 0 for s in sessions)
    return {
        "success": True,
        "stats": {
            "totalSessions": count,
            "totalCost": f"{total_cost:.8f}",
            "totalQuestions": total_questions,
            "averageQuestionsPerSession": f"{total_questions / count:.1f}" if count > 0 else 0,
        },
    }


def _bulk_save(body: BulkSessionsRequest, user: CurrentUser, store: SessionStore) -> dict:
    if not isinstance(body.sessions, list):
        raise HTTPException(status_code=400, detail="Invalid sessions data")
    result = store.bulk_save_sessions(body.sessions, user.id)
    logger.info(
        "[storage] bulk save for %s: %d/%d saved",
        user.id, result.summary.successful, result.summary.total,
    )
    wire = result.to_wire()
    return {"success": wire["success"], "summary": wire["summary"], "results": wire["results"]}


@router.post("/sessions/bulk")
def bulk_save(
    body: BulkSessionsRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    return _bulk_save(body, user, store)


@router.post("/migrate")
def migrate(
    body: BulkSessionsRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    """把前端 localStorage 里的历史会话迁入后端。"""
    return _bulk_save(body, user, store)
