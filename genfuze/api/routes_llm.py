"""
LLM API：provider 列表、问题/回答生成、置信度、问题比较、跨 provider 相关问题检查。
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from genfuze.api.deps import get_current_user, llm_dep, store_dep
from genfuze.api.errors import api_error
from genfuze.api.schemas import (
    CompareQuestionsRequest,
    ConfidenceRequest,
    GenerateAnswersRequest,
    GenerateQuestionsRequest,
    RelevanceRequest,
)
from genfuze.auth.tokens import CurrentUser
from genfuze.llm import LLMError, LLMService, available_models
from genfuze.llm import analysis
from genfuze.log import get_logger
from genfuze.storage import QASessionRecord, SessionStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["llm"])

RELEVANCE_PROVIDER = "gemini"
RELEVANCE_MODEL = "gemini-1.5-flash"
RELEVANCE_THRESHOLD = 0.7


def require_configured(llm: LLMService, provider: str) -> None:
    if not llm.is_configured(provider):
        raise HTTPException(status_code=400, detail=f"Provider {provider} is not configured")


@router.get("/llm/providers")
def providers(llm: LLMService = Depends(llm_dep)) -> dict:
    return {
        "success": True,
        "configuredProviders": llm.configured_providers(),
        "availableModels": available_models(),
    }


@router.post("/llm/generate-questions")
def generate_questions(
    body: GenerateQuestionsRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    if not body.content or not body.question_count or not body.provider or not body.model:
        raise HTTPException(
            status_code=400, detail="Missing required fields: content, questionCount, provider, model"
        )
    require_configured(llm, body.provider)
    try:
        result = analysis.generate_questions(
            body.content, body.question_count, body.provider, body.model, service=llm
        )
    except LLMError as e:
        raise api_error(500, "Failed to generate questions", e.message)
    return {"success": True, **result}


@router.post("/llm/generate-answers")
def generate_answers(
    body: GenerateAnswersRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    """逐题顺序生成，任一题失败整体 500。"""
    if not body.content or not isinstance(body.questions, list) or not body.provider or not body.model:
        raise HTTPException(
            status_code=400, detail="Missing required fields: content, questions (array), provider, model"
        )
    require_configured(llm, body.provider)
    try:
        result = analysis.generate_answers(
            body.content, [str(q) for q in body.questions], body.provider, body.model, service=llm
        )
    except LLMError as e:
        raise api_error(500, "Failed to generate answers", e.message)
    return {
        "success": True,
        "answers": result["answers"],
        "provider": body.provider,
        "model": body.model,
        "totalInputTokens": result["totalInputTokens"],
        "totalOutputTokens": result["totalOutputTokens"],
        "totalCost": result["totalCost"],
    }


@router.post("/llm/calculate-confidence")
def calculate_confidence(
    body: ConfidenceRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    if not body.question or not body.content or not body.provider or not body.model:
        raise HTTPException(
            status_code=400, detail="Missing required fields: question, content, provider, model"
        )
    result = analysis.calculate_confidence(body.question, body.content, body.provider, body.model, service=llm)
    return {"success": True, **result}


@router.post("/llm/compare-questions")
def compare_questions(
    body: CompareQuestionsRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    if not body.question1 or not body.question2 or not body.provider or not body.model:
        raise HTTPException(
            status_code=400, detail="Missing required fields: question1, question2, provider, model"
        )
    result = analysis.compare_questions(body.question1, body.question2, body.provider, body.model, service=llm)
    return {"success": True, **result}


# ── 相关问题检查 ──

def matches_source(session: QASessionRecord, source_urls: Optional[List[str]], blog_url: Optional[str]) -> bool:
    """sourceUrls 优先：第一个 URL 出现在 sourceUrls 中，或 blogUrl 属于 sourceUrls；否则 blogUrl 精确匹配。"""
    if source_urls:
        first = source_urls[0]
        if any(first in url for url in session.source_urls):
            return True
        return bool(session.blog_url) and session.blog_url in source_urls
    if blog_url:
        return session.blog_url == blog_url
    return True


def similarity_group(score: float) -> str:
    if score >= 0.9:
        return "highly-similar"
    if score >= 0.8:
        return "very-similar"
    if score >= 0.7:
        return "similar"
    if score >= 0.6:
        return "related"
    return "other"


@router.post("/questions/check-relevance")
def check_relevance(
    body: RelevanceRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    """把当前问题与同一内容下已存的问题逐条比较，保留相关度 >= 0.7 的。"""
    if not body.source_urls and not body.blog_url:
        raise HTTPException(status_code=400, detail="Source URLs or blog URL is required")

    sessions = [
        s for s in store.list_sessions("question", user.id)
        if matches_source(s, body.source_urls, body.blog_url)
    ]
    if not sessions:
        return {
            "success": True,
            "relevantQuestions": [],
            "message": "No questions found from other LLM providers for this content",
        }

    logger.info("[llm] relevance check against %d sessions", len(sessions))
    relevant = []
    for session in sessions:
        for qa in session.qa_data:
            result = analysis.check_question_relevance(
                body.question_text or "", qa.question, RELEVANCE_PROVIDER, RELEVANCE_MODEL, service=llm
            )
            score = result["relevanceScore"]
            logger.debug("[llm] relevance %.2f for %.60s", score, qa.question)
            if score < RELEVANCE_THRESHOLD:
                continue
            relevant.append({
                "question": qa.question,
                "originalProvider": session.question_provider,
                "originalModel": session.question_model,
                "sessionName": session.name,
                "sessionTimestamp": session.timestamp,
                "relevanceScore": score,
                "relevanceReasoning": result["reasoning"],
                "sourceUrls": session.source_urls,
                "blogUrl": session.blog_url,
                "similarityGroup": similarity_group(score),
            })

    relevant.sort(key=lambda q: q["relevanceScore"], reverse=True)
    return {
        "success": True,
        "relevantQuestions": relevant,
        "totalChecked": sum(len(s.qa_data) for s in sessions),
        "message": f"Found {len(relevant)} relevant questions from other LLM providers",
    }
