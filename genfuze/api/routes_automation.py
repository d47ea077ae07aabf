"""
浏览器自动化 API：在 ChatGPT / Perplexity / Gemini / Claude 网页端提问并取回答。

这些路由是 async 的：Playwright 走 asyncio，同一时间只开一个浏览器；
阻塞的存储写入放到 asyncio.to_thread。
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException

from genfuze.api.deps import get_current_user, store_dep
from genfuze.api.errors import api_error
from genfuze.api.schemas import QuestionsRequest, WebAnswersRequest
from genfuze.auth.tokens import CurrentUser
from genfuze.automation import runner
from genfuze.automation.targets import CHATGPT, PERPLEXITY, resolve_target
from genfuze.log import get_logger
from genfuze.storage import QASessionRecord, SessionStore, StorageError

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["automation"])

AUTOMATION_ENGINE = "playwright"


def require_questions(questions: Any) -> List[str]:
    if not isinstance(questions, list) or not questions:
        raise HTTPException(status_code=400, detail="questions must be a non-empty array")
    return [str(q) for q in questions]


def perplexity_session(user_id: str, answers: List[dict], body: WebAnswersRequest) -> QASessionRecord:
    """Perplexity 网页回答存为一条 answer 会话。"""
    return QASessionRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name="Perplexity Session - " + datetime.now().strftime("%m/%d/%Y, %I:%M:%S %p"),
        type="answer",
        answer_provider=PERPLEXITY.name,
        answer_model=PERPLEXITY.model,
        blog_content=body.blog_content or "",
        blog_url=body.blog_url or "",
        source_urls=body.source_urls or [],
        qa_data=[
            {"question": a["question"], "answer": a["answer"], "questionOrder": i + 1}
            for i, a in enumerate(answers)
        ],
    )


@router.post("/automation/chatgpt")
async def chatgpt_answers(body: QuestionsRequest, _user: CurrentUser = Depends(get_current_user)) -> dict:
    questions = require_questions(body.questions)
    answers = await runner.run_questions(CHATGPT, questions)
    return {"success": True, "answers": answers}


@router.post("/llm/generate-answers-web")
async def generate_answers_web(
    body: WebAnswersRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> dict:
    target = resolve_target(body.answer_provider or "")
    if target is None:
        logger.warning("[automation] unsupported provider: %s", body.answer_provider)
        raise HTTPException(status_code=400, detail="Unsupported provider")
    questions = require_questions(body.questions)
    model = body.model or target.model

    raw = await runner.run_questions(target, questions)
    answers = [
        {
            "question": a["question"],
            "answer": a["answer"],
            "inputTokens": 0,
            "outputTokens": 0,
            "provider": body.answer_provider,
            "model": model,
        }
        for a in raw
    ]

    session_id = None
    if target is PERPLEXITY:
        record = perplexity_session(user.id, raw, body)
        try:
            session_id = await asyncio.to_thread(store.save_session, record)
        except StorageError as e:
            logger.error("[automation] saving perplexity session failed: %s", e)
            raise api_error(500, "Failed to generate answers", str(e))
        logger.info("[automation] perplexity answers saved as session %s", session_id)

    return {
        "success": True,
        "answers": answers,
        "provider": body.answer_provider,
        "model": model,
        "sessionId": session_id,
        "automationUsed": AUTOMATION_ENGINE,
    }


@router.post("/compare-answers")
async def compare_answers(body: QuestionsRequest, _user: CurrentUser = Depends(get_current_user)) -> dict:
    """同一批问题依次在四个站点上提问，按题目返回对比结果。"""
    questions = require_questions(body.questions)
    results = await runner.compare_answers(questions)
    return {"success": True, "results": results}
