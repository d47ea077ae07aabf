"""
分析 API：引用可能性、准确度、GEO 分数、网页正文抽取。
"""

import requests
from fastapi import APIRouter, Depends, HTTPException

from genfuze.analysis import calculate_geo_score
from genfuze.api.deps import get_current_user, llm_dep
from genfuze.api.errors import api_error
from genfuze.api.routes_llm import require_configured
from genfuze.api.schemas import AnswerScoreRequest, ExtractContentRequest, GeoScoreRequest
from genfuze.auth.tokens import CurrentUser
from genfuze.content import ContentFetchError, extract_content
from genfuze.llm import LLMError, LLMService
from genfuze.llm.analysis import calculate_accuracy, calculate_citation_likelihood
from genfuze.log import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])

GEMINI_ACCURACY_MODEL = "gemini-1.5-flash"


def _check_answer_body(body: AnswerScoreRequest, llm: LLMService) -> None:
    if not body.answer or not body.content or not body.provider or not body.model:
        raise HTTPException(status_code=400, detail="Missing required fields: answer, content, provider, model")
    require_configured(llm, body.provider)


@router.post("/citation-likelihood/calculate")
def citation_likelihood(
    body: AnswerScoreRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    _check_answer_body(body, llm)
    try:
        score = calculate_citation_likelihood(body.answer, body.content, body.provider, body.model, service=llm)
    except LLMError as e:
        raise api_error(500, "LLM API call failed", e.message)
    logger.info("[analysis] citation likelihood %d via %s/%s", score, body.provider, body.model)
    return {"citationLikelihood": score}


@router.post("/accuracy/calculate")
def accuracy(
    body: AnswerScoreRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    _check_answer_body(body, llm)
    try:
        score = calculate_accuracy(body.answer, body.content, body.provider, body.model, service=llm)
    except LLMError as e:
        raise api_error(500, "LLM API call failed", e.message)
    logger.info("[analysis] accuracy %d via %s/%s", score, body.provider, body.model)
    return {"accuracy": score}


@router.post("/accuracy/gemini")
def accuracy_gemini(
    body: AnswerScoreRequest,
    _user: CurrentUser = Depends(get_current_user),
    llm: LLMService = Depends(llm_dep),
) -> dict:
    if not body.answer or not body.content:
        raise HTTPException(status_code=400, detail="Missing answer or content")
    try:
        score = calculate_accuracy(
            body.answer, body.content, "gemini", body.model or GEMINI_ACCURACY_MODEL, service=llm
        )
    except LLMError as e:
        raise api_error(500, "Gemini API call failed", e.message)
    return {"accuracy": score}


@router.post("/geo-score")
def geo_score(body: GeoScoreRequest, _user: CurrentUser = Depends(get_current_user)) -> dict:
    try:
        score, breakdown = calculate_geo_score(
            body.accuracy,
            body.question,
            body.answer,
            body.important_questions,
            body.all_confidences,
            body.source_url,
            body.content,
        )
    except (TypeError, ValueError) as e:
        raise api_error(500, "Failed to calculate GEO score", str(e))
    logger.info("[geo] score=%d breakdown=%s", score, breakdown)
    return {"geoScore": score, "breakdown": breakdown}


@router.post("/extract-content")
def extract(body: ExtractContentRequest, _user: CurrentUser = Depends(get_current_user)) -> dict:
    if not body.url:
        raise HTTPException(status_code=400, detail="Missing URL")
    try:
        data = extract_content(body.url)
    except ContentFetchError as e:
        raise api_error(400, "Failed to fetch URL", status=e.status)
    except (requests.RequestException, ValueError) as e:
        logger.warning("[content] extract %s failed: %s", body.url, e)
        raise api_error(500, "Failed to extract content", str(e))
    return {"success": True, **data}
