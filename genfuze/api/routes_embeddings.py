"""
向量 API：生成 embedding、相似问题/回答检索、批量相似度计算。
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from genfuze.analysis import confidence_level, cosine_similarity
from genfuze.api.deps import embedding_dep, get_current_user, store_dep
from genfuze.api.errors import api_error
from genfuze.api.schemas import AnswerSearchRequest, EmbeddingRequest, QuestionSearchRequest, SimilaritiesRequest
from genfuze.auth.tokens import CurrentUser
from genfuze.llm import EmbeddingService, LLMError
from genfuze.log import get_logger
from genfuze.storage import SessionStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/embeddings", tags=["embeddings"])

# 批量相似度：取最相近的一条，阈值放宽到 0.5
BEST_HIT_LIMIT = 5
BEST_HIT_THRESHOLD = 0.5


def _embed(embedder: EmbeddingService, text: str, error: str) -> List[float]:
    try:
        return embedder.embed(text)
    except LLMError as e:
        logger.warning("[embeddings] %s: %s", error, e.message)
        raise api_error(500, error, e.message)


@router.post("/generate")
def generate(
    body: EmbeddingRequest,
    _user: CurrentUser = Depends(get_current_user),
    embedder: EmbeddingService = Depends(embedding_dep),
) -> dict:
    if not body.text:
        raise HTTPException(status_code=400, detail="Missing required field: text")
    embedding = _embed(embedder, body.text, "Failed to generate embedding")
    return {"success": True, "embedding": embedding, "dimensions": len(embedding), "type": body.type}


@router.post("/search/questions")
def search_questions(
    body: QuestionSearchRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
    embedder: EmbeddingService = Depends(embedding_dep),
) -> dict:
    if not body.question:
        raise HTTPException(status_code=400, detail="Missing required field: question")
    vector = _embed(embedder, body.question, "Failed to generate question embedding")
    hits = store.find_similar_questions(vector, user.id, body.limit, body.threshold)
    logger.info("[embeddings] %d similar questions", len(hits))
    return {
        "success": True,
        "similarQuestions": [h.to_wire() for h in hits],
        "searchQuestion": body.question,
        "totalFound": len(hits),
    }


@router.post("/search/answers")
def search_answers(
    body: AnswerSearchRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
    embedder: EmbeddingService = Depends(embedding_dep),
) -> dict:
    if not body.answer:
        raise HTTPException(status_code=400, detail="Missing required field: answer")
    vector = _embed(embedder, body.answer, "Failed to generate answer embedding")
    hits = store.find_similar_answers(vector, user.id, body.limit, body.threshold)
    logger.info("[embeddings] %d similar answers", len(hits))
    return {
        "success": True,
        "similarAnswers": [h.to_wire() for h in hits],
        "searchAnswer": body.answer,
        "totalFound": len(hits),
    }


def similarities_for(
    index: int,
    qa: Dict[str, Any],
    user_id: str,
    store: SessionStore,
    embedder: EmbeddingService,
    content_vector: Optional[List[float]],
) -> Dict[str, Any]:
    """单条 QA 的相似度；向量生成失败时该条保持 None。"""
    result: Dict[str, Any] = {
        "index": index,
        "questionSimilarity": None,
        "answerSimilarity": None,
        "contentSimilarity": None,
        "questionConfidence": None,
        "answerConfidence": None,
        "contentConfidence": None,
    }
    try:
        if qa.get("question"):
            hits = store.find_similar_questions(
                embedder.embed(qa["question"]), user_id, BEST_HIT_LIMIT, BEST_HIT_THRESHOLD
            )
            if hits:
                result["questionSimilarity"] = hits[0].similarity
                result["questionConfidence"] = confidence_level(hits[0].similarity)
        if qa.get("answer"):
            answer_vector = embedder.embed(qa["answer"])
            hits = store.find_similar_answers(answer_vector, user_id, BEST_HIT_LIMIT, BEST_HIT_THRESHOLD)
            if hits:
                result["answerSimilarity"] = hits[0].similarity
                result["answerConfidence"] = confidence_level(hits[0].similarity)
            if content_vector:
                sim = cosine_similarity(answer_vector, content_vector)
                result["contentSimilarity"] = sim
                result["contentConfidence"] = confidence_level(sim)
    except LLMError as e:
        logger.warning("[embeddings] similarities for pair %d failed: %s", index + 1, e.message)
    return result


@router.post("/calculate-similarities")
def calculate_similarities(
    body: SimilaritiesRequest,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
    embedder: EmbeddingService = Depends(embedding_dep),
) -> dict:
    if not isinstance(body.qa_data, list) or not body.qa_data:
        raise HTTPException(status_code=400, detail="Missing or invalid qaData array")

    content_vector = None
    if body.content:
        try:
            content_vector = embedder.embed(body.content)
        except LLMError as e:
            logger.warning("[embeddings] content embedding failed: %s", e.message)

    results = [
        similarities_for(i, qa if isinstance(qa, dict) else {}, user.id, store, embedder, content_vector)
        for i, qa in enumerate(body.qa_data)
    ]
    logger.info("[embeddings] similarities computed for %d Q&A pairs", len(results))
    return {"success": True, "results": results, "totalProcessed": len(results)}
