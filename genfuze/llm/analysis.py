"""
基于 LLM 的打分与生成助手

- 问题生成 / 回答生成：渲染 prompts/ 模板后调用 LLMService
- 相关度、问题相似度、置信度：要求 LLM 输出 JSON，解析失败时用正则兜底，
  LLM 调用失败时返回默认分数而不是抛出
- 准确度 / 引用可能性：LLM 只回一个数字，取第一个整数并截断到 0..100
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from genfuze.llm.pricing import calculate_cost
from genfuze.llm.service import LLMService, get_llm_service
from genfuze.log import get_logger
from genfuze.utils import PromptManager

logger = get_logger(__name__)

CONFIDENCE_CONTENT_LIMIT = 3000

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
_REASONING = re.compile(r"""reasoning["\s:]+["']?([^"']+)["']?""", re.IGNORECASE)
_RELEVANCE = re.compile(r"""relevanceScore["\s:]+([0-9]*\.?[0-9]+)""", re.IGNORECASE)
_SIMILARITY = re.compile(r"""similarity["\s:]+([0-9]+)""", re.IGNORECASE)
_CONFIDENCE = re.compile(r"""confidence["\s:]+([0-9]+)""", re.IGNORECASE)
_FIRST_INT = re.compile(r"\d+")
_QUESTION_PREFIX = re.compile(r"^Q:\s*")

UNPARSED_REASONING = "Unable to parse reasoning from response"


def _service(service: Optional[LLMService]) -> LLMService:
    return service or get_llm_service()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _parse_json_reply(text: str, score_key: str, score_pattern: re.Pattern, default: float,
                      as_float: bool) -> Dict[str, Any]:
    """JSON 优先（取第一个 { 到最后一个 }），失败则正则提取分数与理由。"""
    match = _JSON_BLOCK.search(text)
    try:
        parsed = json.loads(match.group(0) if match else text)
        if isinstance(parsed, dict):
            return parsed
    except ValueError:
        pass
    score = score_pattern.search(text)
    reasoning = _REASONING.search(text)
    if score:
        value = float(score.group(1)) if as_float else int(score.group(1))
    else:
        value = default
    return {
        score_key: value,
        "reasoning": reasoning.group(1) if reasoning else UNPARSED_REASONING,
    }


def _score(parsed: Dict[str, Any], key: str, default: float, low: float, high: float) -> float:
    raw = parsed.get(key)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        try:
            raw = float(raw)
        except (TypeError, ValueError):
            return default
    return _clamp(raw, low, high)


# ── 生成 ──

def parse_questions(text: str, count: int) -> List[str]:
    """取以 Q: 开头的行，去掉前缀，最多 count 条。"""
    questions = []
    for line in (text or "").split("\n"):
        line = line.strip()
        if not line.startswith("Q:"):
            continue
        q = _QUESTION_PREFIX.sub("", line).strip()
        if q:
            questions.append(q)
    return questions[:max(0, count)]


def generate_questions(content: str, count: int, provider: str, model: Optional[str] = None,
                       service: Optional[LLMService] = None) -> Dict[str, Any]:
    prompt = PromptManager().render("generate_questions.txt", count=count, content=content)
    result = _service(service).call(prompt, provider, model, is_question=True)
    questions = parse_questions(result.text, count)
    logger.info("[llm] generated %d/%d questions with %s/%s", len(questions), count, result.provider, result.model)
    return {
        "questions": questions,
        "provider": result.provider,
        "model": result.model,
        "inputTokens": result.input_tokens,
        "outputTokens": result.output_tokens,
    }


def generate_answers(content: str, questions: List[str], provider: str, model: Optional[str] = None,
                     service: Optional[LLMService] = None) -> Dict[str, Any]:
    """逐题顺序调用；任一题失败即整体失败（LLMError 向上抛）。"""
    svc = _service(service)
    pm = PromptManager()
    answers = []
    total_in = total_out = 0
    total_cost = 0.0
    for question in questions:
        result = svc.call(pm.render("generate_answer.txt", content=content, question=question),
                          provider, model, is_question=False)
        cost = calculate_cost(result.input_tokens, result.output_tokens, result.model)
        answers.append({
            "question": question,
            "answer": result.text.strip(),
            "inputTokens": result.input_tokens,
            "outputTokens": result.output_tokens,
            "cost": cost,
            "provider": result.provider,
            "model": result.model,
        })
        total_in += result.input_tokens
        total_out += result.output_tokens
        total_cost += cost
    return {"answers": answers, "totalInputTokens": total_in, "totalOutputTokens": total_out,
            "totalCost": total_cost}


# ── JSON 打分（永不抛出） ──

def check_question_relevance(question1: str, question2: str, provider: str, model: Optional[str] = None,
                             service: Optional[LLMService] = None) -> Dict[str, Any]:
    prompt = PromptManager().render("question_relevance.txt", question1=question1, question2=question2)
    try:
        result = _service(service).call(prompt, provider, model)
    except Exception as e:
        logger.warning("[llm] relevance check failed: %s", e)
        return {
            "relevanceScore": 0.5,
            "reasoning": "Unable to determine relevance due to LLM error",
            "inputTokens": 0,
            "outputTokens": 0,
        }
    parsed = _parse_json_reply(result.text.strip(), "relevanceScore", _RELEVANCE, 0.5, as_float=True)
    return {
        "relevanceScore": _score(parsed, "relevanceScore", 0.5, 0.0, 1.0),
        "reasoning": parsed.get("reasoning") or "Relevance analysis completed",
        "inputTokens": result.input_tokens,
        "outputTokens": result.output_tokens,
    }


def compare_questions(question1: str, question2: str, provider: str, model: Optional[str] = None,
                      service: Optional[LLMService] = None) -> Dict[str, Any]:
    prompt = PromptManager().render("compare_questions.txt", question1=question1, question2=question2)
    try:
        result = _service(service).call(prompt, provider, model)
    except Exception as e:
        logger.warning("[llm] question comparison failed: %s", e)
        return {
            "similarity": 50,
            "reasoning": "Unable to determine similarity due to LLM error",
            "inputTokens": 0,
            "outputTokens": 0,
            "provider": provider,
            "model": model,
        }
    parsed = _parse_json_reply(result.text.strip(), "similarity", _SIMILARITY, 50, as_float=False)
    return {
        "similarity": _score(parsed, "similarity", 50, 0, 100),
        "reasoning": parsed.get("reasoning") or "Similarity analysis completed",
        "inputTokens": result.input_tokens,
        "outputTokens": result.output_tokens,
        "provider": provider,
        "model": model,
    }


def truncate_content(content: str, limit: int = CONFIDENCE_CONTENT_LIMIT) -> str:
    content = content or ""
    return content[:limit] + ("..." if len(content) > limit else "")


def calculate_confidence(question: str, content: str, provider: str, model: Optional[str] = None,
                         service: Optional[LLMService] = None) -> Dict[str, Any]:
    prompt = PromptManager().render(
        "question_confidence.txt", content=truncate_content(content), question=question
    )
    try:
        result = _service(service).call(prompt, provider, model)
    except Exception as e:
        logger.warning("[llm] confidence calculation failed: %s", e)
        return {
            "confidence": 50,
            "reasoning": "Unable to determine confidence due to LLM error",
            "inputTokens": 0,
            "outputTokens": 0,
            "provider": provider,
            "model": model,
        }
    parsed = _parse_json_reply(result.text.strip(), "confidence", _CONFIDENCE, 50, as_float=False)
    return {
        "confidence": _score(parsed, "confidence", 50, 0, 100),
        "reasoning": parsed.get("reasoning") or "Confidence analysis completed",
        "inputTokens": result.input_tokens,
        "outputTokens": result.output_tokens,
        "provider": provider,
        "model": model,
    }


# ── 单数字打分 ──

def score_from_number_reply(text: str, default: int = 50) -> int:
    match = _FIRST_INT.search(text or "")
    if not match:
        logger.warning("[llm] reply did not contain a number: %.100s", text)
        return default
    return int(_clamp(int(match.group(0)), 0, 100))


def _number_score(template: str, answer: str, content: str, provider: str, model: Optional[str],
                  service: Optional[LLMService]) -> int:
    prompt = PromptManager().render(template, content=content, answer=answer)
    result = _service(service).call(prompt, provider, model)
    return score_from_number_reply(result.text.strip())


def calculate_accuracy(answer: str, content: str, provider: str, model: Optional[str] = None,
                       service: Optional[LLMService] = None) -> int:
    """LLMError 向上抛，由路由转成 500。"""
    return _number_score("answer_accuracy.txt", answer, content, provider, model, service)


def calculate_citation_likelihood(answer: str, content: str, provider: str, model: Optional[str] = None,
                                  service: Optional[LLMService] = None) -> int:
    return _number_score("citation_likelihood.txt", answer, content, provider, model, service)


__all__ = [
    "parse_questions",
    "generate_questions",
    "generate_answers",
    "check_question_relevance",
    "compare_questions",
    "calculate_confidence",
    "truncate_content",
    "score_from_number_reply",
    "calculate_accuracy",
    "calculate_citation_likelihood",
]
