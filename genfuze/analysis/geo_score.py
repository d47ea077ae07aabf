"""
GEO (generative engine optimisation) score for a single Q&A pair.

geo = 0.4 * accuracy + 0.2 * coverage + 0.2 * structure
      + 10 * schema + 10 * access

accuracy   0..100, supplied by the caller (LLM-judged)
coverage   0..100, how much the question overlaps the important questions,
           weighted by their confidence
structure  0..100, length / formatting / readability / organisation heuristics
schema     1 if FAQPage structured data is present
access     0 if robots.txt disallows the whole site, else 1
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, asdict
from typing import Optional, Sequence

import requests

from genfuze.analysis.similarity import question_similarity
from genfuze.log import get_logger

logger = get_logger(__name__)

_HEADING = re.compile(r"^Q:|<h[1-6]>|<h[1-6] ")
_HEADING_IN_CONTENT = re.compile(r"<h[1-6]>")
_LIST = re.compile(r"\n\s*[-*1.]|<ul>|<ol>")
_SENTENCE_SPLIT = re.compile(r"[.!?]")
_FAQ_SCHEMA = re.compile(r"@type['\"]?\s*[:=]\s*['\"]?FAQPage['\"]?", re.IGNORECASE)
_DISALLOW_ALL = re.compile(r"Disallow:\s*/", re.IGNORECASE)

# (pattern, points); organisation points are capped at 25
_ORGANISATION = (
    (re.compile(r"first|second|third|finally|in conclusion|to summarize", re.IGNORECASE), 10),
    (re.compile(r"however|but|although|while|on the other hand", re.IGNORECASE), 5),
    (re.compile(r"for example|such as|including|specifically", re.IGNORECASE), 5),
    (re.compile(r"therefore|thus|as a result|consequently", re.IGNORECASE), 5),
)

ROBOTS_TIMEOUT_SECONDS = 2


@dataclass
class GeoBreakdown:
    accuracy: float
    coverage: float
    structure: float
    schema: int
    access: int


def coverage_score(question: str, important_questions: Sequence[str], confidences: Sequence[float]) -> float:
    if not important_questions:
        return 0.0
    total = 0.0
    for i, important in enumerate(important_questions):
        confidence = confidences[i] if i < len(confidences) and confidences[i] else 0
        total += (confidence * question_similarity(question, important)) / 100
    return (total / len(important_questions)) * 100


def structure_score(answer: str, content: str = "") -> float:
    score = 0

    length = len(answer)
    if 50 <= length <= 500:
        score += 20
    elif 30 <= length <= 800:
        score += 15
    elif 20 <= length <= 1000:
        score += 10

    if _HEADING.search(answer) or _HEADING_IN_CONTENT.search(content or ""):
        score += 15
    if _LIST.search(answer):
        score += 15

    sentences = [s for s in _SENTENCE_SPLIT.split(answer) if s.strip()]
    words = answer.split()
    avg_len = len(words) / len(sentences) if sentences else 0
    if 10 <= avg_len <= 25:
        score += 25
    elif 8 <= avg_len <= 30:
        score += 20
    elif 5 <= avg_len <= 35:
        score += 15

    organisation = sum(points for pattern, points in _ORGANISATION if pattern.search(answer))
    score += min(organisation, 25)
    return min(score, 100)


def has_faq_schema(answer: str, content: str = "") -> int:
    return 1 if _FAQ_SCHEMA.search(answer) or _FAQ_SCHEMA.search(content or "") else 0


def robots_access(source_url: Optional[str], session: Optional[requests.Session] = None) -> int:
    """Fetch <site>/robots.txt; a blanket ``Disallow: /`` means 0, anything else (or no answer) means 1."""
    if not source_url:
        return 1
    robots_url = source_url.rstrip("/") + "/robots.txt"
    http = session or requests
    try:
        resp = http.get(robots_url, timeout=ROBOTS_TIMEOUT_SECONDS)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.debug("[geo] robots.txt fetch failed for %s: %s", robots_url, e)
        return 1
    return 0 if _DISALLOW_ALL.search(resp.text or "") else 1


def calculate_geo_score(
    accuracy: float,
    question: str,
    answer: str,
    important_questions: Sequence[str] = (),
    all_confidences: Sequence[float] = (),
    source_url: Optional[str] = None,
    content: str = "",
    session: Optional[requests.Session] = None,
) -> tuple[int, dict]:
    breakdown = GeoBreakdown(
        accuracy=accuracy,
        coverage=coverage_score(question, important_questions, all_confidences),
        structure=structure_score(answer, content),
        schema=has_faq_schema(answer, content),
        access=robots_access(source_url, session=session),
    )
    geo = (
        0.4 * breakdown.accuracy
        + 0.2 * breakdown.coverage
        + 0.2 * breakdown.structure
        + 10 * breakdown.schema
        + 10 * breakdown.access
    )
    # round half up
    return int(math.floor(geo + 0.5)), asdict(breakdown)
