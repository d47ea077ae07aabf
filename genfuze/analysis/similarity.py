"""
Vector and lexical similarity helpers.

cosine_similarity is what the stores use to rank stored Q&A embeddings;
question_similarity is the cheap word-overlap score behind GEO coverage.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Sequence

_WORD_SPLIT = re.compile(r"\W+")


def cosine_similarity(vec_a: Optional[Sequence[float]], vec_b: Optional[Sequence[float]]) -> float:
    """Dot product over norms; 0.0 for missing, mismatched or zero-norm vectors."""
    if not isinstance(vec_a, (list, tuple)) or not isinstance(vec_b, (list, tuple)):
        return 0.0
    if len(vec_a) != len(vec_b) or not vec_a:
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for a, b in zip(vec_a, vec_b):
        dot += a * b
        norm_a += a * a
        norm_b += b * b
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def confidence_level(similarity: float) -> str:
    if similarity >= 0.9:
        return "Very High"
    if similarity >= 0.8:
        return "High"
    if similarity >= 0.7:
        return "Good"
    if similarity >= 0.6:
        return "Moderate"
    if similarity >= 0.5:
        return "Low"
    return "Very Low"


def _words(text: str) -> list[str]:
    return [w for w in _WORD_SPLIT.split(text.lower()) if len(w) > 2]


def question_similarity(question1: str, question2: str) -> float:
    """
    Jaccard-style overlap of words longer than two characters.

    The intersection counts repeated words of question1, the union is a set,
    so a question that repeats a shared word scores slightly higher.
    """
    words1 = _words(question1)
    words2 = _words(question2)
    lookup = set(words2)
    intersection = [w for w in words1 if w in lookup]
    union = set(words1) | lookup
    return len(intersection) / len(union) if union else 0.0
