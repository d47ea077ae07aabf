"""Scoring helpers: embedding similarity and GEO score."""
from genfuze.analysis.similarity import cosine_similarity, confidence_level, question_similarity
from genfuze.analysis.geo_score import calculate_geo_score

__all__ = ["cosine_similarity", "confidence_level", "question_similarity", "calculate_geo_score"]
