"""
余弦相似度、问题词重叠与 GEO 评分。
"""

from unittest.mock import MagicMock

import pytest
import requests

from genfuze.analysis.geo_score import (
    calculate_geo_score,
    coverage_score,
    has_faq_schema,
    robots_access,
    structure_score,
)
from genfuze.analysis.similarity import confidence_level, cosine_similarity, question_similarity


# ---------------------------------------------------------------------------
# similarity
# ---------------------------------------------------------------------------

def test_cosine_identical_and_orthogonal():
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


@pytest.mark.parametrize("a,b", [
    (None, [1.0]),
    ([1.0, 2.0], [1.0]),
    ([], []),
    ([0.0, 0.0], [1.0, 1.0]),
    ("abc", "abc"),
])
def test_cosine_degenerate_inputs_score_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


@pytest.mark.parametrize("score,label", [
    (0.95, "Very High"), (0.85, "High"), (0.75, "Good"),
    (0.65, "Moderate"), (0.55, "Low"), (0.2, "Very Low"),
])
def test_confidence_level(score, label):
    assert confidence_level(score) == label


def test_question_similarity_ignores_short_words_and_case():
    assert question_similarity("What is GEO?", "what is geo") == pytest.approx(1.0)
    # "is" and "a" are dropped; {what, geo} vs {what, seo}
    assert question_similarity("What is a GEO", "What SEO") == pytest.approx(1 / 3)
    assert question_similarity("", "") == 0.0


# ---------------------------------------------------------------------------
# GEO components
# ---------------------------------------------------------------------------

def test_coverage_weights_by_confidence():
    assert coverage_score("what is geo", [], []) == 0.0
    # identical question at confidence 80 -> 80
    assert coverage_score("what is geo", ["what is geo"], [80]) == pytest.approx(80.0)
    # missing confidence counts as zero
    assert coverage_score("what is geo", ["what is geo", "what is geo"], [100]) == pytest.approx(50.0)


def test_structure_rewards_length_lists_and_organisation():
    plain = "Short."
    rich = (
        "Q: What is GEO?\n"
        "- First, structure answers so engines can quote them directly in results.\n"
        "- However, keep every sentence readable for a human reader as well.\n"
        "For example, lead with a definition and therefore cite your sources."
    )
    assert structure_score(plain) < structure_score(rich)
    assert structure_score(rich) <= 100


def test_faq_schema_detection():
    assert has_faq_schema('{"@type": "FAQPage"}') == 1
    assert has_faq_schema("plain", content="<script>@type:'faqpage'</script>") == 1
    assert has_faq_schema("plain answer") == 0


def test_faq_schema_detected_in_json_ld_markup():
    page = (
        '<script type="application/ld+json">'
        '{"@context": "https://schema.org", "@type": "FAQPage", "mainEntity": []}'
        "</script>"
    )
    assert has_faq_schema("plain", content=page) == 1
    assert has_faq_schema("plain", content='{"@type": "Article"}') == 0


def _http(text=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        resp = MagicMock()
        resp.text = text
        resp.raise_for_status.return_value = None
        session.get.return_value = resp
    return session


def test_robots_access():
    assert robots_access(None) == 1
    assert robots_access("https://a.example.com", _http("User-agent: *\nDisallow: /")) == 0
    assert robots_access("https://a.example.com", _http("User-agent: *\nAllow: /")) == 1
    assert robots_access("https://a.example.com", _http(exc=requests.ConnectionError("down"))) == 1


def test_robots_url_is_built_from_source_url():
    http = _http("")
    robots_access("https://a.example.com/", http)
    assert http.get.call_args[0][0] == "https://a.example.com/robots.txt"


def test_geo_score_formula_and_breakdown():
    http = _http("Disallow: /")
    score, breakdown = calculate_geo_score(
        accuracy=80,
        question="what is geo",
        answer="Short.",
        important_questions=["what is geo"],
        all_confidences=[100],
        source_url="https://a.example.com",
        session=http,
    )
    assert breakdown["accuracy"] == 80
    assert breakdown["coverage"] == pytest.approx(100.0)
    assert breakdown["schema"] == 0
    assert breakdown["access"] == 0
    expected = 0.4 * 80 + 0.2 * 100 + 0.2 * breakdown["structure"]
    assert score == int(expected + 0.5)


def test_geo_score_rounds_half_up(monkeypatch):
    import genfuze.analysis.geo_score as geo

    monkeypatch.setattr(geo, "structure_score", lambda answer, content="": 2.5)
    score, _ = calculate_geo_score(accuracy=0, question="q", answer="a")
    # 0.2 * 2.5 + 10 (no source url -> access 1) = 10.5
    assert score == 11
