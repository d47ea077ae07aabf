"""
LLM 打分助手：JSON / 正则解析、默认值、截断、问题行解析。
"""

import pytest

from genfuze.llm import LLMError
from genfuze.llm import analysis


def _reply(service, text):
    service.reply = text
    return service


# ---------------------------------------------------------------------------
# parse / generate
# ---------------------------------------------------------------------------

def test_parse_questions_keeps_q_lines_up_to_count():
    text = "Here you go:\nQ: First?\n  Q:   Second?  \nnot a question\nQ:\nQ: Third?"
    assert analysis.parse_questions(text, 2) == ["First?", "Second?"]
    assert analysis.parse_questions(text, 10) == ["First?", "Second?", "Third?"]
    assert analysis.parse_questions("", 3) == []


def test_generate_questions_reports_tokens(mock_llm_service):
    result = analysis.generate_questions("blog text", 5, "gemini", "gemini-1.5-flash", service=mock_llm_service)
    assert result["questions"] == ["What is GEO?", "Why does structure matter?"]
    assert result["inputTokens"] == 10
    prompt = mock_llm_service.call.call_args[0][0]
    assert "blog text" in prompt
    assert mock_llm_service.call.call_args[1]["is_question"] is True


def test_generate_answers_sums_tokens_and_cost(mock_llm_service):
    _reply(mock_llm_service, "  An answer.  ")
    result = analysis.generate_answers("content", ["q1", "q2"], "gemini", "gemini-1.5-flash",
                                       service=mock_llm_service)
    assert [a["answer"] for a in result["answers"]] == ["An answer.", "An answer."]
    assert result["totalInputTokens"] == 20
    assert result["totalOutputTokens"] == 10
    assert result["totalCost"] == pytest.approx(sum(a["cost"] for a in result["answers"]))
    assert result["answers"][0]["cost"] > 0


def test_generate_answers_fails_as_a_whole(mock_llm_service):
    mock_llm_service.call.side_effect = LLMError("boom", provider="gemini")
    with pytest.raises(LLMError):
        analysis.generate_answers("content", ["q1"], "gemini", service=mock_llm_service)


# ---------------------------------------------------------------------------
# JSON scored helpers
# ---------------------------------------------------------------------------

def test_relevance_parses_json_inside_prose(mock_llm_service):
    _reply(mock_llm_service, 'Sure! {"relevanceScore": 0.92, "reasoning": "same topic"} hope it helps')
    result = analysis.check_question_relevance("a", "b", "gemini", service=mock_llm_service)
    assert result["relevanceScore"] == pytest.approx(0.92)
    assert result["reasoning"] == "same topic"


def test_relevance_is_clamped(mock_llm_service):
    _reply(mock_llm_service, '{"relevanceScore": 7, "reasoning": "very"}')
    assert analysis.check_question_relevance("a", "b", "gemini", service=mock_llm_service)["relevanceScore"] == 1.0


def test_compare_questions_regex_fallback(mock_llm_service):
    _reply(mock_llm_service, "similarity: 73, reasoning: 'close wording'")
    result = analysis.compare_questions("a", "b", "gemini", "m", service=mock_llm_service)
    assert result["similarity"] == 73
    assert result["reasoning"] == "close wording"
    assert result["provider"] == "gemini"


def test_compare_questions_unparseable_gives_default(mock_llm_service):
    _reply(mock_llm_service, "I cannot say.")
    result = analysis.compare_questions("a", "b", "gemini", service=mock_llm_service)
    assert result["similarity"] == 50
    assert result["reasoning"] == analysis.UNPARSED_REASONING


def test_explicit_zero_confidence_is_kept(mock_llm_service):
    _reply(mock_llm_service, '{"confidence": 0, "reasoning": "not covered"}')
    result = analysis.calculate_confidence("q", "content", "gemini", service=mock_llm_service)
    assert result["confidence"] == 0


def test_llm_failure_returns_defaults_instead_of_raising(mock_llm_service):
    mock_llm_service.call.side_effect = LLMError("down", provider="gemini")
    assert analysis.check_question_relevance("a", "b", "gemini", service=mock_llm_service)["relevanceScore"] == 0.5
    assert analysis.compare_questions("a", "b", "gemini", service=mock_llm_service)["similarity"] == 50
    confidence = analysis.calculate_confidence("q", "c", "gemini", service=mock_llm_service)
    assert confidence["confidence"] == 50
    assert confidence["inputTokens"] == 0


def test_confidence_prompt_truncates_content(mock_llm_service):
    _reply(mock_llm_service, '{"confidence": 80}')
    analysis.calculate_confidence("q", "x" * 5000, "gemini", service=mock_llm_service)
    prompt = mock_llm_service.call.call_args[0][0]
    assert "x" * 3000 + "..." in prompt
    assert "x" * 3001 not in prompt


def test_truncate_content():
    assert analysis.truncate_content("short") == "short"
    assert analysis.truncate_content("abcdef", limit=3) == "abc..."
    assert analysis.truncate_content(None) == ""


# ---------------------------------------------------------------------------
# number replies
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text,score", [
    ("85", 85),
    ("Score: 92 out of 100", 92),
    ("150", 100),
    ("no number here", 50),
    ("", 50),
])
def test_score_from_number_reply(text, score):
    assert analysis.score_from_number_reply(text) == score


def test_accuracy_and_citation_use_their_templates(mock_llm_service):
    _reply(mock_llm_service, "77")
    assert analysis.calculate_accuracy("answer", "content", "gemini", service=mock_llm_service) == 77
    assert "answer" in mock_llm_service.call.call_args[0][0]
    assert analysis.calculate_citation_likelihood("answer", "content", "gemini", service=mock_llm_service) == 77


def test_accuracy_propagates_llm_errors(mock_llm_service):
    mock_llm_service.call.side_effect = LLMError("down")
    with pytest.raises(LLMError):
        analysis.calculate_accuracy("a", "c", "gemini", service=mock_llm_service)
