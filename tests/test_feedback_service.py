"""Tests for feedback parsing, score validation and transcript metrics."""

import math

import pytest

from speak_practice.models import ConfidenceLevel, EnergyLevel
from speak_practice.services.feedback_service import FeedbackService


@pytest.fixture
def service():
    return FeedbackService()


def test_parse_plain_json(service):
    assert service.parse_feedback_json('{"overallScore": 8}') == {"overallScore": 8}


def test_parse_fenced_json_with_prose(service):
    raw = 'Here is the report:\n```json\n{"overallScore": 7, "strengths": ["a {nested} brace"]}\n```\nThanks!'
    data = service.parse_feedback_json(raw)
    assert data["overallScore"] == 7
    assert data["strengths"] == ["a {nested} brace"]


@pytest.mark.parametrize("raw", ["", "not json at all", "[1, 2, 3]", '{"overallScore": '])
def test_parse_falls_back_to_minimal_payload(service, raw):
    assert service.parse_feedback_json(raw) == {"overallScore": 5}


@pytest.mark.parametrize(
    "score,expected",
    [
        (7, 7),
        (7.25, 7.2),
        (-3, 0),
        (14, 10),
        ("8", 8),
        (0, 0),
        (None, 5),
        ("great", 5),
        (True, 5),
        (math.nan, 5),
    ],
)
def test_validate_score(service, score, expected):
    assert service.validate_score(score) == expected


@pytest.mark.parametrize("score,expected", [(-0.5, 0), (0.0, 0), (10, 10), (99.9, 10)])
def test_clamped_scores_are_whole_numbers(service, score, expected):
    value = service.validate_score(score)
    assert value == expected
    assert type(value) is int


def test_build_report_from_minimal_payload(service):
    report = service.build_feedback_report({"overallScore": 5})

    assert report.id.startswith("feedback_")
    assert report.overall_score == 5
    assert report.grammar_feedback.score == 5
    assert report.grammar_feedback.sentence_structure == "Good sentence variety"
    assert report.pronunciation_feedback.clarity == "Clear pronunciation"
    assert report.tone_feedback.energy == EnergyLevel.MODERATE
    assert report.tone_feedback.confidence == ConfidenceLevel.NEUTRAL
    assert report.strengths == []
    assert report.filler_words.total_count == 0


def test_build_report_normalizes_fields(service):
    raw = {
        "overallScore": 11,
        "grammarFeedback": {"score": 0, "errors": "one error", "correctionsCount": "2"},
        "vocabularyFeedback": {"score": "6.5", "advancedWordsUsed": ["meticulous", None, ""]},
        "fluencyFeedback": "not a section",
        "toneFeedback": {"score": 8, "energy": "HIGH", "confidence": "bold"},
        "strengths": ["Clear structure"],
        "areasForImprovement": None,
    }
    report = service.build_feedback_report(raw, session_id="session_1")

    assert report.session_id == "session_1"
    assert report.overall_score == 10
    # A zero from the model is a real score, not a missing one
    assert report.grammar_feedback.score == 0
    assert report.grammar_feedback.errors == ["one error"]
    assert report.grammar_feedback.corrections_count == 2
    assert report.vocabulary_feedback.score == 6.5
    assert report.vocabulary_feedback.advanced_words_used == ["meticulous"]
    assert report.fluency_feedback.score == 5
    assert report.tone_feedback.energy == EnergyLevel.HIGH
    assert report.tone_feedback.confidence == ConfidenceLevel.NEUTRAL
    assert report.strengths == ["Clear structure"]
    assert report.areas_for_improvement == []


def test_build_report_tolerates_non_dict(service):
    report = service.build_feedback_report(["unexpected"])
    assert report.overall_score == 5


def test_report_serializes_camel_case(service):
    data = service.build_feedback_report({"overallScore": 6}).model_dump(by_alias=True)
    assert "overallScore" in data
    assert "grammarFeedback" in data
    assert "fillerWords" in data


def test_skill_score_for_unknown_skill(service):
    report = service.build_feedback_report({"toneFeedback": {"score": 9}})
    assert report.skill_score("tone") == 9
    assert report.skill_score("conversation") == 0


def test_filler_words_counts_phrases_first(service):
    transcript = "Um, you know, I like, um, basically you know went there. I mean it was like fine."
    analysis = service.analyze_filler_words(transcript, duration_seconds=120)

    counts = {t.word: t.count for t in analysis.types}
    assert counts == {"you know": 2, "um": 2, "like": 2, "basically": 1, "i mean": 1}
    assert analysis.total_count == 8
    assert analysis.frequency == 4.0
    assert [t.word for t in analysis.types][:3] == ["like", "um", "you know"]


def test_filler_words_without_duration(service):
    analysis = service.analyze_filler_words("So um yeah", duration_seconds=0)
    assert analysis.total_count == 2
    assert analysis.frequency == 0.0


def test_filler_words_ignore_substrings(service):
    analysis = service.analyze_filler_words("Summer error umbrella likely", duration_seconds=60)
    assert analysis.total_count == 0
    assert analysis.types == []


def test_build_report_computes_filler_words(service):
    report = service.build_feedback_report(
        {"overallScore": 7}, transcript="um um uh", duration_seconds=60
    )
    assert report.filler_words.total_count == 3
    assert report.filler_words.frequency == 3.0


def test_analyze_speech(service):
    metrics = service.analyze_speech("one two three four five six", duration_ms=60000)
    assert metrics == {"duration": 60000, "wordCount": 6, "speakingRate": 6, "pauseCount": 0}


def test_analyze_speech_zero_duration(service):
    metrics = service.analyze_speech("hello there", duration_ms=0)
    assert metrics["speakingRate"] == 0
    assert metrics["wordCount"] == 2
