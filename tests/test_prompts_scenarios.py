"""Tests for the scenario catalog and prompt builders."""

from speak_practice.models import Scenario
from speak_practice.prompts import (
    format_history,
    get_feedback_prompt,
    get_opening_prompt,
    get_response_prompt,
)
from speak_practice.scenarios import (
    SCENARIOS,
    get_random_scenario,
    get_scenario_by_id,
    get_scenarios_by_category,
    safe_scenario,
    search_scenarios,
)


def test_catalog_ids_are_unique():
    ids = [s.id for s in SCENARIOS]
    assert len(ids) == len(set(ids)) == 7


def test_lookup_helpers():
    assert get_scenario_by_id("networking_01").category.value == "networking"
    assert get_scenario_by_id("missing") is None
    assert [s.id for s in get_scenarios_by_category("presentation")] == ["presentation_01"]
    assert search_scenarios("no such thing anywhere") == []
    assert get_random_scenario() in SCENARIOS
    assert get_random_scenario("native") is None


def test_safe_scenario_defaults():
    assert safe_scenario(None) == {
        "category": "free_topic",
        "title": "General practice",
        "context": "",
    }
    assert safe_scenario({"title": "", "category": "", "context": None})["title"] == "General practice"
    assert safe_scenario("not a dict")["category"] == "free_topic"


def test_safe_scenario_accepts_models():
    scenario = get_scenario_by_id("job_interview_01")
    safe = safe_scenario(scenario)
    assert safe["category"] == "job_interview"
    assert safe["title"] == scenario.title
    assert isinstance(scenario, Scenario)


def test_opening_prompt_uses_category_role():
    prompt = get_opening_prompt(safe_scenario({"category": "presentation", "title": "Talk"}))
    assert "university professor" in prompt
    assert "Scenario: Talk" in prompt


def test_format_history_skips_non_dicts():
    history = [{"role": "user", "content": "Hi"}, "junk", {"role": "assistant", "content": "Hey"}]
    assert format_history(history) == "Student: Hi\nYou: Hey"


def test_response_prompt_for_interview():
    prompt = get_response_prompt(
        safe_scenario({"category": "job_interview", "title": "Interview"}), "I am ready", []
    )
    assert "realistic job interview" in prompt
    assert 'The student just said: "I am ready"' in prompt


def test_response_prompt_generic_role():
    prompt = get_response_prompt(safe_scenario({"category": "storytelling"}), "Once", [])
    assert prompt.startswith("You are a helpful conversation partner")


def test_feedback_prompt_without_audio():
    prompt = get_feedback_prompt(safe_scenario({}), "hello", None)
    assert "Audio metrics" not in prompt
    assert '"overallScore"' in prompt
    assert 'Student transcript: "hello"' in prompt
