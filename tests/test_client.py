"""Tests for the conversation API client."""

import asyncio
import json

import httpx
import pytest

from factories import FakeLLM
from speak_practice.main import app
from speak_practice.practice.client import ConversationClient, ConversationClientError
from speak_practice.scenarios import get_scenario_by_id
from speak_practice.services.conversation_service import (
    ConversationService,
    get_conversation_service,
)

BASE_URL = "http://backend.test/api"


def mock_client(handler) -> ConversationClient:
    return ConversationClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


def test_initialize_conversation_sends_scenario():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "Welcome!"})

    client = mock_client(handler)
    scenario = get_scenario_by_id("presentation_01")
    greeting = asyncio.run(client.initialize_conversation(scenario))

    assert greeting == "Welcome!"
    assert seen["path"] == "/api/initialize-conversation"
    assert seen["body"]["scenario"]["id"] == "presentation_01"
    assert seen["body"]["scenario"]["category"] == "presentation"


def test_generate_response_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"response": "Tell me more.", "turnCount": 3})

    history = [{"role": "user", "content": "Hi"}]
    reply = asyncio.run(mock_client(handler).generate_response({"title": "x"}, "Hi", history, 3))

    assert reply == "Tell me more."
    assert seen == {
        "scenario": {"title": "x"},
        "userMessage": "Hi",
        "conversationHistory": history,
        "turnCount": 3,
    }


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "Failed to generate AI response"}),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, content=b"<html>"),
    ],
)
def test_generate_response_failures_use_static_message(response):
    client = mock_client(lambda request: response)
    with pytest.raises(ConversationClientError, match="^Failed to generate AI response$"):
        asyncio.run(client.generate_response({}, "Hi"))


def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ConversationClientError, match="^Failed to initialize conversation$"):
        asyncio.run(mock_client(handler).initialize_conversation({}))


def test_feedback_report_is_normalized():
    payload = {
        "overallScore": 12,
        "grammarFeedback": {"score": 7, "errors": ["goed -> went"]},
        "strengths": ["Good vocabulary"],
    }
    client = mock_client(lambda request: httpx.Response(200, json=payload))
    report = asyncio.run(
        client.generate_feedback_report(
            "um I goed to the um store", {}, {"duration": 60000}, duration_seconds=60
        )
    )

    assert report.overall_score == 10
    assert report.grammar_feedback.errors == ["goed -> went"]
    assert report.vocabulary_feedback.score == 5
    assert report.filler_words.total_count == 2
    assert report.filler_words.frequency == 2.0


def test_feedback_report_failure():
    client = mock_client(lambda request: httpx.Response(400, json={"error": "transcript is required"}))
    with pytest.raises(ConversationClientError, match="^Failed to generate feedback report$"):
        asyncio.run(client.generate_feedback_report("", {}))


def test_health():
    client = mock_client(lambda request: httpx.Response(200, json={"status": "OK"}))
    assert asyncio.run(client.health()) == {"status": "OK"}

    client = mock_client(lambda request: httpx.Response(503))
    with pytest.raises(ConversationClientError):
        asyncio.run(client.health())


def test_client_against_app():
    llm = FakeLLM(replies=["Hi! What shall we talk about?", "Sounds fun. Why?"])
    app.dependency_overrides[get_conversation_service] = lambda: ConversationService(llm_service=llm)
    try:
        client = ConversationClient(
            base_url="http://testserver/api", transport=httpx.ASGITransport(app=app)
        )
        scenario = get_scenario_by_id("free_topic_01")

        async def conversation():
            greeting = await client.initialize_conversation(scenario)
            reply = await client.generate_response(scenario, "I like hiking.", [], 0)
            return greeting, reply

        assert asyncio.run(conversation()) == ("Hi! What shall we talk about?", "Sounds fun. Why?")
    finally:
        app.dependency_overrides.clear()
