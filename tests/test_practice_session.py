"""Tests for the practice session controller."""

import asyncio
from datetime import timedelta

import pytest

from factories import NOW, Clock
from speak_practice.models import FeedbackReport, SessionStatus
from speak_practice.practice.client import ConversationClientError
from speak_practice.practice.session import (
    EMPTY_SESSION_ERROR,
    INIT_ERROR,
    NO_SPEECH_ERROR,
    RECORDING_ERROR,
    RESPONSE_ERROR,
    PracticeConversation,
)
from speak_practice.scenarios import get_scenario_by_id
from speak_practice.services.feedback_service import FeedbackService


class FakeClient:
    """In-memory stand-in for ConversationClient."""

    def __init__(self, replies=None, fail=None):
        self.replies = list(replies or ["Reply one", "Reply two"])
        self.fail = set(fail or [])
        self.calls = []

    async def initialize_conversation(self, scenario):
        self.calls.append(("initialize", scenario.id))
        if "initialize" in self.fail:
            raise ConversationClientError("Failed to initialize conversation")
        return "Hello! What would you like to talk about?"

    async def generate_response(self, scenario, user_message, history, turn_count):
        self.calls.append(("respond", user_message, list(history), turn_count))
        if "respond" in self.fail:
            raise ConversationClientError("Failed to generate AI response")
        return self.replies.pop(0)

    async def generate_feedback_report(self, transcript, scenario, audio_analysis, duration_seconds=0):
        self.calls.append(("feedback", transcript, audio_analysis, duration_seconds))
        if "feedback" in self.fail:
            raise ConversationClientError("Failed to generate feedback report")
        return FeedbackService().build_feedback_report(
            {"overallScore": 9}, transcript=transcript, duration_seconds=duration_seconds
        )


@pytest.fixture
def scenario():
    return get_scenario_by_id("free_topic_01")


@pytest.fixture
def session_clock():
    return Clock(NOW)


def make_conversation(scenario, client, clock, **kwargs):
    return PracticeConversation(
        scenario, client, clock=clock, recognition_settle_seconds=0, **kwargs
    )


def test_start_adds_greeting_and_speaks(scenario, session_clock):
    spoken = []
    conversation = make_conversation(scenario, FakeClient(), session_clock, speak=spoken.append)

    greeting = asyncio.run(conversation.start())

    assert greeting == "Hello! What would you like to talk about?"
    assert [m.role for m in conversation.messages] == ["assistant"]
    assert conversation.is_waiting_for_user
    assert not conversation.is_processing
    assert spoken == [greeting]


def test_start_failure_sets_error(scenario, session_clock):
    conversation = make_conversation(scenario, FakeClient(fail={"initialize"}), session_clock)
    assert asyncio.run(conversation.start()) is None
    assert conversation.error == INIT_ERROR
    assert conversation.messages == []


def test_turns_send_history_without_greeting(scenario, session_clock):
    client = FakeClient()
    conversation = make_conversation(scenario, client, session_clock)

    async def run():
        await conversation.start()
        await conversation.submit_utterance("I love cooking.")
        await conversation.submit_utterance("Mostly Italian food.")

    asyncio.run(run())

    first, second = [c for c in client.calls if c[0] == "respond"]
    assert first[2] == [{"role": "user", "content": "I love cooking."}]
    assert first[3] == 0
    assert second[2] == [
        {"role": "user", "content": "I love cooking."},
        {"role": "assistant", "content": "Reply one"},
        {"role": "user", "content": "Mostly Italian food."},
    ]
    assert second[3] == 1
    assert conversation.turn_count == 2
    assert len(conversation.messages) == 5


def test_failed_turn_keeps_user_message(scenario, session_clock):
    conversation = make_conversation(scenario, FakeClient(fail={"respond"}), session_clock)

    async def run():
        await conversation.start()
        return await conversation.submit_utterance("Hello")

    assert asyncio.run(run()) is None
    assert conversation.error == RESPONSE_ERROR
    assert conversation.turn_count == 0
    assert conversation.messages[-1].content == "Hello"
    assert conversation.is_waiting_for_user


def test_async_speak_hook_failure_is_logged_not_raised(scenario, session_clock):
    async def speak(text):
        raise OSError("no audio device")

    conversation = make_conversation(scenario, FakeClient(), session_clock, speak=speak)
    assert asyncio.run(conversation.start()) is not None
    assert conversation.error is None


def test_recording_flow(scenario, session_clock):
    client = FakeClient()
    conversation = make_conversation(scenario, client, session_clock)

    async def run():
        await conversation.start()
        assert conversation.start_recording()
        assert conversation.is_recording
        conversation.feed_audio(b"\x00\x10" * 160)
        conversation.on_recognition_results([("I went ", True), ("to Paris", False)])
        return await conversation.stop_recording()

    assert asyncio.run(run()) == "Reply one"
    assert not conversation.is_recording
    assert client.calls[-1][1] == "I went"


def test_recording_uses_interim_when_nothing_final(scenario, session_clock):
    client = FakeClient()
    conversation = make_conversation(scenario, client, session_clock)

    async def run():
        await conversation.start()
        conversation.start_recording()
        conversation.on_recognition_results([("maybe tomorrow", False)])
        return await conversation.stop_recording()

    assert asyncio.run(run()) == "Reply one"
    assert client.calls[-1][1] == "maybe tomorrow"


def test_stop_without_speech(scenario, session_clock):
    client = FakeClient()
    conversation = make_conversation(scenario, client, session_clock)

    async def run():
        await conversation.start()
        conversation.start_recording()
        return await conversation.stop_recording()

    assert asyncio.run(run()) is None
    assert conversation.error == NO_SPEECH_ERROR
    assert all(call[0] != "respond" for call in client.calls)


def test_start_recording_twice_reports_microphone_error(scenario, session_clock):
    conversation = make_conversation(scenario, FakeClient(), session_clock)
    assert conversation.start_recording()
    assert not conversation.start_recording()
    assert conversation.error == RECORDING_ERROR


def test_recognition_error_message(scenario, session_clock):
    conversation = make_conversation(scenario, FakeClient(), session_clock)
    conversation.on_recognition_error("not-allowed")
    assert conversation.error == "Microphone access denied. Please allow microphone access."


def test_complete_builds_and_saves_session(scenario, session_clock, progress):
    client = FakeClient()
    conversation = make_conversation(scenario, client, session_clock, progress_service=progress)

    async def run():
        await conversation.start()
        await conversation.submit_utterance("Um I like cooking.")
        await conversation.submit_utterance("Pasta mostly.")
        session_clock.advance(seconds=95, milliseconds=400)
        return await conversation.complete()

    session = asyncio.run(run())

    assert session is not None
    assert session.id == f"session_{int((NOW + timedelta(seconds=95, milliseconds=400)).timestamp() * 1000)}"
    assert session.feedback.session_id == session.id
    assert session.duration == 95
    assert session.transcript == "Um I like cooking. Pasta mostly."
    assert session.ai_response == "Hello! What would you like to talk about?\nReply one\nReply two"
    assert session.status == SessionStatus.COMPLETED
    assert session.scenario_id == "free_topic_01"
    assert isinstance(session.feedback, FeedbackReport)

    _, transcript, analysis, duration_seconds = client.calls[-1]
    assert transcript == "Um I like cooking. Pasta mostly."
    assert analysis["wordCount"] == 6
    assert analysis["duration"] == 95400
    assert duration_seconds == pytest.approx(95.4)

    assert [s.id for s in progress.get_all_sessions()] == [session.id]
    assert {a.id for a in conversation.new_achievements} == {"first_session", "perfect_score"}


def test_complete_without_user_turns(scenario, session_clock):
    conversation = make_conversation(scenario, FakeClient(), session_clock)

    async def run():
        await conversation.start()
        return await conversation.complete()

    assert asyncio.run(run()) is None
    assert conversation.error == EMPTY_SESSION_ERROR


def test_complete_feedback_failure(scenario, session_clock, progress):
    conversation = make_conversation(
        scenario, FakeClient(fail={"feedback"}), session_clock, progress_service=progress
    )

    async def run():
        await conversation.start()
        await conversation.submit_utterance("Hello there")
        return await conversation.complete()

    assert asyncio.run(run()) is None
    assert conversation.error == "Failed to generate feedback: Failed to generate feedback report"
    assert progress.get_all_sessions() == []
