"""Test doubles and record factories shared across the test modules."""

from datetime import datetime, timedelta
from typing import List, Optional

from speak_practice.models import FeedbackReport, FillerWordAnalysis, GrammarFeedback, Session

NOW = datetime(2026, 3, 10, 12, 0, 0)


class FakeLLM:
    """Stands in for LLMService: returns queued replies and records prompts."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    async def generate(self, prompt: str, temperature=None) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""

    async def get_model_info(self):
        return {"model_name": "fake", "is_configured": True, "is_loaded": True}


class Clock:
    """Settable clock for services that take a ``clock`` callable."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_session(
    index: int = 1,
    score: float = 7,
    start: Optional[datetime] = None,
    duration: int = 120,
    transcript: str = "I really enjoy hiking in the mountains with my friends.",
    grammar: Optional[float] = None,
    filler_frequency: float = 0.0,
    session_id: Optional[str] = None,
) -> Session:
    start = start or NOW - timedelta(minutes=10)
    return Session(
        id=session_id or f"session_{index}",
        scenario_id="free_topic_01",
        start_time=start,
        end_time=start + timedelta(seconds=duration),
        duration=duration,
        transcript=transcript,
        feedback=FeedbackReport(
            id=f"feedback_{index}",
            session_id=session_id or f"session_{index}",
            overall_score=score,
            grammar_feedback=GrammarFeedback(score=grammar if grammar is not None else score),
            filler_words=FillerWordAnalysis(frequency=filler_frequency),
            strengths=["Clear ideas", "Good pace", "Friendly tone"],
        ),
    )
