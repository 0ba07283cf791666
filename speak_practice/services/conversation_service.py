"""
Conversation Service for the three proxy operations.

Each operation renders a scenario prompt, calls the hosted model once and
reshapes the reply:
- Opening greeting for a new session
- Partner reply for an ongoing turn
- Feedback JSON for a completed transcript
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from speak_practice.config import settings
from speak_practice.prompts import (
    get_feedback_prompt,
    get_opening_prompt,
    get_response_prompt,
)
from speak_practice.scenarios import safe_scenario
from speak_practice.services.feedback_service import FeedbackService, get_feedback_service
from speak_practice.services.llm_service import LLMService, get_llm_service

DEFAULT_GREETING = "Hello! Let's begin our practice session."
DEFAULT_REPLY = "That's interesting. Can you tell me more?"


class ConversationService:
    """Stateless wrapper around the model for conversation turns and feedback."""

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        feedback_service: Optional[FeedbackService] = None,
    ):
        self._llm_service = llm_service
        self._feedback_service = feedback_service

    @property
    def llm(self) -> LLMService:
        if self._llm_service is None:
            self._llm_service = get_llm_service()
        return self._llm_service

    @property
    def feedback(self) -> FeedbackService:
        if self._feedback_service is None:
            self._feedback_service = get_feedback_service()
        return self._feedback_service

    async def initialize_conversation(self, scenario: Any) -> str:
        """Generate the partner's opening line for a scenario."""
        safe = safe_scenario(scenario)
        text = await self.llm.generate(get_opening_prompt(safe))
        logger.debug(f"Opened conversation for scenario '{safe['title']}'")
        return text or DEFAULT_GREETING

    async def generate_response(
        self,
        scenario: Any,
        user_message: str,
        history: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        """Generate the partner's reply to the student's latest message."""
        safe = safe_scenario(scenario)
        prompt = get_response_prompt(safe, user_message, history or [])
        text = await self.llm.generate(prompt)
        return text or DEFAULT_REPLY

    async def generate_feedback(
        self,
        scenario: Any,
        transcript: str,
        audio_analysis: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Generate the feedback payload for a session transcript.

        Returns:
            Parsed feedback JSON, or the minimal payload if the model's
            output is not valid JSON
        """
        safe = safe_scenario(scenario)
        prompt = get_feedback_prompt(safe, transcript, audio_analysis)
        raw = await self.llm.generate(
            prompt, temperature=settings.llm_feedback_temperature
        )
        return self.feedback.parse_feedback_json(raw or "{}")


# Global service instance (singleton pattern)
_conversation_service: Optional[ConversationService] = None


def get_conversation_service() -> ConversationService:
    """Get or create the global conversation service instance."""
    global _conversation_service
    if _conversation_service is None:
        _conversation_service = ConversationService()
    return _conversation_service
