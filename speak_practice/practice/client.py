"""Client for the conversation API with static user-facing errors."""

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from speak_practice.config import settings
from speak_practice.models import FeedbackReport, Scenario
from speak_practice.services.feedback_service import FeedbackService, get_feedback_service


class ConversationClientError(RuntimeError):
    """Raised when a conversation API call fails."""


def scenario_payload(scenario: Any) -> Any:
    if isinstance(scenario, Scenario):
        return scenario.model_dump(mode="json", by_alias=True)
    return scenario


class ConversationClient:
    """
    Client for the three conversation endpoints plus the health check.

    Nothing is retried: any HTTP, transport or payload problem is logged once
    and raised as ConversationClientError with a static message.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        feedback_service: Optional[FeedbackService] = None,
    ):
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.timeout = timeout or settings.client_timeout
        self._transport = transport
        self._feedback_service = feedback_service or get_feedback_service()

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.request(method, path, json=payload)
            response.raise_for_status()
            return response.json()

    async def initialize_conversation(self, scenario: Any) -> str:
        """Fetch the partner's opening line."""
        try:
            data = await self._request(
                "POST", "/initialize-conversation", {"scenario": scenario_payload(scenario)}
            )
            return str(data["response"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error initializing conversation: {e}")
            raise ConversationClientError("Failed to initialize conversation") from e

    async def generate_response(
        self,
        scenario: Any,
        user_message: str,
        history: Optional[List[Dict[str, str]]] = None,
        turn_count: int = 0,
    ) -> str:
        """Fetch the partner's reply to ``user_message``."""
        payload = {
            "scenario": scenario_payload(scenario),
            "userMessage": user_message,
            "conversationHistory": history or [],
            "turnCount": turn_count,
        }
        try:
            data = await self._request("POST", "/generate-response", payload)
            return str(data["response"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error generating conversation response: {e}")
            raise ConversationClientError("Failed to generate AI response") from e

    async def generate_feedback_report(
        self,
        transcript: str,
        scenario: Any,
        audio_analysis: Optional[Dict[str, Any]] = None,
        duration_seconds: float = 0,
    ) -> FeedbackReport:
        """Fetch feedback for a transcript and normalize it into a report."""
        payload = {
            "transcript": transcript,
            "scenario": scenario_payload(scenario),
            "audioAnalysis": audio_analysis,
        }
        try:
            data = await self._request("POST", "/generate-feedback", payload)
            if not isinstance(data, dict):
                raise TypeError("feedback payload is not an object")
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.error(f"Error generating feedback report: {e}")
            raise ConversationClientError("Failed to generate feedback report") from e

        return self._feedback_service.build_feedback_report(
            data, transcript=transcript, duration_seconds=duration_seconds
        )

    async def health(self) -> Dict[str, Any]:
        """Return the backend health payload."""
        try:
            data = await self._request("GET", "/health")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Backend health check failed: {e}")
            raise ConversationClientError("Backend health check failed") from e
        return data if isinstance(data, dict) else {}
