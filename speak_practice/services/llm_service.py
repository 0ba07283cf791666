"""
LLM Service wrapping the hosted Gemini model.

This service is the only place that talks to the generative model. It is
stateless between requests: every call sends one fully rendered prompt and
returns the model's text.

Model: gemini-2.5-flash by default (see GEMINI_MODEL)
"""

import asyncio
from typing import Dict, Optional

import google.generativeai as genai
from loguru import logger

from speak_practice.config import settings


class LLMServiceError(RuntimeError):
    """Raised when the hosted model cannot produce a response."""


class LLMService:
    """
    LLM Service for prompt completion using Gemini.

    The underlying model client is created lazily on first use so the
    application can start (and serve health checks) without an API key.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the LLM service."""
        self._model = None
        self._lock = asyncio.Lock()

        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self.default_temperature = (
            temperature if temperature is not None else settings.llm_temperature
        )
        self.max_output_tokens = max_output_tokens or settings.llm_max_output_tokens
        self.timeout = timeout or settings.llm_timeout

        if not self.is_configured:
            logger.warning(
                "GEMINI_API_KEY is not set. Endpoints will fail until it is added to the server environment."
            )

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self.api_key and self.api_key.strip())

    @property
    def is_loaded(self) -> bool:
        """Check if the model client has been created."""
        return self._model is not None

    async def _get_model(self):
        async with self._lock:
            if self._model is None:
                if not self.is_configured:
                    raise LLMServiceError("Gemini API key is not configured")
                genai.configure(api_key=self.api_key)
                self._model = genai.GenerativeModel(self.model_name)
                logger.info(f"Gemini model ready: {self.model_name}")
            return self._model

    async def generate(self, prompt: str, temperature: Optional[float] = None) -> str:
        """
        Generate a completion for a single prompt.

        Args:
            prompt: The fully rendered prompt
            temperature: Sampling temperature, defaults to the configured value

        Returns:
            The stripped response text, empty if the model returned nothing

        Raises:
            LLMServiceError: If the model is not configured or the call fails
        """
        model = await self._get_model()

        generation_config = {
            "temperature": (
                temperature if temperature is not None else self.default_temperature
            ),
            "max_output_tokens": self.max_output_tokens,
        }

        try:
            response = await model.generate_content_async(
                prompt,
                generation_config=generation_config,
                request_options={"timeout": self.timeout},
            )
        except Exception as e:
            logger.error(f"Gemini generation failed: {e}")
            raise LLMServiceError(f"Gemini generation failed: {e}") from e

        return self._response_text(response)

    @staticmethod
    def _response_text(response) -> str:
        """Extract text, treating blocked or empty candidates as empty output."""
        try:
            text = response.text
        except ValueError as e:
            logger.warning(f"Gemini returned no usable text: {e}")
            return ""
        return (text or "").strip()

    async def get_model_info(self) -> Dict:
        """Get information about the configured model."""
        return {
            "model_name": self.model_name,
            "is_configured": self.is_configured,
            "is_loaded": self.is_loaded,
            "default_temperature": self.default_temperature,
            "max_output_tokens": self.max_output_tokens,
            "timeout": self.timeout,
        }


# Global service instance (singleton pattern)
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get or create the global LLM service instance."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
