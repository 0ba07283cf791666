"""
Services module for the Speak Practice backend.

This module provides the core services:
- LLMService: Prompt completion with the hosted Gemini model
- ConversationService: Opening, turn and feedback generation
- FeedbackService: Feedback report normalization and transcript metrics
- ProgressService: Session storage, snapshots and achievements
- ProgressAnalytics: Dashboard aggregations
"""

from .conversation_service import ConversationService
from .feedback_service import FeedbackService
from .llm_service import LLMService, LLMServiceError
from .progress_analytics import ProgressAnalytics
from .progress_service import ProgressService

__all__ = [
    "LLMService",
    "LLMServiceError",
    "ConversationService",
    "FeedbackService",
    "ProgressService",
    "ProgressAnalytics",
]
