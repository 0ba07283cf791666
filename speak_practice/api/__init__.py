"""
API module for the Speak Practice backend.

This module contains the API endpoints:
- Conversation proxy endpoints and health check
- Progress, achievements and analytics endpoints
- Scenario catalog endpoints
"""

from .conversation import router as conversation_router
from .progress import router as progress_router
from .scenarios import router as scenarios_router

__all__ = [
    "conversation_router",
    "progress_router",
    "scenarios_router",
]
