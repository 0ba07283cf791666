"""
Conversation API for the practice frontend.

This module exposes the proxy endpoints in front of the hosted model:
1. Initialize a conversation for a scenario (partner greeting)
2. Generate the partner's reply to the student's turn
3. Generate a feedback report for a finished transcript
4. Health check

Every endpoint is stateless; the client sends the scenario and history with
each request.
"""

import math
import time
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from speak_practice.config import settings
from speak_practice.services.conversation_service import (
    ConversationService,
    get_conversation_service,
)

router = APIRouter(prefix="/api")


class InitializeRequest(BaseModel):
    """Body of POST /api/initialize-conversation."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    scenario: Any = None


class ResponseRequest(InitializeRequest):
    """Body of POST /api/generate-response."""

    user_message: Any = Field(default=None, alias="userMessage")
    conversation_history: Any = Field(default=None, alias="conversationHistory")
    turn_count: Any = Field(default=None, alias="turnCount")


class FeedbackRequest(InitializeRequest):
    """Body of POST /api/generate-feedback."""

    transcript: Any = None
    audio_analysis: Any = Field(default=None, alias="audioAnalysis")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def coerce_text(value: Any) -> str:
    """String form of a loosely typed field, stripped; None becomes empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def coerce_turn_count(value: Any):
    """Keep finite numbers, anything else counts as turn 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return int(value) if float(value).is_integer() else value


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "OK",
        "message": "Backend proxy is running",
        "allowlist": settings.allowed_origins_list,
        "time": int(time.time() * 1000),
    }


@router.post("/initialize-conversation")
async def initialize_conversation(
    body: Optional[InitializeRequest] = None,
    conversation: ConversationService = Depends(get_conversation_service),
):
    """Return the partner's opening line for the scenario."""
    body = body or InitializeRequest()
    try:
        greeting = await conversation.initialize_conversation(body.scenario)
    except Exception as e:
        logger.error(f"Error initializing conversation: {e}")
        return error_response(500, "Failed to initialize conversation")

    return {"response": greeting}


@router.post("/generate-response")
async def generate_response(
    body: Optional[ResponseRequest] = None,
    conversation: ConversationService = Depends(get_conversation_service),
):
    """Return the partner's reply to the student's latest message."""
    body = body or ResponseRequest()
    user_message = coerce_text(body.user_message)
    history = body.conversation_history if isinstance(body.conversation_history, list) else []
    turn_count = coerce_turn_count(body.turn_count)

    if not user_message:
        return error_response(400, "userMessage is required")

    try:
        reply = await conversation.generate_response(body.scenario, user_message, history)
    except Exception as e:
        logger.error(f"Error generating conversation response: {e}")
        return error_response(500, "Failed to generate AI response")

    return {"response": reply, "turnCount": turn_count}


@router.post("/generate-feedback")
async def generate_feedback(
    body: Optional[FeedbackRequest] = None,
    conversation: ConversationService = Depends(get_conversation_service),
):
    """Return the model's feedback JSON for a session transcript."""
    body = body or FeedbackRequest()
    transcript = coerce_text(body.transcript)
    audio_analysis = body.audio_analysis if isinstance(body.audio_analysis, dict) else None

    if not transcript:
        return error_response(400, "transcript is required")

    try:
        return await conversation.generate_feedback(body.scenario, transcript, audio_analysis)
    except Exception as e:
        logger.error(f"Error generating feedback report: {e}")
        return error_response(500, "Failed to generate feedback report")


@router.get("/status")
async def status(
    conversation: ConversationService = Depends(get_conversation_service),
):
    """Detailed status showing the configured model."""
    return {
        "status": "running",
        "environment": settings.environment,
        "model": await conversation.llm.get_model_info(),
    }
