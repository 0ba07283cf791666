"""
Progress API: stored sessions, progress snapshot, achievements and analytics.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger

from speak_practice.api.conversation import error_response
from speak_practice.models import Achievement, ProgressSnapshot, Session
from speak_practice.services.progress_analytics import ProgressAnalytics
from speak_practice.services.progress_service import (
    ProgressService,
    get_progress_service,
)
from speak_practice.services.storage import StorageError

router = APIRouter(prefix="/api")

MAX_HISTORY_DAYS = 36500


def get_progress_analytics(
    progress: ProgressService = Depends(get_progress_service),
) -> ProgressAnalytics:
    return ProgressAnalytics(progress)


@router.get("/sessions", response_model=List[Session])
def list_sessions(
    days: Optional[int] = Query(default=None, ge=0, le=MAX_HISTORY_DAYS),
    last: Optional[int] = Query(default=None, ge=1),
    progress: ProgressService = Depends(get_progress_service),
):
    """Stored sessions, optionally limited to recent days or the last N."""
    if days is not None:
        sessions = progress.get_recent_sessions(days)
    else:
        sessions = progress.get_all_sessions()
    if last is not None:
        sessions = sessions[-last:]
    return sessions


@router.post("/sessions", status_code=201)
def save_session(
    session: Session,
    progress: ProgressService = Depends(get_progress_service),
):
    """Store a completed session and report any achievements it unlocked."""
    try:
        unlocked = progress.save_session(session)
    except StorageError as e:
        logger.error(f"Failed to save session {session.id}: {e}")
        return error_response(500, "Failed to save session")

    return {"session": session, "newAchievements": unlocked}


@router.delete("/sessions")
def clear_sessions(progress: ProgressService = Depends(get_progress_service)):
    """Clear all sessions, achievements and cached progress."""
    progress.clear_all_data()
    return {"status": "cleared"}


@router.post("/sessions/clear-test-data")
def clear_test_data(progress: ProgressService = Depends(get_progress_service)):
    """Drop obvious test sessions."""
    return {"remaining": progress.clear_test_data()}


@router.get("/progress", response_model=ProgressSnapshot)
def get_progress(progress: ProgressService = Depends(get_progress_service)):
    return progress.get_progress_data()


@router.get("/achievements", response_model=List[Achievement])
def get_achievements(progress: ProgressService = Depends(get_progress_service)):
    return progress.get_achievements()


@router.get("/analytics/insights")
def insights(analytics: ProgressAnalytics = Depends(get_progress_analytics)):
    return analytics.get_progress_insights()


@router.get("/analytics/skill-trends")
def skill_trends(analytics: ProgressAnalytics = Depends(get_progress_analytics)):
    return analytics.get_skill_trend_data()


@router.get("/analytics/comparison")
def session_comparison(
    analytics: ProgressAnalytics = Depends(get_progress_analytics),
):
    return analytics.get_session_comparison()


@router.get("/analytics/practice-time")
def practice_time(analytics: ProgressAnalytics = Depends(get_progress_analytics)):
    return analytics.get_practice_time_analysis()


@router.get("/analytics/achievement-progress")
def achievement_progress(
    analytics: ProgressAnalytics = Depends(get_progress_analytics),
):
    return analytics.get_achievement_progress()


@router.get("/analytics/weekly-summary")
def weekly_summary(analytics: ProgressAnalytics = Depends(get_progress_analytics)):
    return analytics.get_weekly_progress_summary()


@router.get("/analytics/filler-words")
def filler_words(
    window: int = Query(default=5, ge=1),
    progress: ProgressService = Depends(get_progress_service),
):
    return progress.get_filler_word_trend(window)
