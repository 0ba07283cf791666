"""
Progress Service for stored sessions, achievements and progress snapshots.

Sessions are kept as a capped list (most recent entries win) under a single
store key. The progress snapshot is a pure function of that list: it is
recomputed on every read and write, and the stored copy is only a cache for
clients that read the store directly.
"""

import json
import math
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from speak_practice.config import settings
from speak_practice.models import (
    SKILLS,
    Achievement,
    AchievementCategory,
    OverallProgress,
    ProficiencyLevel,
    ProgressSnapshot,
    Session,
    SessionSummary,
    SkillMetric,
    SkillProgress,
    SkillTrend,
    StreakData,
)
from speak_practice.services.storage import KeyValueStore, StorageError, create_store

COMPARISON_WINDOW = 5
HISTORY_LENGTH = 10
TREND_THRESHOLD = 5
SESSION_MILESTONES = (5, 10, 25, 50, 100)
STREAK_MILESTONES = (3, 7, 30)
PERFECT_SCORE = 9
GREAT_IMPROVEMENT = 20


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like ``Math.round``: halves go towards positive infinity."""
    factor = 10**digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def improvement_percentage(
    scores: Sequence[float], window: int = COMPARISON_WINDOW
) -> int:
    """
    Percentage change of the last ``window`` scores against the ones before.

    Returns 0 with fewer than ``window + 1`` scores or a zero baseline.
    With fewer than ``2 * window`` scores the baseline is the mean of the
    shorter previous slice, not its sum over ``window``.
    """
    if len(scores) < window + 1:
        return 0
    recent = scores[-window:]
    previous = scores[-2 * window : -window]
    previous_avg = mean(previous)
    if previous_avg == 0:
        return 0
    return round_half_up((mean(recent) - previous_avg) / previous_avg * 100)


def trend_for(improvement: float) -> SkillTrend:
    if improvement > TREND_THRESHOLD:
        return SkillTrend.IMPROVING
    if improvement < -TREND_THRESHOLD:
        return SkillTrend.DECLINING
    return SkillTrend.STABLE


def local_date(moment: datetime) -> date:
    """Calendar day of a timestamp in local time."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def calculate_streaks(sessions: Iterable[Session], today: date) -> StreakData:
    """
    Current and longest runs of consecutive practice days.

    The current streak is the run ending on the last practice day, and only
    counts while that day is today or yesterday.
    """
    ordered = sorted(sessions, key=lambda s: s.start_time.timestamp())
    if not ordered:
        return StreakData(current=0, longest=0, last_practice_date=None)

    practice_dates = sorted({local_date(s.start_time) for s in ordered})
    yesterday = today - timedelta(days=1)

    current = 0
    longest = 0
    run = 0
    previous: Optional[date] = None
    for day in practice_dates:
        run = run + 1 if previous is not None and (day - previous).days == 1 else 1
        longest = max(longest, run)
        if day in (today, yesterday):
            current = run
        previous = day

    if (today - practice_dates[-1]).days > 1:
        current = 0

    return StreakData(
        current=current, longest=longest, last_practice_date=ordered[-1].start_time
    )


def calculate_current_level(average_score: float) -> ProficiencyLevel:
    if average_score >= 8.5:
        return ProficiencyLevel.ADVANCED
    if average_score >= 7:
        return ProficiencyLevel.INTERMEDIATE
    return ProficiencyLevel.BEGINNER


class ProgressService:
    """
    Service for the learner's stored practice history.

    Provides:
    - Capped session storage with FIFO eviction
    - Progress snapshots (level, skill trends, streaks, history)
    - Idempotent achievement unlocking
    - Filler-word trend and test-data cleanup
    """

    STORAGE_KEY = "english-practice-sessions"
    ACHIEVEMENTS_KEY = "english-practice-achievements"
    USER_PROGRESS_KEY = "english-practice-user-progress"

    def __init__(
        self,
        store: KeyValueStore,
        max_sessions: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.max_sessions = max_sessions or settings.max_stored_sessions
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return local_date(self.now())

    # ===========================================
    # Sessions
    # ===========================================

    def save_session(self, session: Session) -> List[Achievement]:
        """
        Save a completed practice session.

        Keeps only the most recent sessions, refreshes the progress cache
        and unlocks any achievements the new session earns.

        Returns:
            Achievements unlocked by this session
        """
        sessions = self.get_all_sessions()
        sessions.append(session)
        recent = sessions[-self.max_sessions :]

        self._write_sessions(recent)
        logger.info(f"Session {session.id} saved ({len(recent)} stored)")

        snapshot = self.calculate_progress_data(recent)
        new_achievements = self.check_and_unlock_achievements(session, recent, snapshot)
        self.update_progress_data(recent)
        return new_achievements

    def get_all_sessions(self) -> List[Session]:
        """Get all saved sessions, oldest first."""
        raw = self.store.get(self.STORAGE_KEY)
        if not raw:
            return []

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to load sessions: {e}")
            return []
        if not isinstance(items, list):
            logger.error("Failed to load sessions: stored value is not a list")
            return []

        sessions = []
        for item in items:
            try:
                sessions.append(Session.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable session record: {e.error_count()} errors")
        return sessions

    def get_recent_sessions(self, days: int = 30) -> List[Session]:
        """Get sessions started within the last ``days`` days."""
        try:
            cutoff = as_local_naive(self.now() - timedelta(days=days))
        except OverflowError:
            return self.get_all_sessions()
        return [
            s for s in self.get_all_sessions() if as_local_naive(s.start_time) >= cutoff
        ]

    def get_last_sessions(self, count: int = 5) -> List[Session]:
        if count <= 0:
            return []
        return self.get_all_sessions()[-count:]

    def _write_sessions(self, sessions: List[Session]) -> None:
        payload = [s.model_dump(mode="json", by_alias=True) for s in sessions]
        self.store.set(self.STORAGE_KEY, json.dumps(payload))

    # ===========================================
    # Progress snapshot
    # ===========================================

    def update_progress_data(
        self, sessions: Optional[List[Session]] = None
    ) -> ProgressSnapshot:
        """Recompute the snapshot and refresh the stored cache."""
        if sessions is None:
            sessions = self.get_all_sessions()
        snapshot = self.calculate_progress_data(sessions)
        try:
            self.store.set(
                self.USER_PROGRESS_KEY,
                snapshot.model_dump_json(by_alias=True),
            )
        except StorageError as e:
            logger.error(f"Failed to update progress data: {e}")
        return snapshot

    def get_progress_data(self) -> ProgressSnapshot:
        """Current progress, always recomputed from the stored sessions."""
        return self.update_progress_data()

    def calculate_progress_data(self, sessions: List[Session]) -> ProgressSnapshot:
        """Calculate the full progress snapshot for a session list."""
        if not sessions:
            return self.get_initial_progress_data()

        total_seconds = sum(s.duration for s in sessions)
        average_score = mean([s.feedback.overall_score for s in sessions])

        overall = OverallProgress(
            current_level=calculate_current_level(average_score),
            total_sessions=len(sessions),
            total_practice_time=total_seconds // 60,
            average_score=average_score,
            improvement=self.calculate_improvement(sessions),
        )

        history = [
            SessionSummary(
                id=s.id,
                date=s.start_time,
                scenario=s.scenario_id,
                duration=s.duration,
                score=s.feedback.overall_score,
                key_improvements=list(s.feedback.strengths[:2]),
            )
            for s in sessions[-HISTORY_LENGTH:]
        ]

        return ProgressSnapshot(
            overall_progress=overall,
            skill_progress=self.calculate_skill_progress(sessions),
            session_history=history,
            achievements=self.get_achievements(),
            streaks=self.calculate_streaks(sessions),
        )

    def calculate_improvement(self, sessions: List[Session]) -> int:
        """Overall score improvement of the last 5 sessions over the 5 before."""
        return improvement_percentage([s.feedback.overall_score for s in sessions])

    def calculate_skill_progress(self, sessions: List[Session]) -> SkillProgress:
        """Current score, improvement and trend for each tracked skill."""
        updated = self.now()
        metrics: Dict[str, SkillMetric] = {}
        for skill in SKILLS:
            scores = [s.feedback.skill_score(skill) for s in sessions]
            improvement = improvement_percentage(scores)
            metrics[skill] = SkillMetric(
                current_score=scores[-1] if scores else 0,
                improvement=improvement,
                trend=trend_for(improvement),
                last_updated=updated,
            )
        return SkillProgress(**metrics)

    def calculate_streaks(self, sessions: List[Session]) -> StreakData:
        return calculate_streaks(sessions, self.today())

    def calculate_current_level(self, average_score: float) -> ProficiencyLevel:
        return calculate_current_level(average_score)

    def get_initial_progress_data(self) -> ProgressSnapshot:
        """Progress for a learner with no sessions yet."""
        updated = self.now()
        return ProgressSnapshot(
            overall_progress=OverallProgress(),
            skill_progress=SkillProgress(
                **{skill: SkillMetric(last_updated=updated) for skill in SKILLS}
            ),
            session_history=[],
            achievements=self.get_achievements(),
            streaks=StreakData(),
        )

    # ===========================================
    # Achievements
    # ===========================================

    def check_and_unlock_achievements(
        self,
        latest_session: Session,
        all_sessions: List[Session],
        snapshot: Optional[ProgressSnapshot] = None,
    ) -> List[Achievement]:
        """
        Unlock achievements earned by the latest session.

        An id already present in the stored list is never added again.

        Returns:
            The newly unlocked achievements
        """
        existing = self.get_achievements()
        known_ids = {a.id for a in existing}
        unlocked: List[Achievement] = []
        unlocked_at = self.now()

        def unlock(
            achievement_id: str,
            title: str,
            description: str,
            icon: str,
            category: AchievementCategory,
        ) -> None:
            if achievement_id in known_ids:
                return
            known_ids.add(achievement_id)
            unlocked.append(
                Achievement(
                    id=achievement_id,
                    title=title,
                    description=description,
                    icon=icon,
                    unlocked_at=unlocked_at,
                    category=category,
                )
            )

        if len(all_sessions) == 1:
            unlock(
                "first_session",
                "First Steps",
                "Completed your first practice session!",
                "🎯",
                AchievementCategory.PRACTICE,
            )

        if latest_session.feedback.overall_score >= PERFECT_SCORE:
            unlock(
                "perfect_score",
                "Excellence",
                f"Achieved a score of {PERFECT_SCORE}+ in a session!",
                "⭐",
                AchievementCategory.SKILL,
            )

        for milestone in SESSION_MILESTONES:
            if len(all_sessions) >= milestone:
                unlock(
                    f"sessions_{milestone}",
                    f"{milestone} Sessions",
                    f"Completed {milestone} practice sessions!",
                    "🏆" if milestone >= 50 else "🎖️",
                    AchievementCategory.PRACTICE,
                )

        if snapshot is None:
            snapshot = self.calculate_progress_data(all_sessions)

        if snapshot.overall_progress.improvement >= GREAT_IMPROVEMENT:
            unlock(
                "great_improvement",
                "Rising Star",
                f"Improved your average score by {GREAT_IMPROVEMENT}%!",
                "📈",
                AchievementCategory.IMPROVEMENT,
            )

        for milestone in STREAK_MILESTONES:
            if snapshot.streaks.current >= milestone:
                unlock(
                    f"streak_{milestone}",
                    f"{milestone}-Day Streak",
                    f"Practiced {milestone} days in a row!",
                    "🔥",
                    AchievementCategory.STREAK,
                )

        if unlocked:
            self._write_achievements(existing + unlocked)
            logger.info(f"Unlocked achievements: {', '.join(a.id for a in unlocked)}")
        return unlocked

    def get_achievements(self) -> List[Achievement]:
        """Get all unlocked achievements, in unlock order."""
        raw = self.store.get(self.ACHIEVEMENTS_KEY)
        if not raw:
            return []

        try:
            items = json.loads(raw)
            achievements = [Achievement.model_validate(item) for item in items]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error(f"Failed to load achievements: {e}")
            return []

        seen = set()
        unique = []
        for achievement in achievements:
            if achievement.id not in seen:
                seen.add(achievement.id)
                unique.append(achievement)
        return unique

    def _write_achievements(self, achievements: List[Achievement]) -> None:
        payload = [a.model_dump(mode="json", by_alias=True) for a in achievements]
        self.store.set(self.ACHIEVEMENTS_KEY, json.dumps(payload))

    # ===========================================
    # Maintenance
    # ===========================================

    def clear_all_data(self) -> None:
        """Clear all progress data."""
        self.store.remove(self.STORAGE_KEY)
        self.store.remove(self.ACHIEVEMENTS_KEY)
        self.store.remove(self.USER_PROGRESS_KEY)
        logger.info("All progress data cleared")

    def clear_test_data(self) -> int:
        """
        Remove obvious test sessions and keep real ones.

        Returns:
            Number of sessions remaining
        """
        sessions = self.get_all_sessions()
        real_sessions = [s for s in sessions if self._is_real_session(s)]

        self._write_sessions(real_sessions)
        if real_sessions:
            self.update_progress_data(real_sessions)
        else:
            self.store.remove(self.USER_PROGRESS_KEY)

        logger.info(f"Session filtering complete: {len(sessions)} -> {len(real_sessions)}")
        return len(real_sessions)

    @staticmethod
    def _is_real_session(session: Session) -> bool:
        transcript = session.transcript or ""
        reason = None
        if len(transcript) <= 3:
            reason = "invalid transcript"
        elif session.duration <= 10:
            reason = "too short duration"
        elif "this is a test" in transcript.lower():
            reason = "contains test content"
        elif not session.id or "test" in session.id.lower():
            reason = "invalid ID"

        if reason:
            logger.debug(f"Filtering out session {session.id}: {reason}")
            return False
        return True

    def get_filler_word_trend(self, window: int = COMPARISON_WINDOW) -> Dict[str, float]:
        """
        Filler words per minute, last ``window`` sessions vs the ones before.

        Fewer filler words is better, so a drop gives a positive improvement.
        """
        sessions = self.get_all_sessions()
        if len(sessions) < 2:
            return {"current": 0, "previous": 0, "improvement": 0}

        recent = sessions[-window:]
        previous = sessions[-2 * window : -window]

        current_avg = mean([s.feedback.filler_words.frequency for s in recent])
        previous_avg = (
            mean([s.feedback.filler_words.frequency for s in previous])
            if previous
            else current_avg
        )
        improvement = (
            round_half_up((previous_avg - current_avg) / previous_avg * 100)
            if previous_avg > 0
            else 0
        )

        return {
            "current": round_half_up(current_avg, 1),
            "previous": round_half_up(previous_avg, 1),
            "improvement": improvement,
        }


def as_local_naive(moment: datetime) -> datetime:
    """Local naive datetime, so aware and naive timestamps compare."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


# Global service instance (singleton pattern)
_progress_service: Optional[ProgressService] = None


def get_progress_service() -> ProgressService:
    """Get or create the global progress service instance."""
    global _progress_service
    if _progress_service is None:
        _progress_service = ProgressService(create_store(settings))
    return _progress_service
