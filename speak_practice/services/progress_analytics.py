"""
Progress Analytics for dashboard views.

Read-only aggregations over the progress service:
- Insights (improvement, streaks, skills, milestones)
- Skill trend series and session comparisons
- Practice time, achievement progress and weekly summaries
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from speak_practice.models import SKILLS, Session, SkillTrend
from speak_practice.services.progress_service import (
    COMPARISON_WINDOW,
    GREAT_IMPROVEMENT,
    HISTORY_LENGTH,
    PERFECT_SCORE,
    SESSION_MILESTONES,
    STREAK_MILESTONES,
    TREND_THRESHOLD,
    ProgressService,
    as_local_naive,
    local_date,
    round_half_up,
)

MAX_INSIGHTS = 6
# first session, perfect score, great improvement, session and streak milestones
TOTAL_ACHIEVEMENTS = 3 + len(SESSION_MILESTONES) + len(STREAK_MILESTONES)


@dataclass
class Insight:
    """A single dashboard insight."""

    type: str  # improvement, warning, milestone, suggestion
    title: str
    description: str
    value: Optional[float] = None
    trend: Optional[str] = None  # up, down

    def to_dict(self) -> dict:
        """Convert insight to dictionary for JSON serialization."""
        data = {"type": self.type, "title": self.title, "description": self.description}
        if self.value is not None:
            data["value"] = self.value
        if self.trend is not None:
            data["trend"] = self.trend
        return data


def capitalize_skill(skill: str) -> str:
    return skill[:1].upper() + skill[1:]


def calculate_average(sessions: List[Session], get_value: Callable[[Session], float]) -> float:
    """Average rounded to one decimal, 0 for an empty list."""
    if not sessions:
        return 0
    return round_half_up(sum(get_value(s) for s in sessions) / len(sessions), 1)


class ProgressAnalytics:
    """Dashboard analytics computed from the progress service."""

    def __init__(self, progress_service: ProgressService):
        self.progress = progress_service

    def now(self) -> datetime:
        return as_local_naive(self.progress.now())

    def get_progress_insights(self) -> List[Dict]:
        """Up to six insights for the dashboard."""
        sessions = self.progress.get_all_sessions()
        if not sessions:
            return [
                Insight(
                    type="suggestion",
                    title="Start Your Journey",
                    description="Complete your first practice session to begin tracking your progress!",
                ).to_dict()
            ]

        snapshot = self.progress.calculate_progress_data(sessions)
        improvement = snapshot.overall_progress.improvement
        insights: List[Insight] = []

        if improvement > 0:
            insights.append(
                Insight(
                    type="improvement",
                    title="Great Progress!",
                    description=f"Your average score has improved by {improvement}% over recent sessions.",
                    value=improvement,
                    trend="up",
                )
            )
        elif improvement < -10:
            insights.append(
                Insight(
                    type="warning",
                    title="Room for Improvement",
                    description=f"Your scores have declined by {abs(improvement)}%. Consider focusing on specific skills.",
                    value=abs(improvement),
                    trend="down",
                )
            )

        filler_trend = self.progress.get_filler_word_trend()
        if filler_trend["improvement"] > 20:
            insights.append(
                Insight(
                    type="improvement",
                    title="Filler Words Reduced!",
                    description=f"You've reduced filler words by {filler_trend['improvement']}% over the last {COMPARISON_WINDOW} sessions.",
                    value=filler_trend["improvement"],
                    trend="up",
                )
            )

        streak = snapshot.streaks.current
        if streak >= 7:
            insights.append(
                Insight(
                    type="milestone",
                    title="Streak Master!",
                    description=f"Amazing! You're on a {streak}-day practice streak.",
                    value=streak,
                )
            )
        elif streak == 0:
            insights.append(
                Insight(
                    type="suggestion",
                    title="Build Your Streak",
                    description="Start a practice streak today! Consistent practice leads to faster improvement.",
                )
            )

        skills = [(name, getattr(snapshot.skill_progress, name)) for name in SKILLS]
        improving = [item for item in skills if item[1].trend == SkillTrend.IMPROVING]
        declining = [item for item in skills if item[1].trend == SkillTrend.DECLINING]

        if improving:
            name, metric = max(improving, key=lambda item: item[1].improvement)
            insights.append(
                Insight(
                    type="improvement",
                    title=f"{capitalize_skill(name)} is Improving!",
                    description=f"Your {name} has improved by {metric.improvement}% recently.",
                    value=metric.improvement,
                    trend="up",
                )
            )

        if declining:
            name, _ = min(declining, key=lambda item: item[1].improvement)
            insights.append(
                Insight(
                    type="suggestion",
                    title=f"Focus on {capitalize_skill(name)}",
                    description=f"Your {name} could use some attention. Try practicing scenarios that emphasize this skill.",
                )
            )

        total = snapshot.overall_progress.total_sessions
        next_milestone = next((m for m in SESSION_MILESTONES if m > total), None)
        if next_milestone is not None:
            remaining = next_milestone - total
            if remaining <= 3:
                plural = "s" if remaining > 1 else ""
                insights.append(
                    Insight(
                        type="milestone",
                        title="Milestone Approaching!",
                        description=f"You're only {remaining} session{plural} away from reaching {next_milestone} total sessions!",
                        value=remaining,
                    )
                )

        return [insight.to_dict() for insight in insights[:MAX_INSIGHTS]]

    def get_skill_trend_data(self) -> List[Dict]:
        """Per-skill score series over the last ten sessions."""
        sessions = self.progress.get_all_sessions()
        if not sessions:
            return []

        skill_progress = self.progress.calculate_skill_progress(sessions)
        recent = sessions[-HISTORY_LENGTH:]

        trends = []
        for name in SKILLS:
            metric = getattr(skill_progress, name)
            trends.append(
                {
                    "skill": capitalize_skill(name),
                    "sessions": [
                        {
                            "session": index + 1,
                            "score": session.feedback.skill_score(name),
                            "date": local_date(session.start_time).isoformat(),
                        }
                        for index, session in enumerate(recent)
                    ],
                    "currentScore": metric.current_score,
                    "trend": metric.trend.value,
                    "improvement": metric.improvement,
                }
            )
        return trends

    def get_session_comparison(self) -> List[Dict]:
        """Last five sessions against the five before, per metric."""
        sessions = self.progress.get_all_sessions()
        if len(sessions) < 2:
            return []

        last = sessions[-COMPARISON_WINDOW:]
        previous = sessions[-2 * COMPARISON_WINDOW : -COMPARISON_WINDOW]

        metrics = [
            ("Overall Score", lambda s: s.feedback.overall_score, False),
            ("Grammar", lambda s: s.feedback.grammar_feedback.score, False),
            ("Vocabulary", lambda s: s.feedback.vocabulary_feedback.score, False),
            ("Fluency", lambda s: s.feedback.fluency_feedback.score, False),
            ("Filler Words/min", lambda s: s.feedback.filler_words.frequency, True),
        ]

        comparison = []
        for label, get_value, lower_is_better in metrics:
            current = calculate_average(last, get_value)
            before = calculate_average(previous, get_value)
            change_percent = (current - before) / before * 100 if before > 0 else 0
            gain = -change_percent if lower_is_better else change_percent

            change_type = "stable"
            if gain > TREND_THRESHOLD:
                change_type = "improvement"
            elif gain < -TREND_THRESHOLD:
                change_type = "decline"

            comparison.append(
                {
                    "metric": label,
                    "current": current,
                    "previous": before,
                    "change": round_half_up(change_percent, 1),
                    "changeType": change_type,
                }
            )
        return comparison

    def get_practice_time_analysis(self) -> Dict:
        """Practice time totals and per-day activity over the last two weeks."""
        sessions = self.progress.get_all_sessions()
        if not sessions:
            return {
                "totalMinutes": 0,
                "averageSessionLength": 0,
                "longestSession": 0,
                "recentActivity": [],
            }

        total_minutes = round_half_up(sum(s.duration for s in sessions) / 60)
        average_length = round_half_up(total_minutes / len(sessions), 1)
        longest = round_half_up(max(s.duration for s in sessions) / 60)

        cutoff = self.now() - timedelta(days=14)
        activity: Dict = {}
        for session in sessions:
            if as_local_naive(session.start_time) < cutoff:
                continue
            day = local_date(session.start_time)
            entry = activity.setdefault(day, {"minutes": 0, "sessions": 0})
            entry["minutes"] += round_half_up(session.duration / 60)
            entry["sessions"] += 1

        recent_activity = [
            {"date": day.isoformat(), **entry} for day, entry in sorted(activity.items())
        ][-7:]

        return {
            "totalMinutes": total_minutes,
            "averageSessionLength": average_length,
            "longestSession": longest,
            "recentActivity": recent_activity,
        }

    def get_achievement_progress(self) -> Dict:
        """Unlocked achievements and progress towards the next ones."""
        achievements = self.progress.get_achievements()
        sessions = self.progress.get_all_sessions()
        unlocked_ids = {a.id for a in achievements}
        now = self.now()

        recent = sorted(
            (a for a in achievements if now - as_local_naive(a.unlocked_at) <= timedelta(days=7)),
            key=lambda a: as_local_naive(a.unlocked_at),
            reverse=True,
        )[:3]

        next_achievements = []
        count = len(sessions)
        next_milestone = next((m for m in SESSION_MILESTONES if m > count), None)
        if next_milestone is not None:
            next_achievements.append(
                {
                    "title": f"{next_milestone} Sessions",
                    "description": f"Complete {next_milestone} practice sessions",
                    "progress": round_half_up(count / next_milestone * 100),
                }
            )

        if "perfect_score" not in unlocked_ids:
            highest = max((s.feedback.overall_score for s in sessions), default=0)
            next_achievements.append(
                {
                    "title": "Excellence",
                    "description": f"Achieve a score of {PERFECT_SCORE}+",
                    "progress": min(100, round_half_up(highest / PERFECT_SCORE * 100)),
                }
            )

        if "great_improvement" not in unlocked_ids and sessions:
            improvement = max(0, self.progress.calculate_improvement(sessions))
            next_achievements.append(
                {
                    "title": "Rising Star",
                    "description": f"Improve average score by {GREAT_IMPROVEMENT}%",
                    "progress": min(100, round_half_up(improvement / GREAT_IMPROVEMENT * 100)),
                }
            )

        return {
            "unlockedCount": len(achievements),
            "totalAvailable": TOTAL_ACHIEVEMENTS,
            "recentAchievements": [
                {"title": a.title, "unlockedAt": a.unlocked_at.isoformat()} for a in recent
            ],
            "nextAchievements": next_achievements[:3],
        }

    def get_weekly_progress_summary(self) -> Dict:
        """This week's sessions, score and practice time against last week."""
        sessions = self.progress.get_all_sessions()
        now = self.now()
        one_week_ago = now - timedelta(days=7)
        two_weeks_ago = now - timedelta(days=14)

        this_week = [s for s in sessions if as_local_naive(s.start_time) >= one_week_ago]
        last_week = [
            s for s in sessions if two_weeks_ago <= as_local_naive(s.start_time) < one_week_ago
        ]

        def average_score(items: List[Session]) -> float:
            if not items:
                return 0
            return sum(s.feedback.overall_score for s in items) / len(items)

        def practice_minutes(items: List[Session]) -> int:
            return round_half_up(sum(s.duration for s in items) / 60)

        this_avg = average_score(this_week)
        last_avg = average_score(last_week)
        this_minutes = practice_minutes(this_week)

        return {
            "sessionsThisWeek": len(this_week),
            "averageScoreThisWeek": round_half_up(this_avg, 1),
            "totalPracticeTimeThisWeek": this_minutes,
            "comparisonWithLastWeek": {
                "sessions": len(this_week) - len(last_week),
                "score": round_half_up(this_avg - last_avg, 1),
                "time": this_minutes - practice_minutes(last_week),
            },
        }
