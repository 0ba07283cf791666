"""
Data model for practice sessions, feedback reports and progress.

All models serialize with camelCase keys so stored records and API payloads
stay compatible with the web frontend. Python attributes are snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SKILLS = ("grammar", "vocabulary", "fluency", "pronunciation", "tone")


class ProficiencyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    NATIVE = "native"


class ScenarioCategory(str, Enum):
    FREE_TOPIC = "free_topic"
    PRESENTATION = "presentation"
    JOB_INTERVIEW = "job_interview"
    STORYTELLING = "storytelling"
    NETWORKING = "networking"
    GROUP_DISCUSSION = "group_discussion"
    REALISTIC_ROLEPLAY = "realistic_roleplay"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EnergyLevel(str, Enum):
    VERY_LOW = "very_low"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class ConfidenceLevel(str, Enum):
    VERY_HESITANT = "very_hesitant"
    HESITANT = "hesitant"
    NEUTRAL = "neutral"
    CONFIDENT = "confident"
    VERY_CONFIDENT = "very_confident"


class AchievementCategory(str, Enum):
    PRACTICE = "practice"
    IMPROVEMENT = "improvement"
    STREAK = "streak"
    SKILL = "skill"


class SkillTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class FrozenModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True
    )


# ===========================================
# Scenarios
# ===========================================


class Scenario(FrozenModel):
    """A practice scenario the learner can pick."""

    id: str
    title: str
    description: str = ""
    category: ScenarioCategory = ScenarioCategory.FREE_TOPIC
    difficulty: ProficiencyLevel = ProficiencyLevel.INTERMEDIATE
    duration: int = 3  # minutes
    tags: List[str] = Field(default_factory=list)
    prompt: str = ""
    context: str = ""
    is_customizable: bool = False
    supported_roles: List[str] = Field(default_factory=list)


# ===========================================
# Feedback
# ===========================================


class GrammarFeedback(FrozenModel):
    score: float = Field(default=5, ge=0, le=10)
    errors: List[str] = Field(default_factory=list)
    corrections_count: int = 0
    sentence_structure: str = "Good sentence variety"


class VocabularyFeedback(FrozenModel):
    score: float = Field(default=5, ge=0, le=10)
    suggestions: List[str] = Field(default_factory=list)
    advanced_words_used: List[str] = Field(default_factory=list)
    word_repetition: List[str] = Field(default_factory=list)


class PronunciationFeedback(FrozenModel):
    score: float = Field(default=5, ge=0, le=10)
    clarity: str = "Clear pronunciation"
    issues: List[str] = Field(default_factory=list)
    improvement_tips: List[str] = Field(default_factory=list)


class FluencyFeedback(FrozenModel):
    score: float = Field(default=5, ge=0, le=10)
    flow: str = "Good flow"
    pause_count: int = 0
    filler_words: List[str] = Field(default_factory=list)
    improvement_tips: List[str] = Field(default_factory=list)


class ToneFeedback(FrozenModel):
    score: float = Field(default=5, ge=0, le=10)
    energy: EnergyLevel = EnergyLevel.MODERATE
    confidence: ConfidenceLevel = ConfidenceLevel.NEUTRAL
    improvement_tips: List[str] = Field(default_factory=list)


class ConversationFeedback(FrozenModel):
    score: float = Field(default=5, ge=0, le=10)
    engagement: str = "Good engagement"
    response_quality: str = "Good responses"
    improvement_tips: List[str] = Field(default_factory=list)


class FillerWordCount(FrozenModel):
    word: str
    count: int


class FillerWordAnalysis(FrozenModel):
    total_count: int = 0
    frequency: float = 0.0  # per minute
    types: List[FillerWordCount] = Field(default_factory=list)


class FeedbackReport(FrozenModel):
    """Structured scoring for one session, produced once by the model."""

    id: str
    session_id: str = ""
    overall_score: float = Field(default=5, ge=0, le=10)
    grammar_feedback: GrammarFeedback = Field(default_factory=GrammarFeedback)
    vocabulary_feedback: VocabularyFeedback = Field(default_factory=VocabularyFeedback)
    pronunciation_feedback: PronunciationFeedback = Field(
        default_factory=PronunciationFeedback
    )
    fluency_feedback: FluencyFeedback = Field(default_factory=FluencyFeedback)
    tone_feedback: ToneFeedback = Field(default_factory=ToneFeedback)
    conversation_feedback: ConversationFeedback = Field(
        default_factory=ConversationFeedback
    )
    filler_words: FillerWordAnalysis = Field(default_factory=FillerWordAnalysis)
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)
    practice_suggestions: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    def skill_score(self, skill: str) -> float:
        """Score of one of the five tracked skills, 0 for unknown names."""
        section = getattr(self, f"{skill}_feedback", None) if skill in SKILLS else None
        return section.score if section is not None else 0


# ===========================================
# Sessions
# ===========================================


class Session(FrozenModel):
    """One completed practice conversation plus its feedback."""

    id: str
    user_id: str = "current_user"
    scenario_id: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = Field(default=0, ge=0)  # seconds
    transcript: str = ""
    ai_response: str = ""
    feedback: FeedbackReport
    status: SessionStatus = SessionStatus.COMPLETED


# ===========================================
# Progress
# ===========================================


class Achievement(FrozenModel):
    id: str
    title: str
    description: str
    icon: str = ""
    unlocked_at: datetime
    category: AchievementCategory


class SkillMetric(CamelModel):
    current_score: float = 0
    improvement: int = 0
    trend: SkillTrend = SkillTrend.STABLE
    last_updated: datetime


class SkillProgress(CamelModel):
    grammar: SkillMetric
    vocabulary: SkillMetric
    fluency: SkillMetric
    pronunciation: SkillMetric
    tone: SkillMetric


class OverallProgress(CamelModel):
    current_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    total_sessions: int = 0
    total_practice_time: int = 0  # minutes
    average_score: float = 0
    improvement: int = 0


class SessionSummary(CamelModel):
    id: str
    date: datetime
    scenario: str
    duration: int
    score: float
    key_improvements: List[str] = Field(default_factory=list)


class StreakData(CamelModel):
    current: int = 0
    longest: int = 0
    last_practice_date: Optional[datetime] = None


class ProgressSnapshot(CamelModel):
    """Aggregate view recomputed from the stored session list."""

    user_id: str = "current_user"
    overall_progress: OverallProgress
    skill_progress: SkillProgress
    session_history: List[SessionSummary] = Field(default_factory=list)
    achievements: List[Achievement] = Field(default_factory=list)
    streaks: StreakData
