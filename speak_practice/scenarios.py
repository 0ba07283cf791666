"""Catalog of practice scenarios and lookup helpers."""

import random
from typing import Any, Dict, List, Optional

from speak_practice.models import ProficiencyLevel, Scenario, ScenarioCategory

DEFAULT_CATEGORY = ScenarioCategory.FREE_TOPIC.value
DEFAULT_TITLE = "General practice"

SCENARIOS: List[Scenario] = [
    Scenario(
        id="free_topic_01",
        title="Free Topic",
        description="Talk about any topic you like for two minutes, for example a favorite movie or why fitness matters.",
        category=ScenarioCategory.FREE_TOPIC,
        difficulty=ProficiencyLevel.INTERMEDIATE,
        duration=2,
        tags=["free choice", "personal expression", "creativity", "spontaneous"],
        prompt="Pick a topic you care about and talk about it naturally.",
        context=(
            "Open conversation on a topic chosen by the learner. The partner listens "
            "and keeps the conversation going with follow-up questions about hobbies, "
            "travel, films, current events or anything else the learner brings up."
        ),
    ),
    Scenario(
        id="presentation_01",
        title="Presentation Practice",
        description="Explain a concept or project as if presenting it in class.",
        category=ScenarioCategory.PRESENTATION,
        difficulty=ProficiencyLevel.INTERMEDIATE,
        duration=3,
        tags=["academic", "explanation", "public speaking", "education"],
        prompt="Give your topic as a short class presentation.",
        context=(
            "The learner presents to a professor in an academic setting. The professor "
            "asks clarifying questions and requests elaboration. A clear introduction, "
            "main points and conclusion are expected."
        ),
    ),
    Scenario(
        id="job_interview_01",
        title="Interview Simulation",
        description="Mock HR round with common questions such as 'Tell me about yourself'.",
        category=ScenarioCategory.JOB_INTERVIEW,
        difficulty=ProficiencyLevel.INTERMEDIATE,
        duration=3,
        tags=["interview", "professional", "career", "HR questions"],
        prompt="You are in a professional job interview.",
        context=(
            "A hiring manager asks typical interview questions about background, "
            "strengths, weaknesses and motivation, with follow-ups based on the answers."
        ),
    ),
    Scenario(
        id="storytelling_01",
        title="Storytelling & Personal Expression",
        description="Narrate a personal story or incident with clarity and emotion.",
        category=ScenarioCategory.STORYTELLING,
        difficulty=ProficiencyLevel.INTERMEDIATE,
        duration=3,
        tags=["storytelling", "personal experience", "emotion", "narrative"],
        prompt="Share a personal story or a meaningful experience.",
        context=(
            "The learner tells a story that mattered to them. The listener shows "
            "interest and asks about details, feelings and the outcome."
        ),
    ),
    Scenario(
        id="networking_01",
        title="Networking Conversation",
        description="Practice small talk and introductions with a peer or professional.",
        category=ScenarioCategory.NETWORKING,
        difficulty=ProficiencyLevel.INTERMEDIATE,
        duration=3,
        tags=["networking", "small talk", "professional", "introductions", "social skills"],
        prompt="You are at a networking event. Make connections through small talk.",
        context=(
            "A professional networking event or conference. The partner is a friendly "
            "professional interested in getting to know the learner."
        ),
    ),
    Scenario(
        id="group_discussion_01",
        title="Group Discussion Simulation",
        description="The partner plays two or three participants while you argue your points.",
        category=ScenarioCategory.GROUP_DISCUSSION,
        difficulty=ProficiencyLevel.ADVANCED,
        duration=4,
        tags=["debate", "discussion", "argumentation", "group dynamics", "critical thinking"],
        prompt="Take part in a group discussion and defend your viewpoint.",
        context=(
            "A discussion with several participants who bring different perspectives "
            "and challenge the learner's position."
        ),
    ),
    Scenario(
        id="realistic_roleplay_01",
        title="Realistic Roleplay",
        description="Paste a job description or topic to get tailored questions and replies.",
        category=ScenarioCategory.REALISTIC_ROLEPLAY,
        difficulty=ProficiencyLevel.INTERMEDIATE,
        duration=4,
        tags=["roleplay", "customizable", "adaptive", "tailored", "job-specific", "topic-based"],
        prompt="Describe the situation you want to practice and the partner adapts its role.",
        context=(
            "The learner provides a job description, topic or situation. The partner "
            "becomes an interviewer, friend, customer, colleague or whatever role fits."
        ),
        is_customizable=True,
        supported_roles=[
            "interviewer",
            "friend",
            "colleague",
            "customer",
            "mentor",
            "peer",
            "expert",
            "casual_conversation_partner",
        ],
    ),
]


def get_scenario_by_id(scenario_id: str) -> Optional[Scenario]:
    return next((s for s in SCENARIOS if s.id == scenario_id), None)


def get_scenarios_by_category(category: str) -> List[Scenario]:
    return [s for s in SCENARIOS if s.category.value == category]


def get_scenarios_by_difficulty(difficulty: str) -> List[Scenario]:
    return [s for s in SCENARIOS if s.difficulty.value == difficulty]


def search_scenarios(query: str) -> List[Scenario]:
    """Case-insensitive search over title, description and tags."""
    needle = query.lower()
    return [
        s
        for s in SCENARIOS
        if needle in s.title.lower()
        or needle in s.description.lower()
        or any(needle in tag.lower() for tag in s.tags)
    ]


def get_random_scenario(difficulty: Optional[str] = None) -> Optional[Scenario]:
    pool = get_scenarios_by_difficulty(difficulty) if difficulty else SCENARIOS
    return random.choice(pool) if pool else None


def safe_scenario(raw: Any) -> Dict[str, str]:
    """
    Tolerate a missing or partial scenario payload from a client.

    Empty strings count as missing, like absent keys.

    Returns:
        Dictionary with category, title and context
    """
    if isinstance(raw, Scenario):
        raw = raw.model_dump(mode="json")
    if not isinstance(raw, dict):
        raw = {}
    return {
        "category": str(raw.get("category") or DEFAULT_CATEGORY),
        "title": str(raw.get("title") or DEFAULT_TITLE),
        "context": str(raw.get("context") or ""),
    }
