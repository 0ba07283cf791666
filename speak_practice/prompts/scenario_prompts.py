"""
Scenario prompts for the Speak Practice conversation partner.

This module contains all prompts sent to the hosted model for:
1. Opening a practice conversation
2. Continuing a conversation turn
3. Post-session feedback reports
"""

from typing import Any, Dict, List, Optional

from speak_practice.models import ScenarioCategory

# Role the partner plays when opening a session, per scenario category
OPENING_ROLES = {
    ScenarioCategory.JOB_INTERVIEW.value: (
        "You are an HR interviewer meeting a candidate. Greet them politely and "
        'invite them to start with "Tell me about yourself."'
    ),
    ScenarioCategory.PRESENTATION.value: (
        "You are a university professor. Welcome the student and ask them to "
        "introduce the topic of their presentation."
    ),
    ScenarioCategory.FREE_TOPIC.value: (
        "You are a friendly conversation partner. Greet the student and ask which "
        "topic they would like to talk about today."
    ),
}

# Standing instructions for ongoing turns, per scenario category
TURN_ROLES = {
    ScenarioCategory.JOB_INTERVIEW.value: """You are running a realistic job interview.
- Ask one interview question at a time and follow up on the candidate's answers
- Cover background, motivation, strengths and weaknesses, difficult situations and goals
- If the candidate pastes a job description, interview them for that role
- Keep a professional but friendly tone""",
}

GENERIC_ROLE = "You are a helpful conversation partner practicing English with a student."


def _scenario_header(scenario: Dict[str, str]) -> str:
    return f"Scenario: {scenario['title']}\nContext: {scenario['context']}"


def get_opening_prompt(scenario: Dict[str, str]) -> str:
    """
    Generate the prompt that opens a practice conversation.

    Args:
        scenario: Sanitized scenario with category, title and context

    Returns:
        The opening prompt for the model
    """
    role = OPENING_ROLES.get(scenario["category"], GENERIC_ROLE)

    return f"""{role}

{_scenario_header(scenario)}

The student has just said: "Hello, I'm ready to start practicing."

Open the conversation in a way that suits the scenario. Reply with one or two short, welcoming sentences."""


def format_history(history: List[Dict[str, Any]]) -> str:
    """Render prior turns as 'Student:' / 'You:' lines."""
    lines = []
    for message in history:
        if not isinstance(message, dict):
            continue
        speaker = "Student" if message.get("role") == "user" else "You"
        lines.append(f"{speaker}: {message.get('content', '')}")
    return "\n".join(lines)


def get_response_prompt(
    scenario: Dict[str, str], user_message: str, history: List[Dict[str, Any]]
) -> str:
    """
    Generate the prompt for the partner's next turn.

    Args:
        scenario: Sanitized scenario with category, title and context
        user_message: What the student just said
        history: Previous turns as role/content dictionaries

    Returns:
        The turn prompt for the model
    """
    role = TURN_ROLES.get(scenario["category"], GENERIC_ROLE)

    return f"""{role}

{_scenario_header(scenario)}

Conversation so far:
{format_history(history)}

The student just said: "{user_message}"

How to reply:
- One or two natural, conversational sentences
- Ask a follow-up question that keeps the student talking
- Match the student's level and stay in your role
- Be encouraging, and help them continue if they get stuck

Your reply:"""


def get_feedback_prompt(
    scenario: Dict[str, str],
    transcript: str,
    audio_analysis: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Generate the prompt for a post-session feedback report.

    Args:
        scenario: Sanitized scenario with category, title and context
        transcript: Everything the student said during the session
        audio_analysis: Optional duration / speaking rate / pause metrics

    Returns:
        The feedback prompt for the model
    """
    audio_line = ""
    if audio_analysis:
        audio_line = (
            f"Audio metrics: duration {audio_analysis.get('duration', 0)}ms, "
            f"speaking rate {audio_analysis.get('speakingRate', 0)} WPM, "
            f"pauses {audio_analysis.get('pauseCount', 0)}\n"
        )

    return f"""Evaluate this English speaking practice session.

Scenario: {scenario['title']} ({scenario['category']})
Student transcript: "{transcript}"
{audio_line}
Score every section from 0 to 10 and answer with a single JSON object and nothing else:

{{
    "overallScore": <0-10>,
    "grammarFeedback": {{"score": <0-10>, "errors": [<string>], "correctionsCount": <int>, "sentenceStructure": <string>}},
    "vocabularyFeedback": {{"score": <0-10>, "suggestions": [<string>], "advancedWordsUsed": [<string>], "wordRepetition": [<string>]}},
    "pronunciationFeedback": {{"score": <0-10>, "clarity": <string>, "issues": [<string>], "improvementTips": [<string>]}},
    "fluencyFeedback": {{"score": <0-10>, "flow": <string>, "pauseCount": <int>, "fillerWords": [<string>], "improvementTips": [<string>]}},
    "toneFeedback": {{"score": <0-10>, "energy": "very_low|low|moderate|high|very_high", "confidence": "very_hesitant|hesitant|neutral|confident|very_confident", "improvementTips": [<string>]}},
    "conversationFeedback": {{"score": <0-10>, "engagement": <string>, "responseQuality": <string>, "improvementTips": [<string>]}},
    "strengths": [<string>],
    "areasForImprovement": [<string>],
    "practiceSuggestions": [<string>]
}}

Pronunciation and tone can only be inferred from the transcript and metrics; say so briefly when unsure."""
