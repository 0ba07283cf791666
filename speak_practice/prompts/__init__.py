"""
Prompts module for the Speak Practice conversation partner.

Contains prompts for:
- Opening a scenario conversation
- Continuing a conversation turn
- Feedback report generation
"""

from .scenario_prompts import (
    format_history,
    get_feedback_prompt,
    get_opening_prompt,
    get_response_prompt,
)

__all__ = [
    "get_opening_prompt",
    "get_response_prompt",
    "get_feedback_prompt",
    "format_history",
]
