"""
Speak Practice Backend

Backend for an English speaking practice application featuring:
- Scenario-based conversation with a hosted Gemini model
- Structured feedback reports for completed sessions
- Session history with streaks, skill trends and achievements
- A UI-agnostic practice session controller and API client
"""

__version__ = "0.1.0"
__app_name__ = "speak-practice"
