"""
Practice module: client-side pieces of a practice session.

- AudioCapture: microphone chunk capture and level metering
- TranscriptBuffer: interim/final speech recognition transcripts
- ConversationClient: HTTP client for the conversation API
- PracticeConversation: turn-taking controller for one session
"""

from .audio import AudioCapture, Recording
from .client import ConversationClient, ConversationClientError
from .session import ConversationMessage, PracticeConversation
from .transcript import RecognitionResult, TranscriptBuffer

__all__ = [
    "AudioCapture",
    "Recording",
    "ConversationClient",
    "ConversationClientError",
    "ConversationMessage",
    "PracticeConversation",
    "RecognitionResult",
    "TranscriptBuffer",
]
