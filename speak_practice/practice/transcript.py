"""Speech-to-text helper: accumulates recognition results into transcripts."""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

RECOGNITION_ERRORS = {
    "no-speech": "No speech detected. Please try speaking again.",
    "audio-capture": "Audio capture failed. Please check your microphone.",
    "not-allowed": "Microphone access denied. Please allow microphone access.",
    "network": "Network error occurred. Please check your connection.",
}


@dataclass
class RecognitionResult:
    """One alternative from a continuous recognizer."""

    text: str
    is_final: bool
    confidence: float = 0.0


ResultLike = Union[RecognitionResult, Tuple[str, bool], Tuple[str, bool, float]]


class TranscriptBuffer:
    """
    Final and interim transcript of a continuous recognizer.

    Final text accumulates across batches; the interim string only reflects
    the latest batch.
    """

    def __init__(self, language: str = "en-US"):
        self.language = language
        self.transcript = ""
        self.interim = ""
        self.confidence = 0.0
        self.error: Optional[str] = None

    def on_results(self, results: Iterable[ResultLike]) -> None:
        final_text = ""
        interim_text = ""
        for result in results:
            if not isinstance(result, RecognitionResult):
                result = RecognitionResult(*result)
            if result.is_final:
                final_text += result.text
                self.confidence = result.confidence
            else:
                interim_text += result.text

        if final_text:
            self.transcript += final_text
        self.interim = interim_text

    def on_error(self, code: str) -> str:
        self.error = RECOGNITION_ERRORS.get(code, f"Speech recognition error: {code}")
        return self.error

    def reset(self) -> None:
        self.transcript = ""
        self.interim = ""
        self.confidence = 0.0
        self.error = None

    def best(self) -> str:
        """Final transcript if any, otherwise whatever is still interim."""
        return self.transcript.strip() or self.interim.strip()
