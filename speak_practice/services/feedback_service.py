"""
Feedback Service for session reports and transcript metrics.

This service turns the model's feedback output into a FeedbackReport:
- Strips code fences and extracts the JSON object
- Clamps every score to 0-10
- Coerces list and text fields, filling defaults for missing sections
- Computes filler-word and speaking-rate metrics from the transcript
"""

import json
import re
import time
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from speak_practice.models import (
    ConfidenceLevel,
    ConversationFeedback,
    EnergyLevel,
    FeedbackReport,
    FillerWordAnalysis,
    FillerWordCount,
    FluencyFeedback,
    GrammarFeedback,
    PronunciationFeedback,
    ToneFeedback,
    VocabularyFeedback,
)

DEFAULT_SCORE = 5
MIN_SCORE = 0
MAX_SCORE = 10
MINIMAL_FEEDBACK = {"overallScore": DEFAULT_SCORE}

FILLER_WORDS = (
    "you know",
    "i mean",
    "kind of",
    "sort of",
    "um",
    "uh",
    "er",
    "ah",
    "like",
    "basically",
    "actually",
    "literally",
    "so",
)

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")
_WORD_RE = re.compile(r"[A-Za-z']+")


class FeedbackService:
    """
    Service for parsing and normalizing feedback reports.

    Pure functions over the model output and transcript; no model calls.
    """

    def parse_feedback_json(self, raw: str) -> Dict[str, Any]:
        """
        Parse the model's feedback text into a dictionary.

        Falls back to a minimal payload when the text is not a JSON object.
        """
        clean = _FENCE_RE.sub("", raw or "").strip()
        try:
            data = json.loads(self._extract_json(clean))
        except json.JSONDecodeError as e:
            logger.error(f"Feedback JSON parse failed, returning minimal payload: {e}")
            logger.debug(f"Raw response: {raw}")
            return dict(MINIMAL_FEEDBACK)

        if not isinstance(data, dict):
            logger.error("Feedback JSON is not an object, returning minimal payload")
            return dict(MINIMAL_FEEDBACK)
        return data

    def _extract_json(self, text: str) -> str:
        """Extract the first balanced JSON object from text."""
        start = text.find("{")
        if start < 0:
            return text

        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            char = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        return text[start:]

    def validate_score(self, score: Any) -> float:
        """Validate and normalize a score to 0-10."""
        if isinstance(score, bool):
            return DEFAULT_SCORE
        try:
            value = float(score)
        except (ValueError, TypeError):
            return DEFAULT_SCORE
        if value != value:  # NaN
            return DEFAULT_SCORE
        value = max(float(MIN_SCORE), min(float(MAX_SCORE), value))
        return int(value) if value.is_integer() else round(value, 1)

    def build_feedback_report(
        self,
        raw: Dict[str, Any],
        transcript: str = "",
        duration_seconds: float = 0,
        session_id: str = "",
    ) -> FeedbackReport:
        """
        Normalize a parsed model payload into a FeedbackReport.

        Args:
            raw: Parsed feedback JSON (camelCase keys)
            transcript: The session transcript, used for filler-word metrics
            duration_seconds: Session length used for per-minute rates
            session_id: Session the report belongs to, if already known

        Returns:
            An immutable FeedbackReport
        """
        if not isinstance(raw, dict):
            raw = {}

        grammar = self._section(raw, "grammarFeedback")
        vocabulary = self._section(raw, "vocabularyFeedback")
        pronunciation = self._section(raw, "pronunciationFeedback")
        fluency = self._section(raw, "fluencyFeedback")
        tone = self._section(raw, "toneFeedback")
        conversation = self._section(raw, "conversationFeedback")

        return FeedbackReport(
            id=f"feedback_{int(time.time() * 1000)}",
            session_id=session_id,
            overall_score=self.validate_score(raw.get("overallScore")),
            grammar_feedback=GrammarFeedback(
                score=self.validate_score(grammar.get("score")),
                errors=self._string_list(grammar.get("errors")),
                corrections_count=self._count(grammar.get("correctionsCount")),
                sentence_structure=self._text(
                    grammar.get("sentenceStructure"), "Good sentence variety"
                ),
            ),
            vocabulary_feedback=VocabularyFeedback(
                score=self.validate_score(vocabulary.get("score")),
                suggestions=self._string_list(vocabulary.get("suggestions")),
                advanced_words_used=self._string_list(vocabulary.get("advancedWordsUsed")),
                word_repetition=self._string_list(vocabulary.get("wordRepetition")),
            ),
            pronunciation_feedback=PronunciationFeedback(
                score=self.validate_score(pronunciation.get("score")),
                clarity=self._text(pronunciation.get("clarity"), "Clear pronunciation"),
                issues=self._string_list(pronunciation.get("issues")),
                improvement_tips=self._string_list(pronunciation.get("improvementTips")),
            ),
            fluency_feedback=FluencyFeedback(
                score=self.validate_score(fluency.get("score")),
                flow=self._text(fluency.get("flow"), "Good flow"),
                pause_count=self._count(fluency.get("pauseCount")),
                filler_words=self._string_list(fluency.get("fillerWords")),
                improvement_tips=self._string_list(fluency.get("improvementTips")),
            ),
            tone_feedback=ToneFeedback(
                score=self.validate_score(tone.get("score")),
                energy=self._enum(tone.get("energy"), EnergyLevel, EnergyLevel.MODERATE),
                confidence=self._enum(
                    tone.get("confidence"), ConfidenceLevel, ConfidenceLevel.NEUTRAL
                ),
                improvement_tips=self._string_list(tone.get("improvementTips")),
            ),
            conversation_feedback=ConversationFeedback(
                score=self.validate_score(conversation.get("score")),
                engagement=self._text(conversation.get("engagement"), "Good engagement"),
                response_quality=self._text(
                    conversation.get("responseQuality"), "Good responses"
                ),
                improvement_tips=self._string_list(conversation.get("improvementTips")),
            ),
            filler_words=self.analyze_filler_words(transcript, duration_seconds),
            strengths=self._string_list(raw.get("strengths")),
            areas_for_improvement=self._string_list(raw.get("areasForImprovement")),
            practice_suggestions=self._string_list(raw.get("practiceSuggestions")),
            created_at=datetime.now(),
        )

    def analyze_filler_words(
        self, transcript: str, duration_seconds: float = 0
    ) -> FillerWordAnalysis:
        """Count filler words and phrases, with a per-minute frequency."""
        text = " ".join(_WORD_RE.findall((transcript or "").lower()))
        counts: Counter = Counter()

        # Multi-word phrases are consumed first so their words are not recounted
        for filler in FILLER_WORDS:
            pattern = re.compile(rf"\b{re.escape(filler)}\b")
            found = len(pattern.findall(text))
            if found:
                counts[filler] = found
                text = pattern.sub(" ", text)

        total = sum(counts.values())
        minutes = duration_seconds / 60 if duration_seconds and duration_seconds > 0 else 0
        frequency = round(total / minutes, 1) if minutes else 0.0

        types = [
            FillerWordCount(word=word, count=count)
            for word, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]
        return FillerWordAnalysis(total_count=total, frequency=frequency, types=types)

    def analyze_speech(self, transcript: str, duration_ms: float) -> Dict[str, Any]:
        """
        Basic speech metrics for the feedback request.

        Pause detection needs the raw audio, so the pause count is always 0.
        """
        word_count = len((transcript or "").split())
        minutes = duration_ms / 60000 if duration_ms and duration_ms > 0 else 0
        speaking_rate = int(word_count / minutes + 0.5) if minutes else 0
        return {
            "duration": int(duration_ms or 0),
            "wordCount": word_count,
            "speakingRate": speaking_rate,
            "pauseCount": 0,
        }

    @staticmethod
    def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
        section = raw.get(key)
        return section if isinstance(section, dict) else {}

    @staticmethod
    def _string_list(value: Any) -> List[str]:
        if value is None or value == "":
            return []
        if not isinstance(value, list):
            value = [value]
        return [str(item) for item in value if item is not None and str(item).strip()]

    @staticmethod
    def _text(value: Any, default: str) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return default

    @staticmethod
    def _count(value: Any) -> int:
        if isinstance(value, bool):
            return 0
        try:
            return max(0, int(value))
        except (ValueError, TypeError):
            return 0

    @staticmethod
    def _enum(value: Any, enum_cls, default):
        try:
            return enum_cls(str(value).lower())
        except ValueError:
            return default


# Global service instance (singleton pattern)
_feedback_service: Optional[FeedbackService] = None


def get_feedback_service() -> FeedbackService:
    """Get or create the global feedback service instance."""
    global _feedback_service
    if _feedback_service is None:
        _feedback_service = FeedbackService()
    return _feedback_service
