"""
Practice session controller.

Coordinates one practice conversation the way the practice screen does:
1. Fetch the partner's greeting
2. Record a turn while recognition results stream in
3. Send the best transcript and collect the partner's reply
4. Hand each reply to the text-to-speech hook
5. On completion, request feedback and store the finished session

State is exposed through plain flags so any front end (CLI, websocket,
GUI) can render it. Every failure sets ``error`` to a static message and
aborts only the current operation.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from loguru import logger

from speak_practice.models import Achievement, Scenario, Session, SessionStatus
from speak_practice.practice.audio import AudioCapture
from speak_practice.practice.client import ConversationClient
from speak_practice.practice.transcript import ResultLike, TranscriptBuffer
from speak_practice.services.feedback_service import get_feedback_service
from speak_practice.services.progress_service import ProgressService

INIT_ERROR = "Failed to initialize conversation. Please try again."
RECORDING_ERROR = "Failed to start recording. Please check your microphone permissions."
NO_SPEECH_ERROR = (
    "No speech detected. Please try speaking again or ensure your microphone is working."
)
PROCESSING_ERROR = "Failed to process recording. Please try again."
RESPONSE_ERROR = "Failed to get AI response. Please try again."
EMPTY_SESSION_ERROR = "No conversation to analyze. Please speak with the AI first."


@dataclass
class ConversationMessage:
    """A single turn in the conversation."""

    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


class PracticeConversation:
    """Turn-taking state for one practice session."""

    def __init__(
        self,
        scenario: Scenario,
        client: ConversationClient,
        progress_service: Optional[ProgressService] = None,
        speak: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], datetime] = datetime.now,
        capture: Optional[AudioCapture] = None,
        recognition_settle_seconds: float = 1.0,
        user_id: str = "current_user",
    ):
        self.scenario = scenario
        self.client = client
        self.progress_service = progress_service
        self.speak = speak
        self._clock = clock
        self.capture = capture or AudioCapture()
        self.transcript = TranscriptBuffer()
        self.recognition_settle_seconds = recognition_settle_seconds
        self.user_id = user_id

        self.messages: List[ConversationMessage] = []
        self.start_time = clock()
        self.turn_count = 0
        self.is_processing = False
        self.is_waiting_for_user = False
        self.error: Optional[str] = None
        self.session: Optional[Session] = None
        self.new_achievements: List[Achievement] = []

    @property
    def is_recording(self) -> bool:
        return self.capture.is_recording

    def _add_message(self, role: str, content: str) -> None:
        self.messages.append(ConversationMessage(role=role, content=content, timestamp=self._clock()))

    async def _speak(self, text: str) -> None:
        if self.speak is None:
            return
        try:
            result = self.speak(text)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Text-to-speech playback failed: {e}")

    async def start(self) -> Optional[str]:
        """Fetch and speak the partner's greeting."""
        self.is_processing = True
        try:
            greeting = await self.client.initialize_conversation(self.scenario)
        except Exception as e:
            logger.error(f"Session initialization failed: {e}")
            self.error = INIT_ERROR
            return None
        finally:
            self.is_processing = False

        self.messages = []
        self._add_message("assistant", greeting)
        self.is_waiting_for_user = True
        await self._speak(greeting)
        return greeting

    def start_recording(self) -> bool:
        """Begin capturing a turn; returns False and sets ``error`` on failure."""
        self.error = None
        self.transcript.reset()
        try:
            self.capture.start()
        except RuntimeError as e:
            logger.error(f"Recording error: {e}")
            self.error = RECORDING_ERROR
            return False
        return True

    def feed_audio(self, chunk: bytes) -> float:
        """Forward a microphone chunk; returns the current input level."""
        return self.capture.feed(chunk)

    def on_recognition_results(self, results: Iterable[ResultLike]) -> None:
        self.transcript.on_results(results)

    def on_recognition_error(self, code: str) -> None:
        self.error = self.transcript.on_error(code)

    async def stop_recording(self) -> Optional[str]:
        """
        Finish the turn and send what was said.

        Returns:
            The partner's reply, or None if nothing was sent
        """
        self.is_processing = True
        try:
            self.capture.stop()
            if self.recognition_settle_seconds > 0:
                await asyncio.sleep(self.recognition_settle_seconds)

            final_transcript = self.transcript.best()
            if not final_transcript:
                self.error = NO_SPEECH_ERROR
                return None

            reply = await self.submit_utterance(final_transcript)
            self.transcript.reset()
            self.capture.clear()
            return reply
        except RuntimeError as e:
            logger.error(f"Recording processing error: {e}")
            self.error = PROCESSING_ERROR
            return None
        finally:
            self.is_processing = False

    async def submit_utterance(self, text: str) -> Optional[str]:
        """
        Send one student turn and record the partner's reply.

        The greeting is not part of the history sent to the API.
        """
        text = text.strip()
        if not text:
            self.error = NO_SPEECH_ERROR
            return None

        self.is_waiting_for_user = False
        self._add_message("user", text)
        history = [{"role": m.role, "content": m.content} for m in self.messages[1:]]

        try:
            reply = await self.client.generate_response(
                self.scenario, text, history, self.turn_count
            )
        except Exception as e:
            logger.error(f"Turn failed: {e}")
            self.error = RESPONSE_ERROR
            self.is_waiting_for_user = True
            return None

        self._add_message("assistant", reply)
        self.turn_count += 1
        self.is_waiting_for_user = True
        await self._speak(reply)
        return reply

    def user_transcript(self) -> str:
        return " ".join(m.content for m in self.messages if m.role == "user")

    async def complete(self) -> Optional[Session]:
        """
        Request feedback for the conversation and build the finished session.

        The session is saved when a progress service is attached.
        """
        self.is_processing = True
        try:
            end_time = self._clock()
            duration_ms = max(0.0, (end_time - self.start_time).total_seconds() * 1000)

            transcript = self.user_transcript()
            if not transcript.strip():
                self.error = EMPTY_SESSION_ERROR
                return None

            analysis = get_feedback_service().analyze_speech(transcript, duration_ms)
            report = await self.client.generate_feedback_report(
                transcript, self.scenario, analysis, duration_seconds=duration_ms / 1000
            )

            session_id = f"session_{int(end_time.timestamp() * 1000)}"
            session = Session(
                id=session_id,
                user_id=self.user_id,
                scenario_id=self.scenario.id,
                start_time=self.start_time,
                end_time=end_time,
                duration=int(duration_ms // 1000),
                transcript=transcript,
                ai_response="\n".join(
                    m.content for m in self.messages if m.role == "assistant"
                ),
                feedback=report.model_copy(update={"session_id": session_id}),
                status=SessionStatus.COMPLETED,
            )

            if self.progress_service is not None:
                self.new_achievements = self.progress_service.save_session(session)

            self.session = session
            self.is_waiting_for_user = False
            logger.info(
                f"Session {session_id} completed: {self.turn_count} turns, "
                f"score={report.overall_score}"
            )
            return session
        except Exception as e:
            logger.error(f"Session completion error: {e}")
            self.error = f"Failed to generate feedback: {e}"
            return None
        finally:
            self.is_processing = False
