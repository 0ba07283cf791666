"""
Audio capture helper for practice sessions.

The capture does not open a device itself: the caller (a websocket handler,
a file reader, a sound library callback) feeds PCM16 mono chunks while the
capture tracks state, elapsed time and the input level.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence

import numpy as np
from loguru import logger

PCM16_FULL_SCALE = 32768.0


@dataclass
class Recording:
    """A finished recording."""

    data: bytes
    duration: int  # milliseconds
    timestamp: datetime
    sample_rate: int

    @property
    def num_samples(self) -> int:
        return len(self.data) // 2


def pcm_level(chunk: bytes) -> float:
    """RMS level of a PCM16 chunk, normalized to 0-1."""
    trimmed = chunk if len(chunk) % 2 == 0 else chunk[:-1]
    if not trimmed:
        return 0.0
    samples = np.frombuffer(trimmed, dtype=np.int16).astype(np.float32)
    rms = float(np.sqrt(np.mean(samples**2)))
    return min(1.0, rms / PCM16_FULL_SCALE)


def frequency_level(bins: Sequence[int]) -> float:
    """Average of byte frequency-analyser bins (0-255), normalized to 0-1."""
    if len(bins) == 0:
        return 0.0
    values = np.asarray(bins, dtype=np.float32)
    return float(np.clip(values.mean() / 255.0, 0.0, 1.0))


class AudioCapture:
    """Accumulates microphone chunks and meters their level."""

    def __init__(
        self,
        sample_rate: int = 16000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sample_rate = sample_rate
        self._clock = clock
        self._chunks: List[bytes] = []
        self._started_at: Optional[float] = None
        self.level = 0.0
        self.recording: Optional[Recording] = None

    @property
    def is_recording(self) -> bool:
        return self._started_at is not None

    @property
    def duration(self) -> int:
        """Elapsed milliseconds of the current recording, 0 when idle."""
        if self._started_at is None:
            return 0
        return int((self._clock() - self._started_at) * 1000)

    def start(self) -> None:
        if self.is_recording:
            raise RuntimeError("Recording already in progress")
        self._chunks = []
        self.level = 0.0
        self._started_at = self._clock()
        logger.debug("Audio capture started")

    def feed(self, chunk: bytes) -> float:
        """Add a chunk and return its level."""
        if not self.is_recording:
            raise RuntimeError("Audio capture is not recording")
        if not chunk:
            return self.level
        self._chunks.append(bytes(chunk))
        self.level = pcm_level(chunk)
        return self.level

    def feed_frequency_bins(self, bins: Sequence[int]) -> float:
        """Update the level from analyser bins when the source meters in the frequency domain."""
        if not self.is_recording:
            raise RuntimeError("Audio capture is not recording")
        self.level = frequency_level(bins)
        return self.level

    def stop(self) -> Recording:
        if not self.is_recording:
            raise RuntimeError("Audio capture is not recording")
        duration = self.duration
        self.recording = Recording(
            data=b"".join(self._chunks),
            duration=duration,
            timestamp=datetime.now(),
            sample_rate=self.sample_rate,
        )
        self._chunks = []
        self._started_at = None
        self.level = 0.0
        logger.debug(
            f"Audio capture stopped: {self.recording.num_samples} samples, {duration}ms"
        )
        return self.recording

    def clear(self) -> None:
        """Drop the last finished recording."""
        self.recording = None
