"""Tests for the audio capture and speech-to-text helpers."""

import numpy as np
import pytest

from speak_practice.practice.audio import AudioCapture, frequency_level, pcm_level
from speak_practice.practice.transcript import RecognitionResult, TranscriptBuffer


class TickClock:
    def __init__(self):
        self.value = 100.0

    def __call__(self):
        return self.value


def pcm(samples):
    return np.asarray(samples, dtype=np.int16).tobytes()


def test_pcm_level():
    assert pcm_level(b"") == 0.0
    assert pcm_level(pcm([0] * 100)) == 0.0
    assert pcm_level(pcm([16384, -16384] * 50)) == pytest.approx(0.5)
    # Odd trailing byte is ignored
    assert pcm_level(pcm([16384]) + b"\x01") == pytest.approx(0.5)


def test_frequency_level():
    assert frequency_level([]) == 0.0
    assert frequency_level([255, 255]) == pytest.approx(1.0)
    assert frequency_level([0, 255]) == pytest.approx(0.5)


def test_capture_lifecycle():
    clock = TickClock()
    capture = AudioCapture(sample_rate=16000, clock=clock)
    assert not capture.is_recording
    assert capture.duration == 0

    capture.start()
    assert capture.is_recording
    level = capture.feed(pcm([8192] * 160))
    assert level == pytest.approx(0.25)
    capture.feed(pcm([0] * 160))
    clock.value += 1.5
    assert capture.duration == 1500

    recording = capture.stop()
    assert not capture.is_recording
    assert recording.duration == 1500
    assert recording.num_samples == 320
    assert recording.sample_rate == 16000
    assert capture.level == 0.0

    capture.clear()
    assert capture.recording is None


def test_capture_meters_frequency_bins():
    capture = AudioCapture()
    with pytest.raises(RuntimeError):
        capture.feed_frequency_bins([128])

    capture.start()
    assert capture.feed_frequency_bins([0, 255]) == pytest.approx(0.5)
    assert capture.level == pytest.approx(0.5)
    assert capture.stop().num_samples == 0


def test_capture_invalid_state():
    capture = AudioCapture()
    with pytest.raises(RuntimeError):
        capture.stop()
    with pytest.raises(RuntimeError):
        capture.feed(b"\x00\x00")

    capture.start()
    with pytest.raises(RuntimeError):
        capture.start()


def test_transcript_accumulates_final_results():
    buffer = TranscriptBuffer()
    buffer.on_results([RecognitionResult("Hello ", True, 0.9), RecognitionResult("wor", False)])
    assert buffer.transcript == "Hello "
    assert buffer.interim == "wor"
    assert buffer.confidence == 0.9

    buffer.on_results([("world", True, 0.8)])
    assert buffer.transcript == "Hello world"
    assert buffer.interim == ""
    assert buffer.best() == "Hello world"


def test_transcript_best_falls_back_to_interim():
    buffer = TranscriptBuffer()
    buffer.on_results([("  still talking ", False)])
    assert buffer.best() == "still talking"


def test_transcript_errors_and_reset():
    buffer = TranscriptBuffer()
    assert buffer.on_error("network") == "Network error occurred. Please check your connection."
    assert buffer.on_error("aborted") == "Speech recognition error: aborted"

    buffer.on_results([("text", True)])
    buffer.reset()
    assert (buffer.transcript, buffer.interim, buffer.error) == ("", "", None)
