"""
Shared fixtures for narration timeline tests.
"""

import io

import pytest
from pydub import AudioSegment

from narrator.errors import SynthesisError


def make_wav(duration_ms: int, frame_rate: int = 24000) -> bytes:
    """Silent mono WAV of exactly `duration_ms` (no ffmpeg needed)."""
    buf = io.BytesIO()
    AudioSegment.silent(duration=duration_ms, frame_rate=frame_rate).export(buf, format="wav")
    return buf.getvalue()


class FakeProvider:
    """Speech provider returning WAV audio with a per-text duration."""

    name = "elevenlabs"

    def __init__(self, durations_ms: dict[str, int] | None = None, fail_on: dict | None = None):
        self.durations_ms = durations_ms or {}
        self.fail_on = fail_on or {}
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, text, voice):
        self.calls.append((text, voice.name))
        if text in self.fail_on:
            raise self.fail_on[text]
        if text in self.durations_ms:
            return make_wav(self.durations_ms[text]), "audio/wav"
        return b"not really audio", "audio/mpeg"


@pytest.fixture
def wav_bytes():
    return make_wav


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def synthesis_failure():
    def factory(text: str, message: str = "boom", cls=SynthesisError, status_code=None):
        return cls(text, message, status_code=status_code)

    return factory
