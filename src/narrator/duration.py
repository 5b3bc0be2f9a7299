"""
Chunk duration resolution: container metadata first, text heuristic second.
"""

import io
import logging

import mutagen
from mutagen.mp3 import MP3
from mutagen.wave import WAVE

from .constants import (
    ESTIMATE_BUFFER_SECONDS,
    ESTIMATE_CHARS_PER_SECOND,
    ESTIMATE_FLOOR_SECONDS,
    ESTIMATE_WORDS_PER_SECOND,
)
from .errors import DurationResolutionError
from .models import AudioChunk, ResolvedDuration

logger = logging.getLogger("narrator")

_CONTAINERS = {
    "audio/mpeg": MP3,
    "audio/mp3": MP3,
    "audio/wav": WAVE,
    "audio/wave": WAVE,
    "audio/x-wav": WAVE,
}


def estimate_duration(text: str) -> float:
    """
    Conservative text-length estimate in seconds.

    Biased long so that word highlighting never finishes before the audio:
    max(words / 1.2, chars / 8.0) + 1.0, floored at 2.0.
    """
    word_based = len(text.split()) / ESTIMATE_WORDS_PER_SECOND
    char_based = len(text) / ESTIMATE_CHARS_PER_SECOND
    estimate = max(word_based, char_based) + ESTIMATE_BUFFER_SECONDS
    return max(estimate, ESTIMATE_FLOOR_SECONDS)


def measure_duration(chunk: AudioChunk) -> float:
    """Read the playback length from the encoded audio container."""
    if not chunk.audio_bytes:
        raise DurationResolutionError("Audio chunk is empty")

    kind = _CONTAINERS.get(chunk.mime_type.lower())
    try:
        if kind is not None:
            audio = kind(io.BytesIO(chunk.audio_bytes))
        else:
            audio = mutagen.File(io.BytesIO(chunk.audio_bytes))
    except Exception as e:
        raise DurationResolutionError(f"Could not parse {chunk.mime_type} metadata: {e}") from e

    if audio is None or audio.info is None:
        raise DurationResolutionError(f"Unrecognized audio container ({chunk.mime_type})")
    length = float(getattr(audio.info, "length", 0.0) or 0.0)
    if length <= 0:
        raise DurationResolutionError(f"Container reports non-positive duration {length}")
    return length


def resolve_duration(chunk: AudioChunk, segment_text: str) -> ResolvedDuration:
    """Resolve a chunk's duration; never raises."""
    try:
        seconds = measure_duration(chunk)
    except DurationResolutionError as e:
        estimate = estimate_duration(segment_text)
        logger.debug(
            f"Duration metadata unavailable for chunk {chunk.segment_index} ({e}); "
            f"estimated {estimate:.2f}s"
        )
        return ResolvedDuration(
            segment_index=chunk.segment_index,
            seconds=estimate,
            source="estimated",
            fallback_reason=str(e),
        )
    return ResolvedDuration(segment_index=chunk.segment_index, seconds=seconds, source="measured")
