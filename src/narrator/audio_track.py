"""
Continuous narration track aligned with the timeline.
"""

import io
import logging
from pathlib import Path

from pydub import AudioSegment

from .models import AudioChunk
from .pipeline import NarrationResult

logger = logging.getLogger("narrator")

_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}


def decode_chunk(chunk: AudioChunk) -> AudioSegment:
    """Decode a chunk's bytes with pydub (mp3/ogg need ffmpeg)."""
    fmt = _FORMATS.get(chunk.mime_type.lower())
    return AudioSegment.from_file(io.BytesIO(chunk.audio_bytes), format=fmt)


def build_narration_track(result: NarrationResult, sample_rate: int = 24000) -> AudioSegment:
    """
    Lay every chunk at its cumulative offset, padding with silence or trimming
    so each occupies exactly its resolved duration.
    """
    chunks = {c.segment_index: c for c in result.chunks}
    track = AudioSegment.silent(duration=0, frame_rate=sample_rate)
    cursor_ms = 0

    for entry in result.timeline.entries:
        start_ms = int(round(entry.cumulative_start * 1000))
        end_ms = int(round(entry.end * 1000))
        tgt_ms = max(0, end_ms - start_ms)

        try:
            clip = decode_chunk(chunks[entry.segment.index]).set_frame_rate(sample_rate)
        except Exception as e:
            logger.warning(f"Could not decode chunk {entry.segment.index}: {e} (rendered as silence)")
            clip = AudioSegment.silent(duration=tgt_ms, frame_rate=sample_rate)

        if start_ms > cursor_ms:
            track += AudioSegment.silent(duration=start_ms - cursor_ms, frame_rate=sample_rate)
            cursor_ms = start_ms

        if len(clip) < tgt_ms:
            clip += AudioSegment.silent(duration=tgt_ms - len(clip), frame_rate=sample_rate)
        elif len(clip) > tgt_ms:
            logger.debug(f"chunk {entry.segment.index} overflow {len(clip) - tgt_ms}ms trimmed")
            clip = clip[:tgt_ms]

        track += clip
        cursor_ms += len(clip)

    return track.set_frame_rate(sample_rate).set_channels(1)


def export_narration_track(track: AudioSegment, path: str, fmt: str | None = None) -> str:
    """Export the track; format defaults to the file extension."""
    fmt = fmt or Path(path).suffix.lstrip(".") or "wav"
    track.export(path, format=fmt)
    logger.info(f"Exported narration track -> {path} ({len(track) / 1000:.3f}s)")
    return path
