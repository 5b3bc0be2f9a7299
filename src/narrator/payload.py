"""
JSON payload for the presentation/render layer.
"""

import base64
import json
import logging
from pathlib import Path

from .frames import schedule_frames
from .models import AudioChunk
from .pipeline import NarrationResult

logger = logging.getLogger("narrator")


def audio_data_uri(chunk: AudioChunk) -> str:
    """Self-describing data URI for a chunk's audio."""
    encoded = base64.b64encode(chunk.audio_bytes).decode("ascii")
    return f"data:{chunk.mime_type};base64,{encoded}"


def build_payload(result: NarrationResult, fps: int | None = None) -> dict:
    """
    Per-segment render payload plus aggregates.

    Word timings are in global seconds; `startTime` is the segment's
    cumulative offset. Frame fields are included when `fps` is given.
    """
    timeline = result.timeline
    schedule = schedule_frames(timeline, fps) if fps else None
    chunks = {c.segment_index: c for c in result.chunks}

    segments = []
    for i, entry in enumerate(timeline.entries):
        seg = entry.segment
        item = {
            "text": seg.text,
            "audio": audio_data_uri(chunks[seg.index]),
            "chunkIndex": seg.index,
            "wordCount": len(seg.words),
            "duration": entry.duration.seconds,
            "durationSource": entry.duration.source,
            "startTime": entry.cumulative_start,
            "wordTimings": [wt.to_dict() for wt in entry.word_timings],
        }
        if schedule is not None:
            window = schedule.windows[i]
            item["startFrame"] = window.start_frame
            item["durationFrames"] = window.duration_frames
        segments.append(item)

    payload = {
        "success": True,
        "segments": segments,
        "totalChunks": len(segments),
        "totalDuration": timeline.total_duration_seconds,
        "segmentationMethod": result.segmentation.method,
    }
    if schedule is not None:
        payload["fps"] = schedule.fps
        payload["durationInFrames"] = schedule.total_frames
    return payload


def write_payload(payload: dict, path: str) -> None:
    """Write the payload as UTF-8 JSON."""
    Path(path).write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Saved narration payload -> {path}")
