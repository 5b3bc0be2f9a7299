"""
Narration-to-timeline pipeline: segment, synthesize, resolve, allocate, assemble.
"""

import logging
from dataclasses import dataclass, replace

from tqdm import tqdm

from .duration import resolve_duration
from .models import AudioChunk, SegmentationResult, Timeline
from .segmenter import Segmenter
from .timeline import TimelineBuilder
from .tts_async import SpeechSynthesizer
from .voices import Voice
from .words import allocate_word_timings, effective_duration

logger = logging.getLogger("narrator")


@dataclass(frozen=True)
class NarrationResult:
    """Everything one narration request produced."""

    segmentation: SegmentationResult
    chunks: tuple[AudioChunk, ...]
    timeline: Timeline

    @property
    def total_duration(self) -> float:
        return self.timeline.total_duration_seconds


class NarrationPipeline:
    """
    Runs one narration request end to end.

    Synthesis is strictly sequential in segment order; every other stage runs
    inline as each chunk arrives. A synthesis failure aborts the whole run and
    no partial timeline is returned.
    """

    def __init__(
        self,
        segmenter: Segmenter,
        synthesizer: SpeechSynthesizer,
        *,
        trailing_silence_seconds: float = 0.0,
        progress: bool = True,
    ):
        self.segmenter = segmenter
        self.synthesizer = synthesizer
        self.trailing_silence_seconds = trailing_silence_seconds
        self.progress = progress

    async def run(self, text: str, voice: Voice | str) -> NarrationResult:
        voice = Voice.parse(voice)
        segmentation = await self.segmenter.segment_detailed(text)
        segments = segmentation.segments
        logger.info(
            f"Split text into {len(segments)} chunks ({segmentation.method}): "
            + ", ".join(f'"{s.text[:30]}..."' for s in segments)
        )

        builder = TimelineBuilder()
        chunks: list[AudioChunk] = []
        total = len(segments)

        for segment in tqdm(segments, desc=f"TTS {voice.name.lower()}", disable=not self.progress):
            chunk = await self.synthesizer.synthesize(segment, voice)
            resolved = resolve_duration(chunk, segment.text)
            if resolved.source == "measured":
                chunk = replace(chunk, measured_duration_seconds=resolved.seconds)
            chunks.append(chunk)

            effective = effective_duration(resolved.seconds, self.trailing_silence_seconds)
            builder.add(segment, resolved, allocate_word_timings(segment.text, effective))
            logger.info(
                f"Chunk {segment.index + 1}/{total}: {resolved.seconds:.2f}s {resolved.source} "
                f"({len(segment.words)} words, {len(segment.text)} chars)"
            )

        timeline = builder.build()
        logger.info(
            f"Generated {len(chunks)} audio segments ({timeline.total_duration_seconds:.2f}s total, "
            f"{self.synthesizer.gate.calls} provider calls)"
        )
        return NarrationResult(segmentation=segmentation, chunks=tuple(chunks), timeline=timeline)
