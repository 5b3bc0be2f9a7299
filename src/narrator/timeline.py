"""
Global narration timeline assembly with cumulative offsets.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .errors import TimelineInvariantError
from .models import ResolvedDuration, Segment, Timeline, TimelineEntry, WordTiming

logger = logging.getLogger("narrator")


@dataclass(frozen=True)
class SegmentTiming:
    """A segment with its resolved duration and segment-local word timings."""

    segment: Segment
    duration: ResolvedDuration
    local_word_timings: Sequence[WordTiming]


def _check_local_timings(item: SegmentTiming) -> None:
    prev_end = 0.0
    for wt in item.local_word_timings:
        if wt.start < prev_end or wt.end <= wt.start:
            raise TimelineInvariantError(
                f"Segment {item.segment.index}: word '{wt.word}' [{wt.start}, {wt.end}) "
                f"overlaps or runs backwards"
            )
        prev_end = wt.end
    if prev_end > item.duration.seconds:
        raise TimelineInvariantError(
            f"Segment {item.segment.index}: word timings end at {prev_end}s, "
            f"past its {item.duration.seconds}s duration"
        )


class TimelineBuilder:
    """Appends segments in order, keeping the running cumulative offset."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []
        self._cursor = 0.0

    @property
    def cumulative_start(self) -> float:
        return self._cursor

    def add(
        self,
        segment: Segment,
        duration: ResolvedDuration,
        local_word_timings: Sequence[WordTiming],
    ) -> TimelineEntry:
        item = SegmentTiming(segment, duration, local_word_timings)
        expected = len(self._entries)
        if segment.index != expected:
            raise TimelineInvariantError(
                f"Expected segment {expected}, got segment {segment.index}"
            )
        if duration.segment_index != segment.index:
            raise TimelineInvariantError(
                f"Duration for segment {duration.segment_index} paired with segment {segment.index}"
            )
        _check_local_timings(item)

        start = self._cursor
        entry = TimelineEntry(
            segment=segment,
            duration=duration,
            word_timings=tuple(wt.shifted(start) for wt in local_word_timings),
            cumulative_start=start,
        )
        self._entries.append(entry)
        self._cursor = start + duration.seconds
        return entry

    def build(self) -> Timeline:
        return Timeline(entries=tuple(self._entries), total_duration_seconds=self._cursor)


def assemble_timeline(items: Iterable[SegmentTiming]) -> Timeline:
    """Place segments on one global timeline in segment index order."""
    builder = TimelineBuilder()
    for item in sorted(items, key=lambda it: it.segment.index):
        builder.add(item.segment, item.duration, item.local_word_timings)
    timeline = builder.build()
    logger.debug(
        f"Assembled {len(timeline)} segments, {timeline.total_duration_seconds:.3f}s total"
    )
    return timeline


def validate_timeline(timeline: Timeline) -> None:
    """Check global word timings never overlap or run backwards across the timeline."""
    prev_end = 0.0
    cursor = 0.0
    for entry in timeline.entries:
        if entry.cumulative_start != cursor:
            raise TimelineInvariantError(
                f"Segment {entry.segment.index} starts at {entry.cumulative_start}s, expected {cursor}s"
            )
        for wt in entry.word_timings:
            if wt.start < prev_end or wt.end <= wt.start:
                raise TimelineInvariantError(
                    f"Word '{wt.word}' [{wt.start}, {wt.end}) overlaps the previous word"
                )
            prev_end = wt.end
        cursor = entry.cumulative_start + entry.duration.seconds
    if timeline.total_duration_seconds != cursor:
        raise TimelineInvariantError(
            f"Total duration {timeline.total_duration_seconds}s does not match entries ({cursor}s)"
        )
