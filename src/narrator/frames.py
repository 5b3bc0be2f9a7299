"""
Seconds-to-frames projection of a narration timeline.
"""

import bisect
import math
from dataclasses import dataclass, field

from .models import ActiveWord, FrameWindow, Timeline


def _window(cumulative_start: float, seconds: float, fps: int, segment_index: int) -> FrameWindow:
    # Each window is recomputed from its own offset so rounding never accumulates
    return FrameWindow(
        segment_index=segment_index,
        start_frame=math.floor(cumulative_start * fps),
        duration_frames=math.floor(seconds * fps),
    )


@dataclass(frozen=True)
class FrameSchedule:
    """Frame windows for every segment plus word lookup for caption highlighting."""

    fps: int
    windows: tuple[FrameWindow, ...]
    timeline: Timeline
    _start_frames: tuple[int, ...] = field(init=False, repr=False, compare=False)
    _word_starts: tuple[tuple[float, ...], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Lookup tables for locate(), built once per schedule
        object.__setattr__(self, "_start_frames", tuple(w.start_frame for w in self.windows))
        object.__setattr__(
            self,
            "_word_starts",
            tuple(tuple(wt.start for wt in e.word_timings) for e in self.timeline.entries),
        )

    @property
    def total_frames(self) -> int:
        return math.floor(self.timeline.total_duration_seconds * self.fps)

    def __len__(self) -> int:
        return len(self.windows)

    def __iter__(self):
        return iter(self.windows)

    def locate(self, frame: int) -> ActiveWord | None:
        """
        Segment and word current at `frame`.

        The segment is the one whose frame window holds the frame
        (start_frame <= frame < end_frame). The word is the one whose global
        [start, end) contains frame / fps; a frame that floors to the window
        start a fraction before the segment's audio begins gets its first
        word. word_index is None while the segment's trailing silence plays.
        Frames outside every window return None.
        """
        if frame < 0 or not self.windows:
            return None
        i = bisect.bisect_right(self._start_frames, frame) - 1
        if i < 0 or frame >= self.windows[i].end_frame:
            return None

        entry = self.timeline.entries[i]
        timings = entry.word_timings
        if not timings:
            return ActiveWord(segment_index=entry.segment.index, word_index=None, word=None)

        t = frame / self.fps
        w = max(0, bisect.bisect_right(self._word_starts[i], t) - 1)
        if t < timings[w].end:
            return ActiveWord(segment_index=entry.segment.index, word_index=w, word=timings[w].word)
        return ActiveWord(segment_index=entry.segment.index, word_index=None, word=None)


def schedule_frames(timeline: Timeline, fps: int) -> FrameSchedule:
    """Project a timeline onto frames at `fps`."""
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    windows = tuple(
        _window(entry.cumulative_start, entry.duration.seconds, fps, entry.segment.index)
        for entry in timeline.entries
    )
    return FrameSchedule(fps=fps, windows=windows, timeline=timeline)
