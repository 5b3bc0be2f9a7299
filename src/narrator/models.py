"""
Data models for the narration timeline engine.

Every stage produces new frozen records; nothing downstream mutates an
upstream record in place.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Segment:
    """A span of narration text synthesized and captioned as one unit."""

    index: int
    text: str

    @property
    def words(self) -> list[str]:
        return self.text.split()


@dataclass(frozen=True)
class SegmentationResult:
    """Segments plus how they were obtained."""

    segments: tuple[Segment, ...]
    method: str  # "service", "fallback" or "single"
    fallback_reason: str | None = None

    @property
    def used_fallback(self) -> bool:
        return self.method == "fallback"


@dataclass(frozen=True)
class AudioChunk:
    """Synthesized audio for one segment."""

    segment_index: int
    audio_bytes: bytes = field(repr=False)
    mime_type: str = "audio/mpeg"
    measured_duration_seconds: float | None = None


@dataclass(frozen=True)
class ResolvedDuration:
    """Authoritative playback duration of a chunk."""

    segment_index: int
    seconds: float
    source: str  # "measured" or "estimated"
    fallback_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.seconds > 0:
            raise ValueError(f"Resolved duration must be positive, got {self.seconds}")


@dataclass(frozen=True)
class WordTiming:
    """[start, end) interval during which a word is the highlighted one."""

    word: str
    start: float  # seconds
    end: float  # seconds

    @property
    def duration(self) -> float:
        return self.end - self.start

    def shifted(self, offset: float) -> "WordTiming":
        return WordTiming(word=self.word, start=self.start + offset, end=self.end + offset)

    def to_dict(self) -> dict:
        return {"word": self.word, "start": self.start, "end": self.end}


@dataclass(frozen=True)
class TimelineEntry:
    """One segment placed on the global timeline."""

    segment: Segment
    duration: ResolvedDuration
    word_timings: tuple[WordTiming, ...]  # global seconds
    cumulative_start: float

    @property
    def end(self) -> float:
        return self.cumulative_start + self.duration.seconds


@dataclass(frozen=True)
class Timeline:
    """Ordered entries plus their total duration."""

    entries: tuple[TimelineEntry, ...]
    total_duration_seconds: float

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def word_timings(self) -> list[WordTiming]:
        return [wt for entry in self.entries for wt in entry.word_timings]


@dataclass(frozen=True)
class FrameWindow:
    """Frame-indexed playback window of one segment."""

    segment_index: int
    start_frame: int
    duration_frames: int

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.duration_frames


@dataclass(frozen=True)
class ActiveWord:
    """Segment and word highlighted at a given frame."""

    segment_index: int
    word_index: int | None  # None during a segment's trailing silence
    word: str | None
