"""
Per-word caption timing within a segment.
"""

from .constants import MIN_EFFECTIVE_DURATION, TIMING_DECIMALS
from .models import WordTiming


def effective_duration(resolved_seconds: float, trailing_silence: float = 0.0) -> float:
    """
    Duration available for word highlighting: the resolved duration minus a
    provider's trailing-silence allowance, never dropping to zero or below.
    """
    effective = resolved_seconds - max(0.0, trailing_silence)
    if effective > 0:
        return effective
    return min(MIN_EFFECTIVE_DURATION, resolved_seconds)


def allocate_word_timings(segment_text: str, effective_seconds: float) -> list[WordTiming]:
    """
    Spread `effective_seconds` evenly over the words of a segment.

    Times are local (the first word starts at 0), boundaries are rounded to
    milliseconds, consecutive words share their boundary, and the last word
    always ends exactly at `effective_seconds`.
    """
    words = segment_text.split()
    if not words:
        return []
    if effective_seconds <= 0:
        effective_seconds = MIN_EFFECTIVE_DURATION

    n = len(words)
    time_per_word = effective_seconds / n
    precision = 10**-TIMING_DECIMALS

    if time_per_word >= precision:
        bounds = [round(i * time_per_word, TIMING_DECIMALS) for i in range(n)]
    else:
        # too many words to keep distinct boundaries at ms precision
        bounds = [i * time_per_word for i in range(n)]
    bounds.append(effective_seconds)

    return [WordTiming(word=w, start=bounds[i], end=bounds[i + 1]) for i, w in enumerate(words)]
