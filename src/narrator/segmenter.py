"""
Narration segmentation into speakable phrases.

The primary path asks a segmentation service to group the text into natural
spoken phrases; on any service failure the deterministic sentence splitter
below takes over.
"""

import logging
import re
from typing import Protocol

from .constants import FALLBACK_LONG_PIECE_CHARS, FALLBACK_WORDS_PER_WINDOW
from .errors import EmptyInputError, SegmentationServiceError
from .models import Segment, SegmentationResult

logger = logging.getLogger("narrator")

# Sentence ending pattern (allows closing quotes/brackets after the mark)
_SENT_END_RE = re.compile(r'[.!?]["\')\]]*\s*$')
# Split after terminal punctuation followed by whitespace, or on newlines
_SENT_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|(?<=[.!?][\"')\]])\s+|\s*\n+\s*")
_WORD_STRIP = "\"'()[]{}.,;:!?‘’“”"


class SegmentationService(Protocol):
    async def segment(self, text: str) -> list[str]: ...


def ensure_terminal_punctuation(piece: str) -> str:
    """Append a period if the piece does not already end a sentence."""
    piece = piece.strip()
    if not _SENT_END_RE.search(piece):
        piece += "."
    return piece


def clean_pieces(pieces: list[str]) -> list[str]:
    """Trim, drop empty pieces and terminal-punctuate the rest."""
    return [ensure_terminal_punctuation(p) for p in pieces if p and p.strip()]


def word_sequence(text: str) -> list[str]:
    """Normalized word sequence, ignoring punctuation and case."""
    out = []
    for token in text.split():
        word = token.strip(_WORD_STRIP).lower()
        if word:
            out.append(word)
    return out


def fallback_pieces(text: str) -> list[str]:
    """
    Deterministic split:
    - split on sentence-terminal punctuation or newlines,
    - trim, drop empty pieces, terminal-punctuate each piece,
    - a single piece longer than ~100 chars is re-split into ~15-word windows.
    """
    pieces = clean_pieces(_SENT_SPLIT_RE.split(text.strip()))

    if len(pieces) == 1 and len(pieces[0]) > FALLBACK_LONG_PIECE_CHARS:
        words = pieces[0].split()
        return [
            ensure_terminal_punctuation(" ".join(words[i : i + FALLBACK_WORDS_PER_WINDOW]))
            for i in range(0, len(words), FALLBACK_WORDS_PER_WINDOW)
        ]

    return pieces


def _to_segments(pieces: list[str]) -> tuple[Segment, ...]:
    return tuple(Segment(index=i, text=p) for i, p in enumerate(pieces))


def fallback_segments(text: str) -> list[Segment]:
    """Segment text without any external service."""
    if not text or not text.strip():
        raise EmptyInputError("Text is required")
    return list(_to_segments(fallback_pieces(text)))


def validate_service_pieces(text: str, pieces: object) -> list[str]:
    """Check service output is a non-empty list of strings preserving the source words."""
    if not isinstance(pieces, list) or not all(isinstance(p, str) for p in pieces):
        raise SegmentationServiceError("Invalid segmentation result: expected a list of strings")
    cleaned = clean_pieces(pieces)
    if not cleaned:
        raise SegmentationServiceError("Invalid segmentation result: no segments")
    if word_sequence(" ".join(cleaned)) != word_sequence(text):
        raise SegmentationServiceError("Segmentation changed, dropped or duplicated words")
    return cleaned


class Segmenter:
    """Splits narration text into ordered, terminal-punctuated segments."""

    def __init__(self, service: SegmentationService | None = None, use_segments: bool = True):
        self.service = service
        self.use_segments = use_segments

    async def segment_detailed(self, text: str) -> SegmentationResult:
        if not text or not text.strip():
            raise EmptyInputError("Text is required")

        if not self.use_segments:
            piece = ensure_terminal_punctuation(" ".join(text.split()))
            return SegmentationResult(segments=_to_segments([piece]), method="single")

        if self.service is None:
            return SegmentationResult(
                segments=_to_segments(fallback_pieces(text)),
                method="fallback",
                fallback_reason="no segmentation service configured",
            )

        try:
            pieces = validate_service_pieces(text, await self.service.segment(text))
        except SegmentationServiceError as e:
            logger.warning(f"Intelligent segmentation failed, using fallback: {e}")
            return SegmentationResult(
                segments=_to_segments(fallback_pieces(text)),
                method="fallback",
                fallback_reason=str(e),
            )

        logger.info(f"Segmented text into {len(pieces)} phrases via service")
        return SegmentationResult(segments=_to_segments(pieces), method="service")

    async def segment(self, text: str) -> list[Segment]:
        result = await self.segment_detailed(text)
        return list(result.segments)
