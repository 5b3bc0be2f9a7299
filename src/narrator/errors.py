"""
Error taxonomy for the narration timeline engine.
"""


class NarrationError(RuntimeError):
    """Base class for all engine errors."""

    kind = "narration_error"


class EmptyInputError(NarrationError):
    """No text to segment."""

    kind = "empty_input"


class ConfigurationError(NarrationError):
    """Missing credentials or a provider/voice mismatch."""

    kind = "configuration_error"


class UnknownVoiceError(NarrationError, ValueError):
    """Voice identifier outside the supported set."""

    kind = "unknown_voice"


class SegmentationServiceError(NarrationError):
    """Segmentation service unavailable or returned malformed output.

    Recovered by the segmenter's deterministic fallback.
    """

    kind = "segmentation_service_error"


class DurationResolutionError(NarrationError):
    """Audio container metadata could not be parsed.

    Recovered by the text-length estimate.
    """

    kind = "duration_resolution_error"


class TimelineInvariantError(NarrationError, ValueError):
    """Assembled timings overlap, run backwards or are out of order."""

    kind = "timeline_invariant"


class SynthesisError(NarrationError):
    """A speech provider failed for one segment; aborts the whole run."""

    kind = "synthesis_error"

    def __init__(
        self,
        text: str,
        provider_message: str,
        *,
        segment_index: int | None = None,
        status_code: int | None = None,
    ) -> None:
        self.text_prefix = text[:30]
        self.provider_message = provider_message
        self.segment_index = segment_index
        self.status_code = status_code
        super().__init__(
            f'Failed to generate audio for segment: "{self.text_prefix}..." - {provider_message}'
        )


class RateLimitedError(SynthesisError):
    """Provider refused the request for rate-limit reasons (HTTP 429)."""

    kind = "rate_limited"
