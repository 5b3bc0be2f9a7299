"""
Engine configuration loaded from the environment.
"""

import os
from dataclasses import dataclass

from .constants import (
    DEFAULT_FPS,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_REQUEST_INTERVAL,
    GROQ_BASE_URL,
    SEGMENTER_MODEL,
)
from .errors import ConfigurationError
from .voices import DEFAULT_VOICE, Voice


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None


@dataclass
class EngineConfig:
    """Credentials, endpoints and pacing for one engine instance."""

    elevenlabs_api_key: str | None = None
    openai_api_key: str | None = None
    azure_speech_api_key: str | None = None
    azure_speech_endpoint: str | None = None

    # Segmentation service
    segmenter_url: str | None = None
    segmenter_api_key: str | None = None
    segmenter_base_url: str | None = GROQ_BASE_URL
    segmenter_model: str = SEGMENTER_MODEL

    voice: Voice = DEFAULT_VOICE
    request_interval: float = DEFAULT_REQUEST_INTERVAL
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    # Provider end-pause allowance subtracted before word allocation
    trailing_silence_seconds: float = 0.0
    fps: int = DEFAULT_FPS

    def __post_init__(self) -> None:
        if self.request_interval < 0:
            raise ConfigurationError("request_interval must be >= 0")
        if self.max_concurrent < 1:
            raise ConfigurationError("max_concurrent must be >= 1")
        if self.trailing_silence_seconds < 0:
            raise ConfigurationError("trailing_silence_seconds must be >= 0")
        if self.fps <= 0:
            raise ConfigurationError("fps must be positive")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables (call load_dotenv first)."""
        voice_name = os.getenv("NARRATOR_VOICE")
        return cls(
            elevenlabs_api_key=os.getenv("ELEVEN_LABS_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            azure_speech_api_key=os.getenv("AZURE_OPENAI_SPEECH_API_KEY"),
            azure_speech_endpoint=os.getenv("AZURE_OPENAI_SPEECH_ENDPOINT"),
            segmenter_url=os.getenv("NARRATOR_SEGMENTER_URL"),
            segmenter_api_key=os.getenv("GROQ_API_KEY"),
            segmenter_base_url=os.getenv("NARRATOR_SEGMENTER_BASE_URL", GROQ_BASE_URL),
            segmenter_model=os.getenv("NARRATOR_SEGMENTER_MODEL", SEGMENTER_MODEL),
            voice=Voice.parse(voice_name) if voice_name else DEFAULT_VOICE,
            request_interval=_env_float("NARRATOR_REQUEST_INTERVAL", DEFAULT_REQUEST_INTERVAL),
            max_concurrent=_env_int("NARRATOR_MAX_CONCURRENT", DEFAULT_MAX_CONCURRENT),
            trailing_silence_seconds=_env_float("NARRATOR_TRAILING_SILENCE", 0.0),
            fps=_env_int("NARRATOR_FPS", DEFAULT_FPS),
        )
