"""
Supported narration voices and their provider capabilities.
"""

import enum
from dataclasses import dataclass

from .errors import UnknownVoiceError

ELEVENLABS = "elevenlabs"
OPENAI = "openai"
AZURE = "azure"
PROVIDERS = (ELEVENLABS, OPENAI, AZURE)

_OPENAI_RATES = (24000,)
_OPENAI_FORMATS = ("audio/mpeg", "audio/wav")


@dataclass(frozen=True)
class VoiceCapabilities:
    """What a voice can produce and which provider serves it."""

    providers: tuple[str, ...]
    provider_voice_id: str
    sample_rates: tuple[int, ...]
    audio_formats: tuple[str, ...]
    description: str = ""

    def supports(self, provider: str) -> bool:
        return provider in self.providers


class Voice(enum.Enum):
    SARAH = VoiceCapabilities(
        providers=(ELEVENLABS,),
        provider_voice_id="EXAVITQu4vr4xnSDxMaL",
        sample_rates=(22050, 44100),
        audio_formats=("audio/mpeg",),
        description="soft, young American female",
    )
    ALLOY = VoiceCapabilities((OPENAI, AZURE), "alloy", _OPENAI_RATES, _OPENAI_FORMATS, "neutral")
    ECHO = VoiceCapabilities((OPENAI, AZURE), "echo", _OPENAI_RATES, _OPENAI_FORMATS, "male")
    FABLE = VoiceCapabilities((OPENAI, AZURE), "fable", _OPENAI_RATES, _OPENAI_FORMATS, "British")
    ONYX = VoiceCapabilities((OPENAI, AZURE), "onyx", _OPENAI_RATES, _OPENAI_FORMATS, "deep male")
    NOVA = VoiceCapabilities((OPENAI, AZURE), "nova", _OPENAI_RATES, _OPENAI_FORMATS, "female")
    SHIMMER = VoiceCapabilities(
        (OPENAI, AZURE), "shimmer", _OPENAI_RATES, _OPENAI_FORMATS, "bright female"
    )

    @property
    def capabilities(self) -> VoiceCapabilities:
        return self.value

    @property
    def provider_voice_id(self) -> str:
        return self.value.provider_voice_id

    @property
    def default_provider(self) -> str:
        return self.value.providers[0]

    @classmethod
    def parse(cls, value: "str | Voice") -> "Voice":
        """
        Validate a voice identifier at the boundary.

        Accepts a member, a member name ("nova") or a provider voice id
        ("EXAVITQu4vr4xnSDxMaL"), case-insensitively.
        """
        if isinstance(value, cls):
            return value
        key = str(value or "").strip()
        for voice in cls:
            if key.lower() in (voice.name.lower(), voice.provider_voice_id.lower()):
                return voice
        names = ", ".join(v.name.lower() for v in cls)
        raise UnknownVoiceError(f"Unknown voice '{value}'. Choose one of: {names}")


DEFAULT_VOICE = Voice.SARAH
