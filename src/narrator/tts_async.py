"""
Asynchronous text-to-speech synthesis with ElevenLabs, OpenAI and Azure OpenAI.
"""

import logging
from typing import Protocol

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI, RateLimitError

from .config import EngineConfig
from .constants import ELEVENLABS_BASE_URL, ELEVENLABS_MODEL_ID, OPENAI_TTS_MODEL, USER_AGENT
from .errors import ConfigurationError, RateLimitedError, SynthesisError
from .models import AudioChunk, Segment
from .rate_limit import RateLimitGate
from .voices import AZURE, ELEVENLABS, OPENAI, Voice

logger = logging.getLogger("narrator")

HTTP_OK = 200
HTTP_TOO_MANY_REQUESTS = 429


class SpeechProvider(Protocol):
    name: str

    async def synthesize(self, text: str, voice: Voice) -> tuple[bytes, str]: ...


def check_voice(voice: Voice, provider: str, sample_rate: int | None = None) -> None:
    """Reject voices or sample rates the provider cannot serve."""
    caps = voice.capabilities
    if not caps.supports(provider):
        raise ConfigurationError(
            f"Voice '{voice.name.lower()}' is not available from provider '{provider}'"
        )
    if sample_rate is not None and sample_rate not in caps.sample_rates:
        raise ConfigurationError(
            f"Voice '{voice.name.lower()}' does not support {sample_rate} Hz "
            f"(supported: {', '.join(map(str, caps.sample_rates))})"
        )


def _raise_for_response(r: httpx.Response, text: str, provider: str) -> tuple[bytes, str]:
    """Turn a provider HTTP response into audio bytes or a synthesis error."""
    if r.status_code == HTTP_TOO_MANY_REQUESTS:
        raise RateLimitedError(
            text, f"{provider} rate limit: {r.text[:300]}", status_code=r.status_code
        )
    ctype = r.headers.get("content-type", "")
    if r.status_code != HTTP_OK or not ctype.startswith(("audio/", "application/octet-stream")):
        raise SynthesisError(
            text, f"{provider} TTS failed: {r.status_code} {r.text[:300]}", status_code=r.status_code
        )
    if not r.content:
        raise SynthesisError(text, f"{provider} TTS returned no audio", status_code=r.status_code)
    mime = ctype.split(";")[0].strip()
    return r.content, "audio/mpeg" if mime == "application/octet-stream" else mime


class _HttpProvider:
    name = "http"

    def __init__(self, client: httpx.AsyncClient | None, timeout: float):
        self._client = client
        self.timeout = timeout

    async def _post(self, url: str, text: str, **kwargs) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.post(url, **kwargs)
            async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
                return await client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise SynthesisError(text, f"{self.name} request failed: {e}") from e


class ElevenLabsProvider(_HttpProvider):
    """ElevenLabs text-to-speech over its REST API."""

    name = ELEVENLABS

    def __init__(
        self,
        api_key: str | None,
        *,
        model_id: str = ELEVENLABS_MODEL_ID,
        base_url: str = ELEVENLABS_BASE_URL,
        sample_rate: int | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        if not api_key:
            raise ConfigurationError("Eleven Labs API key not configured (ELEVEN_LABS_API_KEY)")
        super().__init__(client, timeout)
        self.api_key = api_key
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self.sample_rate = sample_rate

    async def synthesize(self, text: str, voice: Voice) -> tuple[bytes, str]:
        check_voice(voice, self.name, self.sample_rate)
        url = f"{self.base_url}/v1/text-to-speech/{voice.provider_voice_id}"
        params = {"output_format": f"mp3_{self.sample_rate}_128"} if self.sample_rate else None
        headers = {
            "xi-api-key": self.api_key,
            "accept": "audio/mpeg",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.5},
        }
        r = await self._post(url, text, json=payload, headers=headers, params=params)
        return _raise_for_response(r, text, "Eleven Labs")


class AzureSpeechProvider(_HttpProvider):
    """Azure OpenAI speech deployment called with a JSON payload."""

    name = AZURE

    def __init__(
        self,
        api_key: str | None,
        endpoint: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        if not api_key or not endpoint:
            raise ConfigurationError("Azure OpenAI Speech credentials not configured")
        super().__init__(client, timeout)
        self.api_key = api_key
        self.endpoint = endpoint

    async def synthesize(self, text: str, voice: Voice) -> tuple[bytes, str]:
        check_voice(voice, self.name)
        name = voice.provider_voice_id
        headers = {"api-key": self.api_key, "Content-Type": "application/json"}
        # The voice name doubles as the model name on Azure deployments
        payload = {"model": name, "input": text, "voice": name}
        r = await self._post(self.endpoint, text, json=payload, headers=headers)
        return _raise_for_response(r, text, "Azure OpenAI")


class OpenAISpeechProvider:
    """OpenAI speech endpoint through the official SDK."""

    name = OPENAI

    def __init__(self, client: AsyncOpenAI, model: str = OPENAI_TTS_MODEL):
        if client is None:
            raise ConfigurationError("OpenAI client is not initialized (missing OPENAI_API_KEY)")
        self.client = client
        self.model = model

    async def synthesize(self, text: str, voice: Voice) -> tuple[bytes, str]:
        check_voice(voice, self.name)
        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=voice.provider_voice_id,
                input=text,
                response_format="mp3",
            )
        except RateLimitError as e:
            raise RateLimitedError(text, str(e), status_code=e.status_code) from e
        except APIStatusError as e:
            raise SynthesisError(text, str(e), status_code=e.status_code) from e
        except APIError as e:
            raise SynthesisError(text, str(e)) from e

        audio = response.content
        if not audio:
            raise SynthesisError(text, "OpenAI TTS returned no audio")
        return audio, "audio/mpeg"


def make_provider(config: EngineConfig, provider: str) -> SpeechProvider:
    """Create the speech provider named by `provider` from config credentials."""
    if provider == ELEVENLABS:
        return ElevenLabsProvider(config.elevenlabs_api_key)
    if provider == OPENAI:
        if not config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set. Put it in .env or environment.")
        return OpenAISpeechProvider(AsyncOpenAI(api_key=config.openai_api_key))
    if provider == AZURE:
        return AzureSpeechProvider(config.azure_speech_api_key, config.azure_speech_endpoint)
    raise ConfigurationError(f"Unknown TTS provider '{provider}'")


class SpeechSynthesizer:
    """One segment of text plus a voice in, one opaque audio chunk out."""

    def __init__(self, provider: SpeechProvider, gate: RateLimitGate | None = None):
        self.provider = provider
        self.gate = gate or RateLimitGate()

    async def synthesize(self, segment: Segment, voice: Voice) -> AudioChunk:
        voice = Voice.parse(voice)
        try:
            async with self.gate:
                audio, mime = await self.provider.synthesize(segment.text, voice)
        except SynthesisError as e:
            e.segment_index = segment.index
            logger.error(
                f"{self.provider.name} TTS failed for segment {segment.index} "
                f"'{segment.text[:50]}...': {e.provider_message}"
            )
            raise
        return AudioChunk(segment_index=segment.index, audio_bytes=audio, mime_type=mime)
