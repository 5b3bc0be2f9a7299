"""
Tests for asynchronous speech synthesis and request pacing.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from narrator.config import EngineConfig
from narrator.errors import ConfigurationError, RateLimitedError, SynthesisError
from narrator.models import Segment
from narrator.rate_limit import RateLimitGate
from narrator.tts_async import (
    AzureSpeechProvider,
    ElevenLabsProvider,
    OpenAISpeechProvider,
    SpeechSynthesizer,
    check_voice,
    make_provider,
)
from narrator.voices import Voice


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_gate_spaces_requests():
    """Test that call starts are spaced by the minimum interval."""
    clock = FakeClock()

    async def run():
        gate = RateLimitGate(0.1, clock=clock, sleep=clock.sleep)
        for _ in range(3):
            async with gate:
                pass
        return gate

    gate = asyncio.run(run())

    assert clock.sleeps == pytest.approx([0.1, 0.1])
    assert gate.calls == 3


def test_gate_does_not_wait_after_slow_call():
    """Test no extra delay when the previous call already took longer than the interval."""
    clock = FakeClock()

    async def run():
        gate = RateLimitGate(0.1, clock=clock, sleep=clock.sleep)
        async with gate:
            clock.now += 0.5
        async with gate:
            pass

    asyncio.run(run())

    assert clock.sleeps == []


def test_gate_limits_concurrency():
    """Test that at most max_concurrent calls are in flight."""
    in_flight = 0
    peak = 0

    async def call(gate):
        nonlocal in_flight, peak
        async with gate:
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

    async def run():
        gate = RateLimitGate(0.0, max_concurrent=2)
        await asyncio.gather(*(call(gate) for _ in range(6)))
        return gate

    gate = asyncio.run(run())

    assert peak == 2
    assert gate.calls == 6


def test_gate_rejects_bad_settings():
    """Test constructor validation."""
    with pytest.raises(ValueError):
        RateLimitGate(-0.1)
    with pytest.raises(ValueError):
        RateLimitGate(0.1, max_concurrent=0)


def test_elevenlabs_request():
    """Test the ElevenLabs request shape and the returned audio."""
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["key"] = request.headers["xi-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"ID3fake", headers={"content-type": "audio/mpeg"})

    async def run():
        async with _client(handler) as client:
            provider = ElevenLabsProvider("test-key", client=client)
            return await provider.synthesize("Hello world.", Voice.SARAH)

    audio, mime = asyncio.run(run())

    assert (audio, mime) == (b"ID3fake", "audio/mpeg")
    assert seen["path"] == "/v1/text-to-speech/EXAVITQu4vr4xnSDxMaL"
    assert seen["key"] == "test-key"
    assert seen["body"]["text"] == "Hello world."
    assert seen["body"]["model_id"] == "eleven_monolingual_v1"
    assert seen["body"]["voice_settings"] == {"stability": 0.5, "similarity_boost": 0.5}


def test_elevenlabs_sample_rate():
    """Test the output format follows the requested sample rate."""
    seen = {}

    def handler(request):
        seen["format"] = request.url.params.get("output_format")
        return httpx.Response(200, content=b"ID3fake", headers={"content-type": "audio/mpeg"})

    async def run():
        async with _client(handler) as client:
            provider = ElevenLabsProvider("k", sample_rate=44100, client=client)
            await provider.synthesize("Hi.", Voice.SARAH)

    asyncio.run(run())

    assert seen["format"] == "mp3_44100_128"


def test_elevenlabs_unsupported_sample_rate():
    """Test that an unsupported sample rate fails before any request."""
    handler = MagicMock()

    async def run():
        async with _client(handler) as client:
            provider = ElevenLabsProvider("k", sample_rate=16000, client=client)
            await provider.synthesize("Hi.", Voice.SARAH)

    with pytest.raises(ConfigurationError):
        asyncio.run(run())
    handler.assert_not_called()


def test_elevenlabs_rejects_openai_voice():
    """Test voice/provider mismatch."""

    async def run():
        provider = ElevenLabsProvider("k", client=_client(MagicMock()))
        await provider.synthesize("Hi.", Voice.NOVA)

    with pytest.raises(ConfigurationError):
        asyncio.run(run())


def test_elevenlabs_requires_key():
    """Test missing credentials."""
    with pytest.raises(ConfigurationError):
        ElevenLabsProvider(None)


def test_elevenlabs_rate_limited():
    """Test that HTTP 429 becomes RateLimitedError."""

    def handler(request):
        return httpx.Response(429, json={"detail": "too many requests"})

    async def run():
        async with _client(handler) as client:
            await ElevenLabsProvider("k", client=client).synthesize("Hello world.", Voice.SARAH)

    with pytest.raises(RateLimitedError) as exc:
        asyncio.run(run())
    assert exc.value.status_code == 429
    assert isinstance(exc.value, SynthesisError)


def test_elevenlabs_server_error():
    """Test that a non-200 response fails with the text prefix in the message."""

    def handler(request):
        return httpx.Response(500, text="internal error")

    text = "Quantum physics is fascinating and strange."

    async def run():
        async with _client(handler) as client:
            await ElevenLabsProvider("k", client=client).synthesize(text, Voice.SARAH)

    with pytest.raises(SynthesisError) as exc:
        asyncio.run(run())
    assert exc.value.status_code == 500
    assert exc.value.text_prefix == text[:30]
    assert str(exc.value).startswith(f'Failed to generate audio for segment: "{text[:30]}..."')
    assert "internal error" in str(exc.value)


def test_elevenlabs_non_audio_response():
    """Test that a JSON body with status 200 is not treated as audio."""

    def handler(request):
        return httpx.Response(200, json={"status": "queued"})

    async def run():
        async with _client(handler) as client:
            await ElevenLabsProvider("k", client=client).synthesize("Hi.", Voice.SARAH)

    with pytest.raises(SynthesisError):
        asyncio.run(run())


def test_elevenlabs_transport_error():
    """Test that connection failures surface as SynthesisError."""

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with _client(handler) as client:
            await ElevenLabsProvider("k", client=client).synthesize("Hi.", Voice.SARAH)

    with pytest.raises(SynthesisError) as exc:
        asyncio.run(run())
    assert "connection refused" in exc.value.provider_message


def test_azure_request():
    """Test the Azure JSON payload and api-key header."""
    seen = {}

    def handler(request):
        seen["key"] = request.headers["api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, content=b"mp3", headers={"content-type": "application/octet-stream"}
        )

    async def run():
        async with _client(handler) as client:
            provider = AzureSpeechProvider("az-key", "https://azure.example/speech", client=client)
            return await provider.synthesize("Hello.", Voice.NOVA)

    audio, mime = asyncio.run(run())

    assert (audio, mime) == (b"mp3", "audio/mpeg")
    assert seen["key"] == "az-key"
    assert seen["body"] == {"model": "nova", "input": "Hello.", "voice": "nova"}


def test_azure_requires_endpoint():
    """Test missing Azure configuration."""
    with pytest.raises(ConfigurationError):
        AzureSpeechProvider("az-key", None)


def test_openai_provider():
    """Test the OpenAI SDK call."""
    client = MagicMock()
    client.audio.speech.create = AsyncMock(return_value=MagicMock(content=b"mp3bytes"))

    audio, mime = asyncio.run(OpenAISpeechProvider(client).synthesize("Hello.", Voice.ALLOY))

    assert (audio, mime) == (b"mp3bytes", "audio/mpeg")
    kwargs = client.audio.speech.create.call_args.kwargs
    assert kwargs["voice"] == "alloy"
    assert kwargs["input"] == "Hello."
    assert kwargs["model"] == "tts-1"


def test_openai_rate_limit():
    """Test that SDK rate-limit errors become RateLimitedError."""
    request = httpx.Request("POST", "https://api.openai.com/v1/audio/speech")
    error = openai.RateLimitError(
        "Rate limit reached", response=httpx.Response(429, request=request), body=None
    )
    client = MagicMock()
    client.audio.speech.create = AsyncMock(side_effect=error)

    with pytest.raises(RateLimitedError) as exc:
        asyncio.run(OpenAISpeechProvider(client).synthesize("Hello.", Voice.ALLOY))
    assert exc.value.status_code == 429


def test_openai_connection_error():
    """Test that SDK connection errors become SynthesisError."""
    request = httpx.Request("POST", "https://api.openai.com/v1/audio/speech")
    client = MagicMock()
    client.audio.speech.create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

    with pytest.raises(SynthesisError):
        asyncio.run(OpenAISpeechProvider(client).synthesize("Hello.", Voice.ALLOY))


def test_check_voice():
    """Test provider capability checks."""
    check_voice(Voice.SARAH, "elevenlabs")
    check_voice(Voice.SHIMMER, "azure", 24000)
    with pytest.raises(ConfigurationError):
        check_voice(Voice.SARAH, "openai")
    with pytest.raises(ConfigurationError):
        check_voice(Voice.ONYX, "openai", 44100)


def test_make_provider():
    """Test provider selection from config."""
    config = EngineConfig(elevenlabs_api_key="k")

    assert isinstance(make_provider(config, "elevenlabs"), ElevenLabsProvider)
    with pytest.raises(ConfigurationError):
        make_provider(config, "openai")
    with pytest.raises(ConfigurationError):
        make_provider(config, "azure")
    with pytest.raises(ConfigurationError):
        make_provider(config, "festival")


def test_synthesizer_returns_chunk(fake_provider, wav_bytes):
    """Test that a chunk carries the segment index and mime type."""
    provider = fake_provider({"Hello world.": 1000})
    synthesizer = SpeechSynthesizer(provider, RateLimitGate(0.0))

    chunk = asyncio.run(synthesizer.synthesize(Segment(index=3, text="Hello world."), "sarah"))

    assert chunk.segment_index == 3
    assert chunk.mime_type == "audio/wav"
    assert chunk.audio_bytes == wav_bytes(1000)
    assert chunk.measured_duration_seconds is None
    assert provider.calls == [("Hello world.", "SARAH")]


def test_synthesizer_tags_failure_with_segment(fake_provider, synthesis_failure):
    """Test that failures carry the failing segment index."""
    text = "This one fails."
    provider = fake_provider(fail_on={text: synthesis_failure(text, "quota exceeded", status_code=401)})
    synthesizer = SpeechSynthesizer(provider, RateLimitGate(0.0))

    with pytest.raises(SynthesisError) as exc:
        asyncio.run(synthesizer.synthesize(Segment(index=2, text=text), Voice.SARAH))
    assert exc.value.segment_index == 2
    assert exc.value.status_code == 401
    assert "quota exceeded" in str(exc.value)
