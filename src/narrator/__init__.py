"""
Narration Timeline - audio-synchronized narration timelines for video.

A pipeline for:
- Segmenting narration text into speakable phrases (LLM service or fallback)
- Synthesizing each phrase with ElevenLabs, OpenAI or Azure OpenAI TTS
- Resolving measured or estimated chunk durations
- Allocating per-word caption timings
- Assembling a frame-accurate timeline for video composition
"""

__version__ = "0.1.0"
