"""
Segmentation service backends: a plain HTTP endpoint or an LLM.
"""

import json
import logging

import httpx
from openai import APIError, AsyncOpenAI

from .constants import SEGMENTER_MODEL, SERVICE_MAX_WORDS, SERVICE_MIN_WORDS, USER_AGENT
from .errors import SegmentationServiceError

logger = logging.getLogger("narrator")

SYSTEM_PROMPT = f"""You are an expert text segmentation specialist. Your job is to divide text into natural, meaningful segments that work well for text-to-speech and video subtitles.

Rules for segmentation:
1. Group related ideas together in the same segment
2. Each segment should feel complete and natural when spoken
3. Segments should be {SERVICE_MIN_WORDS}-{SERVICE_MAX_WORDS} words each for optimal pacing
4. Break at natural pauses: after complete thoughts, before transitions, at punctuation
5. Keep every word of the original text, in the original order, without rewording
6. Don't break in the middle of important phrases or concepts

Return ONLY a JSON array of strings, where each string is a text segment. Do not include any other text, explanations, or formatting.

Example input: "Quantum physics is fascinating. It deals with the smallest particles in the universe. These particles behave in ways that seem impossible."

Example output: ["Quantum physics is fascinating.", "It deals with the smallest particles in the universe.", "These particles behave in ways that seem impossible."]"""


def parse_segments_json(content: str | None) -> list:
    """Parse a JSON array of segments, tolerating prose around it."""
    if not content or not content.strip():
        raise SegmentationServiceError("No segmentation result from model")
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        start = content.find("[")
        end = content.rfind("]")
        if start == -1 or end <= start:
            raise SegmentationServiceError("Model did not return valid JSON") from None
        try:
            data = json.loads(content[start : end + 1])
        except json.JSONDecodeError:
            raise SegmentationServiceError("Model did not return valid JSON") from None
    if not isinstance(data, list):
        raise SegmentationServiceError("Model did not return a JSON array")
    return data


class HttpSegmentationService:
    """POST {text} -> {segments: [...]} against a segmentation endpoint."""

    def __init__(self, url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self.url = url
        self._client = client
        self.timeout = timeout

    async def segment(self, text: str) -> list[str]:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        try:
            if self._client is not None:
                r = await self._client.post(self.url, json={"text": text}, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    r = await client.post(self.url, json={"text": text}, headers=headers)
        except httpx.HTTPError as e:
            raise SegmentationServiceError(f"Segmentation request failed: {e}") from e

        if r.status_code != 200:
            raise SegmentationServiceError(
                f"Segmentation service error: {r.status_code} {r.text[:300]}"
            )
        try:
            data = r.json()
        except ValueError:
            raise SegmentationServiceError("Segmentation service returned invalid JSON") from None

        segments = data.get("segments") if isinstance(data, dict) else None
        if not isinstance(segments, list):
            raise SegmentationServiceError("Invalid segmentation response")
        return segments


class LLMSegmentationService:
    """Phrase grouping with any OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = SEGMENTER_MODEL,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ):
        if client is None:
            raise SegmentationServiceError("LLM client is not initialized (missing API key)")
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def segment(self, text: str) -> list[str]:
        user = f'Segment this text into natural, meaningful chunks for text-to-speech:\n\n"{text}"'
        logger.debug(f"Segmenting {len(text)} chars with {self.model}")
        try:
            chat = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,  # low for consistent formatting
                top_p=0.9,
            )
        except APIError as e:
            raise SegmentationServiceError(f"Segmentation model call failed: {e}") from e

        if not chat.choices:
            raise SegmentationServiceError("No segmentation result from model")
        return parse_segments_json(chat.choices[0].message.content)
