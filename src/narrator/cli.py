"""
Command-line interface for the narration timeline engine.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv
from openai import AsyncOpenAI

from .audio_track import build_narration_track, export_narration_track
from .config import EngineConfig
from .errors import EmptyInputError, NarrationError, RateLimitedError, SynthesisError
from .payload import build_payload, write_payload
from .pipeline import NarrationPipeline
from .rate_limit import RateLimitGate
from .segment_services import HttpSegmentationService, LLMSegmentationService
from .segmenter import Segmenter
from .tts_async import SpeechSynthesizer, check_voice, make_provider
from .voices import PROVIDERS, Voice

logger = logging.getLogger("narrator")

EXIT_EMPTY_INPUT = 2
EXIT_SYNTHESIS_FAILED = 3
EXIT_RATE_LIMITED = 4
EXIT_CONFIG = 5


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Narration text to frame-accurate audio timeline")

    # IO
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--text", help="Narration text")
    src.add_argument("--input", help="Path to a UTF-8 text file with the narration")
    ap.add_argument("--output", default="narration.json", help="Render payload JSON path")
    ap.add_argument("--audio-out", default=None, help="Also export the combined narration track")

    # Voice & provider
    ap.add_argument("--voice", default=None, help="Voice name (e.g. sarah, alloy, nova)")
    ap.add_argument(
        "--provider",
        choices=PROVIDERS,
        default=None,
        help="TTS provider (defaults to the voice's own provider)",
    )

    # Segmentation
    ap.add_argument(
        "--segmenter",
        choices=["auto", "http", "llm", "none"],
        default="auto",
        help="auto: http if NARRATOR_SEGMENTER_URL is set, else llm if GROQ_API_KEY is set",
    )
    ap.add_argument(
        "--no-segments",
        action="store_true",
        help="Synthesize the whole text as a single segment",
    )

    # Timing
    ap.add_argument("--fps", type=int, default=None, help="Frame rate of the composition")
    ap.add_argument(
        "--trailing-silence",
        type=float,
        default=None,
        help="Seconds of provider end-pause excluded from word highlighting",
    )
    ap.add_argument("--interval", type=float, default=None, help="Min seconds between TTS calls")
    ap.add_argument("--max-concurrent", type=int, default=None, help="Max TTS calls in flight")

    # Logging
    ap.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return ap.parse_args(argv)


def apply_overrides(config: EngineConfig, args: argparse.Namespace) -> EngineConfig:
    """CLI flags win over environment values."""
    overrides = {}
    if args.voice:
        overrides["voice"] = Voice.parse(args.voice)
    if args.fps is not None:
        overrides["fps"] = args.fps
    if args.trailing_silence is not None:
        overrides["trailing_silence_seconds"] = args.trailing_silence
    if args.interval is not None:
        overrides["request_interval"] = args.interval
    if args.max_concurrent is not None:
        overrides["max_concurrent"] = args.max_concurrent
    return replace(config, **overrides)


def make_segmenter(config: EngineConfig, mode: str, use_segments: bool = True) -> Segmenter:
    """Pick the segmentation service for `mode`."""
    service = None
    if mode == "http" or (mode == "auto" and config.segmenter_url):
        if not config.segmenter_url:
            logger.warning("NARRATOR_SEGMENTER_URL is not set; using fallback segmentation")
        else:
            service = HttpSegmentationService(config.segmenter_url)
    elif mode == "llm" or (mode == "auto" and config.segmenter_api_key):
        if not config.segmenter_api_key:
            logger.warning("GROQ_API_KEY is not set; using fallback segmentation")
        else:
            client = AsyncOpenAI(api_key=config.segmenter_api_key, base_url=config.segmenter_base_url)
            service = LLMSegmentationService(client, model=config.segmenter_model)
    return Segmenter(service=service, use_segments=use_segments)


def read_text(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    return Path(args.input).read_text(encoding="utf-8")


async def main_async(argv: list[str] | None = None) -> int:
    """Main async CLI entry point."""
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = apply_overrides(EngineConfig.from_env(), args)
        provider = make_provider(config, args.provider or config.voice.default_provider)
        check_voice(config.voice, provider.name)
    except NarrationError as e:
        logger.error(str(e))
        return EXIT_CONFIG

    synthesizer = SpeechSynthesizer(
        provider, RateLimitGate(config.request_interval, config.max_concurrent)
    )
    pipeline = NarrationPipeline(
        make_segmenter(config, args.segmenter, use_segments=not args.no_segments),
        synthesizer,
        trailing_silence_seconds=config.trailing_silence_seconds,
        progress=not args.no_progress,
    )

    try:
        result = await pipeline.run(read_text(args), config.voice)
    except EmptyInputError as e:
        logger.error(str(e))
        return EXIT_EMPTY_INPUT
    except RateLimitedError as e:
        logger.error(f"Speech provider is rate limiting requests, try again later: {e}")
        return EXIT_RATE_LIMITED
    except SynthesisError as e:
        logger.error(str(e))
        return EXIT_SYNTHESIS_FAILED
    except NarrationError as e:
        logger.error(str(e))
        return EXIT_CONFIG

    write_payload(build_payload(result, fps=config.fps), args.output)

    if args.audio_out:
        export_narration_track(build_narration_track(result), args.audio_out)

    logger.info(
        f"Done: {len(result.timeline)} segments, {result.total_duration:.2f}s "
        f"at {config.fps} fps -> {args.output}"
    )
    return 0


def main() -> None:
    """Main CLI entry point."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
