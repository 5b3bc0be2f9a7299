"""
Tuning constants for segmentation, duration estimation and word timing.
"""

# Segmentation fallback
FALLBACK_LONG_PIECE_CHARS = 100  # single piece longer than this is re-windowed
FALLBACK_WORDS_PER_WINDOW = 15
SERVICE_MIN_WORDS = 8
SERVICE_MAX_WORDS = 25

# Duration estimation (deliberately biased long)
ESTIMATE_WORDS_PER_SECOND = 1.2
ESTIMATE_CHARS_PER_SECOND = 8.0
ESTIMATE_BUFFER_SECONDS = 1.0
ESTIMATE_FLOOR_SECONDS = 2.0

# Word timing
MIN_EFFECTIVE_DURATION = 0.1  # seconds
TIMING_DECIMALS = 3  # millisecond precision

# Synthesis
DEFAULT_REQUEST_INTERVAL = 0.1  # seconds between provider calls
DEFAULT_MAX_CONCURRENT = 1
DEFAULT_FPS = 60

ELEVENLABS_BASE_URL = "https://api.elevenlabs.io"
ELEVENLABS_MODEL_ID = "eleven_monolingual_v1"
OPENAI_TTS_MODEL = "tts-1"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"
SEGMENTER_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"
USER_AGENT = "narration-timeline/0.1"
