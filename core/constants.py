"""
Daily Devotional - Constants

Enums, mappings, and constant values used throughout the pipeline.
"""

from enum import Enum


class ContentModeEnum(str, Enum):
    """Kind of daily content produced for a date."""

    DEVOTIONAL = "devotional"
    AFFIRMATION = "affirmation"


class ContentStatusEnum(str, Enum):
    """Lifecycle status of a daily content record."""

    EMPTY = "empty"
    GENERATED = "generated"
    # Owned by the human review workflow, never set by the pipeline
    ASSIGNED = "assigned"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class TranslationSourceEnum(str, Enum):
    """Where a translation row's text came from."""

    API = "api"
    DATABASE = "database"


class NarrativeFieldEnum(str, Enum):
    """Generated prose fields stored on a content record."""

    DEVOTIONAL_REFLECTION = "devotional_reflection"
    CAMERA_SCRIPT = "camera_script"
    MEDITATION_SCRIPT = "meditation_script"
    BACKGROUND_PROMPT = "background_prompt"


class TTSProviderEnum(str, Enum):
    """Supported speech synthesis backends."""

    ELEVENLABS = "elevenlabs"
    MURF = "murf"


class ProgressKindEnum(str, Enum):
    """Kinds of progress events emitted by the orchestrators."""

    PROGRESS = "progress"
    ERROR = "error"
    COMPLETE = "complete"


# Narrative fields generated for each mode, in generation order
NARRATIVE_FIELDS_BY_MODE: dict[ContentModeEnum, list[NarrativeFieldEnum]] = {
    ContentModeEnum.DEVOTIONAL: [
        NarrativeFieldEnum.DEVOTIONAL_REFLECTION,
        NarrativeFieldEnum.CAMERA_SCRIPT,
        NarrativeFieldEnum.MEDITATION_SCRIPT,
        NarrativeFieldEnum.BACKGROUND_PROMPT,
    ],
    ContentModeEnum.AFFIRMATION: [
        NarrativeFieldEnum.CAMERA_SCRIPT,
        NarrativeFieldEnum.MEDITATION_SCRIPT,
        NarrativeFieldEnum.BACKGROUND_PROMPT,
    ],
}


# Content records are keyed by language; the pipeline only produces English rows
DEFAULT_CONTENT_LANGUAGE: str = "en"

# Translation whose text becomes the record's primary content in devotional mode
PRIMARY_TRANSLATION_CODE: str = "KJV"

# The single translation row created for affirmation content
AFFIRMATION_TRANSLATION_CODE: str = "EN"

# Title length for affirmation records
TITLE_MAX_LENGTH: int = 100


# ============================================================================
# Rate Limiting
# ============================================================================


# Fixed delays (milliseconds) applied after text-source calls for these codes
TEXT_SOURCE_DELAYS_MS: dict[str, int] = {
    "ESV": 200,
}

# Fixed delay (milliseconds) between successive synthesis calls
TTS_DELAY_MS: int = 500

# Retry policy for provider 429 responses
TTS_RATE_LIMIT_ATTEMPTS: int = 3


# ============================================================================
# Speech Synthesis
# ============================================================================


ELEVENLABS_API_BASE: str = "https://api.elevenlabs.io/v1"
ELEVENLABS_MODEL_ID: str = "eleven_multilingual_v2"
ELEVENLABS_OUTPUT_FORMAT: str = "mp3_44100_128"

MURF_API_URL: str = "https://api.murf.ai/v1/speech/generate"
MURF_MAX_CHARS: int = 2800  # Murf rejects requests above 3000 characters

TTS_HTTP_TIMEOUT: int = 120


# ============================================================================
# Subtitles
# ============================================================================


SRT_MAX_WORDS_PER_CUE: int = 8
SRT_MAX_CHARS_PER_CUE: int = 48
SRT_MAX_CUE_DURATION_MS: int = 5000


# ============================================================================
# Storage
# ============================================================================


NARRATION_AUDIO_CATEGORY: str = "daily-content-audio"
MEDITATION_AUDIO_CATEGORY: str = "meditation-audio"

CONTENT_TYPE_MP3: str = "audio/mpeg"
CONTENT_TYPE_SRT: str = "application/x-subrip"

STORAGE_CACHE_CONTROL: str = "public, max-age=31536000, immutable"


# ============================================================================
# Text Generation
# ============================================================================


# How many recent quotes are shown to the model for de-duplication
QUOTE_DEDUP_LIMIT: int = 30

# Attempts before accepting a quote that still resembles a recent one
QUOTE_MAX_ATTEMPTS: int = 3

# rapidfuzz token_sort_ratio above which two quotes count as the same
QUOTE_SIMILARITY_THRESHOLD: float = 80.0

LLM_MAX_TOKENS: int = 1024


# ============================================================================
# Meditation Audio
# ============================================================================


# Background music level relative to the speech track
MUSIC_VOLUME_DB: float = -18.0
