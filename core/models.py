"""
Daily Devotional - Pydantic Models

Data models for content records, translations, the used-reference ledger,
and the progress/result types exchanged with callers.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from core.constants import (
    ContentModeEnum,
    ContentStatusEnum,
    PRIMARY_TRANSLATION_CODE,
    ProgressKindEnum,
    SRT_MAX_CHARS_PER_CUE,
    SRT_MAX_CUE_DURATION_MS,
    SRT_MAX_WORDS_PER_CUE,
    TranslationSourceEnum,
    TTS_DELAY_MS,
)


# ============================================================================
# Content Records
# ============================================================================


class ContentRecord(BaseModel):
    """One day of content for a (date, mode, language)."""

    id: Optional[int] = None
    post_date: str  # YYYY-MM-DD
    mode: str = ContentModeEnum.DEVOTIONAL.value
    language: str = "en"
    title: str = ""
    content_text: str = ""  # Primary verse text or quote
    verse_reference: Optional[str] = None

    # Narrative fields
    devotional_reflection: str = ""
    camera_script: str = ""
    meditation_script: str = ""
    background_prompt: str = ""

    status: str = ContentStatusEnum.EMPTY.value
    meditation_audio_url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_primary(self) -> bool:
        """True once the verse/quote has been chosen and its text stored."""
        if self.mode == ContentModeEnum.DEVOTIONAL.value:
            return bool(self.verse_reference) and bool(self.content_text)
        return bool(self.content_text)

    def field_value(self, field: str) -> str:
        """Return a narrative field's value ("" when unset)."""
        return getattr(self, field) or ""


class TranslationRecord(BaseModel):
    """Text and narration assets for one translation/voice code of a record."""

    id: Optional[int] = None
    daily_content_id: int
    translation_code: str
    translated_text: str = ""
    long_text: str = ""  # Longer passage used for narration when present
    verse_reference: Optional[str] = None
    audio_url: Optional[str] = None
    srt_url: Optional[str] = None
    source: str = TranslationSourceEnum.API.value

    @property
    def narration_text(self) -> str:
        """Text that gets synthesized for this code."""
        return (self.long_text or self.translated_text or "").strip()


class UsedReference(BaseModel):
    """Ledger entry: a reference that has already been used on a date."""

    id: Optional[int] = None
    book: str
    chapter: int
    verse: int
    verse_reference: str
    used_date: str
    daily_content_id: Optional[int] = None


class VerseReference(BaseModel):
    """A selectable verse with its stable identity."""

    reference: str  # Display form, e.g. "John 3:16"
    book: str
    chapter: int
    verse: int


class TranslationInfo(BaseModel):
    """Catalog entry for a translation/voice code."""

    code: str
    name: str = ""
    language: str = "en"
    active: bool = True
    api_bible_id: Optional[str] = None
    delay_ms: int = 0  # Fixed delay after each text-source call


# ============================================================================
# Progress and Results
# ============================================================================


class ProgressEvent(BaseModel):
    """One event on the progress stream surfaced to callers."""

    kind: str = ProgressKindEnum.PROGRESS.value
    day: Optional[int] = None
    total: Optional[int] = None
    step: str = ""
    message: str = ""
    error: Optional[str] = None


class DayResult(BaseModel):
    """Outcome of generating one day."""

    success: bool
    error: Optional[str] = None
    already_complete: bool = False


class MonthResult(BaseModel):
    """Outcome of generating every day of a month."""

    generated: int = 0
    failed: int = 0
    skipped: int = 0
    failed_dates: list[str] = Field(default_factory=list)


# ============================================================================
# Configuration Models
# ============================================================================


class LLMConfig(BaseModel):
    """Configuration for LLM client."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o"
    temperature: float = 0.8
    max_tokens: int = 1024
    timeout: int = 60


class StorageConfig(BaseModel):
    """Object storage configuration (S3-compatible or local directory)."""

    backend: str = "s3"  # "s3", "local", or "none"
    bucket: str = ""
    region: str = ""
    endpoint_url: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_base_url: str = ""
    local_path: str = "outputs/storage"

    def is_configured(self) -> bool:
        """Check whether uploads are possible with this configuration."""
        if self.backend == "local":
            return bool(self.local_path)
        if self.backend == "s3":
            return all([self.bucket, self.access_key_id, self.secret_access_key])
        return False


class GenerationSettings(BaseModel):
    """Tunables for the generation run."""

    primary_translation_code: str = PRIMARY_TRANSLATION_CODE
    tts_delay_ms: int = TTS_DELAY_MS
    srt_max_words: int = SRT_MAX_WORDS_PER_CUE
    srt_max_chars: int = SRT_MAX_CHARS_PER_CUE
    srt_max_duration_ms: int = SRT_MAX_CUE_DURATION_MS
    meditation_audio: bool = False  # Narrate meditation scripts over background music
    background_music_dir: Optional[str] = None
