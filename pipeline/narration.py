"""
Daily Devotional - Narration

Synthesis + subtitle pipeline for one text: pick the provider, synthesize,
normalize the provider's timing and build the SRT document.
"""

from dataclasses import dataclass
from typing import Optional

from core.constants import (
    CONTENT_TYPE_MP3,
    CONTENT_TYPE_SRT,
    NARRATION_AUDIO_CATEGORY,
)
from core.db import get_translation_info
from core.logging import get_logger
from pipeline.services import PipelineServices
from pipeline.srt import build_srt
from pipeline.storage import build_storage_key
from pipeline.timing import normalize_timing
from pipeline.tts import SynthesisResult, select_provider

logger = get_logger(__name__)


@dataclass
class NarrationAssets:
    """Audio and subtitle document for one narrated text."""

    audio: bytes
    srt: str
    provider: str


@dataclass
class NarrationUrls:
    audio_url: str
    srt_url: str


def language_for_code(services: PipelineServices, code: str) -> str:
    """Catalog language of a translation code (content language when not cataloged)."""
    info = get_translation_info(services.conn, code)
    return info.language if info else services.language


async def synthesize_speech(
    services: PipelineServices,
    text: str,
    language: str,
    code: str,
) -> Optional[tuple[str, SynthesisResult]]:
    """
    Synthesize text with the provider configured for the language/code.

    Returns:
        (provider name, synthesis result), or None when no provider is
        configured. Provider errors propagate.
    """
    choice = select_provider(language, code, services.store)
    if choice is None:
        return None

    synthesizer = services.synthesizers[choice.provider.value]
    result = await synthesizer.synthesize(text, choice.voice_id, choice.credential)
    return synthesizer.name, result


async def synthesize_narration(
    services: PipelineServices,
    text: str,
    language: str,
    code: str,
) -> Optional[NarrationAssets]:
    """
    Synthesize text and derive its subtitles.

    Returns None when no provider is configured for the language/code.
    Provider and normalization errors propagate.
    """
    synthesized = await synthesize_speech(services, text, language, code)
    if synthesized is None:
        return None
    provider, result = synthesized

    timings = normalize_timing(result.timing)
    srt = build_srt(
        timings,
        max_words=services.settings.srt_max_words,
        max_chars=services.settings.srt_max_chars,
        max_duration_ms=services.settings.srt_max_duration_ms,
    )

    logger.debug(f"{provider}: {len(result.audio)} bytes, {len(timings)} words for {code}")
    return NarrationAssets(audio=result.audio, srt=srt, provider=provider)


async def upload_narration(
    services: PipelineServices,
    assets: NarrationAssets,
    date: str,
    code: str,
    include_audio: bool = True,
) -> NarrationUrls:
    """Upload audio and SRT under daily-content-audio/<date>/<code>.*"""
    audio_url = ""
    if include_audio:
        audio_url = await services.storage.upload(
            assets.audio,
            build_storage_key(NARRATION_AUDIO_CATEGORY, date, code, "mp3"),
            CONTENT_TYPE_MP3,
        )

    srt_url = await services.storage.upload(
        assets.srt,
        build_storage_key(NARRATION_AUDIO_CATEGORY, date, code, "srt"),
        CONTENT_TYPE_SRT,
    )
    return NarrationUrls(audio_url=audio_url, srt_url=srt_url)
