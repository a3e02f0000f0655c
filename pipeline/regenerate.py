"""
Daily Devotional - Regenerate

Explicit, operator-requested regeneration of one field. This is the only
path that overwrites values the pipeline has already filled:
- a narrative field (devotional_reflection, camera_script, ...)
- "tts": re-synthesize audio + subtitles for one translation code
- "srt": re-synthesize and replace only the subtitle document
"""

from typing import Optional

from core.constants import ContentModeEnum, NARRATIVE_FIELDS_BY_MODE, NarrativeFieldEnum
from core.db import (
    get_content_by_id,
    get_translation,
    update_content_fields,
    update_translation_fields,
)
from core.logging import get_logger
from pipeline.day_runner import ProgressCallback, emit_progress
from pipeline.narration import language_for_code, synthesize_narration, upload_narration
from pipeline.services import PipelineServices

logger = get_logger(__name__)

AUDIO_FIELDS = ("tts", "srt")
REGENERATE_FIELDS = tuple(f.value for f in NarrativeFieldEnum) + AUDIO_FIELDS


async def regenerate_field(
    services: PipelineServices,
    content_id: int,
    field: str,
    code: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """
    Regenerate one field of a content record.

    Args:
        services: Pipeline services
        content_id: Content record ID
        field: Narrative field name, "tts" or "srt"
        code: Translation code (required for "tts"/"srt")
        on_progress: Optional progress sink

    Returns:
        The new narrative text, or the new URL (audio for "tts", SRT for "srt")

    Raises:
        ValueError: Unknown field, missing record/translation/code, or a
            field that does not apply to the record's mode
        RuntimeError: Storage or TTS provider not configured
    """
    if field not in REGENERATE_FIELDS:
        raise ValueError(f"Unknown field: {field!r}. Expected one of: {', '.join(REGENERATE_FIELDS)}")

    record = get_content_by_id(services.conn, content_id)
    if record is None:
        raise ValueError(f"Content record not found: {content_id}")

    if field in AUDIO_FIELDS:
        return await _regenerate_audio(services, record.id, record.post_date, field, code, on_progress)

    allowed = [f.value for f in NARRATIVE_FIELDS_BY_MODE[ContentModeEnum(record.mode)]]
    if field not in allowed:
        raise ValueError(f"{field} does not apply to {record.mode} content")
    if not record.has_primary:
        raise ValueError(f"Content record {content_id} has no primary text yet")

    value = await services.narratives.generate(field, record)
    if not value:
        raise RuntimeError(f"Empty {field} generated")

    update_content_fields(services.conn, record.id, {field: value})
    services.conn.commit()

    emit_progress(on_progress, field, f"Regenerated {field} for content {content_id}")
    return value


async def _regenerate_audio(
    services: PipelineServices,
    content_id: int,
    date: str,
    field: str,
    code: Optional[str],
    on_progress: Optional[ProgressCallback],
) -> str:
    if not code:
        raise ValueError("A translation code is required for tts/srt regeneration")
    code = code.upper()

    translation = get_translation(services.conn, content_id, code)
    if translation is None:
        raise ValueError(f"No {code} translation for content {content_id}")
    if not translation.narration_text:
        raise ValueError(f"{code} translation of content {content_id} has no text to narrate")

    if services.storage is None:
        raise RuntimeError("Storage is not configured")

    language = language_for_code(services, code)
    assets = await synthesize_narration(services, translation.narration_text, language, code)
    if assets is None:
        raise RuntimeError(f"No TTS provider configured for {code} ({language})")

    include_audio = field == "tts"
    urls = await upload_narration(services, assets, date, code, include_audio=include_audio)

    updates = {"srt_url": urls.srt_url}
    if include_audio:
        updates["audio_url"] = urls.audio_url
    update_translation_fields(services.conn, translation.id, updates)
    services.conn.commit()

    emit_progress(on_progress, field, f"Regenerated {field} for {code} (content {content_id})")
    return urls.audio_url if include_audio else urls.srt_url
