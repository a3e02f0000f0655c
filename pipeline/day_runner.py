"""
Daily Devotional - Day Orchestrator

Drives one calendar day's content from empty or partial to complete.

Each stage re-reads the record, asks the gap analyzer what is still
missing, and dispatches only those steps. Fields that already have a value
are never overwritten, so a failed or interrupted day can simply be run
again.

Stage order:
1. Find or create the content record
2. Select a verse (devotional) / generate a quote (affirmation); a verse
   chosen by an earlier run is kept and only its text is fetched
3. Fetch translation text for each active code (failures are per code)
4. Generate missing narrative fields (one write for all of them)
5. Narrate every translation without audio (failures are per code)
6. Meditation audio track (opt-in, failures are non-fatal)
7. Record a newly selected verse in the used-reference ledger
8. Advance status from "empty" to "generated"
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from core.constants import (
    AFFIRMATION_TRANSLATION_CODE,
    CONTENT_TYPE_MP3,
    ContentModeEnum,
    ContentStatusEnum,
    MEDITATION_AUDIO_CATEGORY,
    ProgressKindEnum,
    QUOTE_DEDUP_LIMIT,
    TITLE_MAX_LENGTH,
    TranslationSourceEnum,
)
from core.db import (
    find_or_create_content,
    find_used_reference,
    get_active_translations,
    get_content_by_id,
    get_recent_content_texts,
    get_translation,
    get_translations_for_content,
    insert_translation,
    insert_used_reference,
    update_content_fields,
    update_translation_fields,
)
from core.logging import get_logger
from core.models import (
    ContentRecord,
    DayResult,
    ProgressEvent,
    TranslationRecord,
    UsedReference,
    VerseReference,
)
from core.textnorm import truncate_text
from pipeline.audio_mixer import mix_with_background_music
from pipeline.gaps import STEP_ORDER, PendingStep, StepKind, analyze_gaps, steps_of_kind
from pipeline.narration import (
    language_for_code,
    synthesize_narration,
    synthesize_speech,
    upload_narration,
)
from pipeline.services import PipelineServices
from pipeline.storage import build_storage_key
from pipeline.verse_selection import parse_reference

logger = get_logger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

NARRATIVE_LABELS = {
    "devotional_reflection": "devotional reflection",
    "camera_script": "camera script",
    "meditation_script": "meditation script",
    "background_prompt": "background video prompt",
}


def validate_date(date: str) -> str:
    """Check a YYYY-MM-DD date string."""
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        raise ValueError(f"Invalid date: {date!r}. Expected YYYY-MM-DD.")
    return date


def validate_mode(mode: str) -> str:
    """Check a content mode name."""
    try:
        return ContentModeEnum(mode).value
    except ValueError:
        valid = ", ".join(m.value for m in ContentModeEnum)
        raise ValueError(f"Unknown mode: {mode!r}. Expected one of: {valid}")


def emit_progress(
    on_progress: Optional[ProgressCallback],
    step: str,
    message: str,
    kind: ProgressKindEnum = ProgressKindEnum.PROGRESS,
    error: Optional[str] = None,
    day: Optional[int] = None,
    total: Optional[int] = None,
) -> ProgressEvent:
    """Log a progress event and hand it to the caller's sink."""
    event = ProgressEvent(
        kind=kind.value,
        day=day,
        total=total,
        step=step,
        message=message,
        error=error,
    )

    if kind == ProgressKindEnum.ERROR:
        logger.warning(f"[{step}] {message}")
    else:
        logger.info(f"[{step}] {message}")

    if on_progress is not None:
        on_progress(event)
    return event


@dataclass
class _DayState:
    """Per-run state shared by the stage handlers."""

    date: str
    mode: str
    on_progress: Optional[ProgressCallback]
    selected: Optional[VerseReference] = None
    ran: list[StepKind] = field(default_factory=list)
    recorded: bool = False

    def emit(self, step: str, message: str, **kwargs) -> None:
        emit_progress(self.on_progress, step, message, **kwargs)


StageHandler = Callable[[_DayState, ContentRecord, list[PendingStep]], Awaitable[None]]


class DayGenerator:
    """Generates (or completes) the content of one day."""

    def __init__(self, services: PipelineServices):
        self.services = services
        self.conn = services.conn
        self._handlers: dict[StepKind, StageHandler] = {
            StepKind.SELECT_PRIMARY: self._select_primary,
            StepKind.FETCH_PRIMARY_TEXT: self._fetch_primary_text,
            StepKind.GENERATE_QUOTE: self._generate_quote,
            StepKind.FETCH_TRANSLATION: self._fetch_translations,
            StepKind.GENERATE_NARRATIVE: self._generate_narratives,
            StepKind.SYNTHESIZE_NARRATION: self._synthesize_narrations,
            StepKind.MEDITATION_AUDIO: self._meditation_audio,
            StepKind.ADVANCE_STATUS: self._advance_status,
        }

    async def run(
        self,
        date: str,
        mode: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DayResult:
        """
        Fill every gap of the (date, mode) record.

        Returns:
            DayResult; success is False when a step outside the per-code
            narration loop failed (the error is also emitted as a
            "fatal" progress event)

        Raises:
            ValueError: On a malformed date or unknown mode
        """
        validate_date(date)
        mode = validate_mode(mode)
        state = _DayState(date=date, mode=mode, on_progress=on_progress)

        try:
            record, created = find_or_create_content(self.conn, date, mode, self.services.language)
            self.conn.commit()

            if created:
                state.emit("create_row", f"Created content row for {date} ({mode})")
            else:
                state.emit("existing_row", f"Found existing content row for {date} ({mode}), checking for gaps")

            for kind in STEP_ORDER:
                if kind == StepKind.ADVANCE_STATUS:
                    self._record_reference(state, self._reload(record))

                record = self._reload(record)
                steps = steps_of_kind(self._analyze(record), kind)
                if not steps:
                    continue

                state.ran.append(kind)
                await self._handlers[kind](state, record, steps)

            already_complete = not created and not state.ran and not state.recorded
            return DayResult(success=True, already_complete=already_complete)

        except Exception as e:
            logger.exception(f"Failed to generate {mode} for {date}")
            state.emit(
                "fatal",
                f"Pipeline failed for {date}: {e}",
                kind=ProgressKindEnum.ERROR,
                error=str(e),
            )
            return DayResult(success=False, error=str(e))

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def _reload(self, record: ContentRecord) -> ContentRecord:
        fresh = get_content_by_id(self.conn, record.id)
        if fresh is None:
            raise RuntimeError(f"Content record {record.id} disappeared")
        return fresh

    def _analyze(self, record: ContentRecord) -> list[PendingStep]:
        translations = get_translations_for_content(self.conn, record.id)
        active_codes = [info.code for info in get_active_translations(self.conn)]
        return analyze_gaps(
            record,
            translations,
            active_codes,
            include_meditation_audio=self.services.settings.meditation_audio,
        )

    async def _fetch_text(self, reference: str, code: str, granularity: str = "short") -> Optional[str]:
        limiter = self.services.limiters.for_code(code)
        try:
            return await self.services.text_source.fetch_text(reference, code, granularity)
        finally:
            if limiter is not None:
                await limiter.wait()

    def _upsert_translation(self, record: ContentRecord, code: str, text: str, source: str) -> None:
        existing = get_translation(self.conn, record.id, code)
        if existing is None:
            insert_translation(self.conn, TranslationRecord(
                daily_content_id=record.id,
                translation_code=code,
                translated_text=text,
                verse_reference=record.verse_reference,
                source=source,
            ))
        else:
            update_translation_fields(self.conn, existing.id, {
                "translated_text": text,
                "verse_reference": record.verse_reference,
            })
        self.conn.commit()

    # ------------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------------

    async def _store_primary_text(self, record: ContentRecord, reference: str) -> None:
        primary_code = self.services.settings.primary_translation_code
        text = await self._fetch_text(reference, primary_code)

        fields = {
            "verse_reference": reference,
            "content_text": text or f"[{reference}]",
        }
        if not record.title:
            fields["title"] = truncate_text(reference, TITLE_MAX_LENGTH)

        update_content_fields(self.conn, record.id, fields)
        self.conn.commit()

    async def _select_primary(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        verse = await self.services.selector.select_unused()
        await self._store_primary_text(record, verse.reference)

        state.selected = verse
        state.emit("verse_selection", f"Selected verse: {verse.reference}")

    async def _fetch_primary_text(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        # The reference was chosen by an earlier run; only its text is missing
        await self._store_primary_text(record, record.verse_reference)
        state.emit("verse_text", f"Fetched text for {record.verse_reference}")

    async def _generate_quote(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        recent = get_recent_content_texts(self.conn, state.mode, limit=QUOTE_DEDUP_LIMIT)
        quote = await self.services.narratives.generate_quote(recent)

        update_content_fields(self.conn, record.id, {
            "content_text": quote,
            "title": truncate_text(quote, TITLE_MAX_LENGTH),
        })
        self.conn.commit()

        state.emit("positivity_quote", "Generated positivity quote")

    async def _fetch_translations(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        if record.mode == ContentModeEnum.AFFIRMATION.value:
            # The quote itself is the only text row for affirmation content
            for step in steps:
                self._upsert_translation(record, step.code, record.content_text, TranslationSourceEnum.DATABASE.value)
                state.emit("translation_fetch", f"Stored quote as {step.code} text")
            return

        for step in steps:
            try:
                text = await self._fetch_text(record.verse_reference, step.code)
            except Exception as e:
                logger.exception(f"Translation fetch failed for {step.code}")
                state.emit(
                    "translation_error",
                    f"Skipped {step.code}: fetch failed: {e}",
                    kind=ProgressKindEnum.ERROR,
                    error=str(e),
                )
                continue

            if not text:
                state.emit("translation_skip", f"Skipped {step.code}: no text returned from API")
                continue

            self._upsert_translation(record, step.code, text, TranslationSourceEnum.API.value)
            state.emit("translation_fetch", f"Fetched {step.code} translation")

    async def _generate_narratives(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        staged: dict[str, str] = {}

        for step in steps:
            value = await self.services.narratives.generate(step.field, record)
            if not value:
                raise RuntimeError(f"Empty {NARRATIVE_LABELS[step.field]} generated")
            staged[step.field] = value
            state.emit(step.field, f"Generated {NARRATIVE_LABELS[step.field]}")

        update_content_fields(self.conn, record.id, staged)
        self.conn.commit()

    async def _synthesize_narrations(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        if self.services.storage is None:
            state.emit("tts_skip", "Storage not configured, skipping narration audio")
            return

        for step in steps:
            code = step.code
            try:
                translation = get_translation(self.conn, record.id, code)
                language = language_for_code(self.services, code)

                assets = await synthesize_narration(self.services, translation.narration_text, language, code)
                if assets is None:
                    state.emit("tts_skip", f"No TTS provider configured for {code} ({language})")
                    continue

                urls = await upload_narration(self.services, assets, state.date, code)
                update_translation_fields(self.conn, translation.id, {
                    "audio_url": urls.audio_url,
                    "srt_url": urls.srt_url,
                })
                self.conn.commit()

                state.emit("tts_complete", f"Generated TTS + SRT for {code} ({assets.provider})")
                await self.services.limiters.tts.wait()

            except Exception as e:
                logger.exception(f"Narration failed for {code}")
                state.emit(
                    "tts_error",
                    f"TTS failed for {code}: {e}",
                    kind=ProgressKindEnum.ERROR,
                    error=str(e),
                )

    async def _meditation_audio(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        if self.services.storage is None:
            state.emit("meditation_audio_skip", "Storage not configured, skipping meditation audio")
            return

        try:
            # Speech only: the meditation track carries no subtitles
            synthesized = await synthesize_speech(
                self.services,
                record.meditation_script,
                record.language,
                AFFIRMATION_TRANSLATION_CODE,
            )
            if synthesized is None:
                state.emit("meditation_audio_skip", f"No TTS provider configured for meditation audio ({record.language})")
                return

            _, speech = synthesized
            audio = await mix_with_background_music(speech.audio, self.services.settings.background_music_dir)
            url = await self.services.storage.upload(
                audio,
                build_storage_key(MEDITATION_AUDIO_CATEGORY, state.date, state.mode, "mp3"),
                CONTENT_TYPE_MP3,
            )
            update_content_fields(self.conn, record.id, {"meditation_audio_url": url})
            self.conn.commit()

            state.emit("meditation_audio", "Generated meditation audio")
            await self.services.limiters.tts.wait()

        except Exception as e:
            logger.exception("Meditation audio failed")
            state.emit(
                "meditation_audio_error",
                f"Meditation audio failed: {e}",
                kind=ProgressKindEnum.ERROR,
                error=str(e),
            )

    def _record_reference(self, state: _DayState, record: ContentRecord) -> None:
        """Add the day's verse to the ledger unless it is already there."""
        if record.mode != ContentModeEnum.DEVOTIONAL.value or not record.verse_reference:
            return

        verse = state.selected
        if verse is None:
            # Resumed day: the verse was chosen by an earlier, interrupted run
            try:
                verse = parse_reference(record.verse_reference)
            except ValueError:
                logger.warning(f"Cannot record unparseable reference: {record.verse_reference}")
                return

        if find_used_reference(self.conn, verse.book, verse.chapter, verse.verse) is not None:
            return

        insert_used_reference(self.conn, UsedReference(
            book=verse.book,
            chapter=verse.chapter,
            verse=verse.verse,
            verse_reference=verse.reference,
            used_date=state.date,
            daily_content_id=record.id,
        ))
        self.conn.commit()
        state.recorded = True
        state.emit("verse_recorded", f"Recorded {verse.reference} as used")

    async def _advance_status(self, state: _DayState, record: ContentRecord, steps: list[PendingStep]) -> None:
        # Later lifecycle states belong to the review workflow
        if record.status != ContentStatusEnum.EMPTY.value:
            return

        update_content_fields(self.conn, record.id, {"status": ContentStatusEnum.GENERATED.value})
        self.conn.commit()
        state.emit("status_update", 'Status updated to "generated"')


async def generate_day(
    services: PipelineServices,
    date: str,
    mode: str,
    on_progress: Optional[ProgressCallback] = None,
) -> DayResult:
    """Run the day orchestrator once."""
    return await DayGenerator(services).run(date, mode, on_progress)
