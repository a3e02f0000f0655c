"""
Daily Devotional - Content Gap Analyzer

Pure read-and-decide: given a content record and its translation rows,
list the steps still required to complete the day, in orchestration order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.constants import (
    AFFIRMATION_TRANSLATION_CODE,
    ContentModeEnum,
    ContentStatusEnum,
    NARRATIVE_FIELDS_BY_MODE,
)
from core.models import ContentRecord, TranslationRecord


class StepKind(str, Enum):
    """Kinds of pending work, declared in the order they run."""

    SELECT_PRIMARY = "select_primary"
    FETCH_PRIMARY_TEXT = "fetch_primary_text"
    GENERATE_QUOTE = "generate_quote"
    FETCH_TRANSLATION = "fetch_translation"
    GENERATE_NARRATIVE = "generate_narrative"
    SYNTHESIZE_NARRATION = "synthesize_narration"
    MEDITATION_AUDIO = "meditation_audio"
    ADVANCE_STATUS = "advance_status"


STEP_ORDER: list[StepKind] = list(StepKind)


@dataclass(frozen=True)
class PendingStep:
    """One unit of missing work; code/field narrow it to a translation or column."""

    kind: StepKind
    code: Optional[str] = None
    field: Optional[str] = None


def analyze_gaps(
    record: ContentRecord,
    translations: list[TranslationRecord],
    active_codes: list[str],
    include_meditation_audio: bool = False,
) -> list[PendingStep]:
    """
    Decide which steps a record still needs.

    Rules are independent of each other:
    - no verse reference: selection (devotional); no quote: quote generation
    - verse reference chosen but its text missing: fetch the text only,
      keeping the reference
    - primary present, an active code has no row with text: fetch for that code
      (affirmation content only ever has the single EN row)
    - primary present, a narrative field empty: generate that field
    - a row has narration text but no audio URL: synthesize it
    - meditation script present without audio: meditation track (opt-in)
    - status still empty: advance it

    Steps gated on primary content are left out while it is missing; the
    orchestrator re-analyzes after each stage so they appear once it exists.
    """
    mode = ContentModeEnum(record.mode)
    steps: list[PendingStep] = []

    if not record.has_primary:
        if mode == ContentModeEnum.DEVOTIONAL and record.verse_reference:
            steps.append(PendingStep(StepKind.FETCH_PRIMARY_TEXT))
        elif mode == ContentModeEnum.DEVOTIONAL:
            steps.append(PendingStep(StepKind.SELECT_PRIMARY))
        else:
            steps.append(PendingStep(StepKind.GENERATE_QUOTE))

    by_code = {t.translation_code.upper(): t for t in translations}

    if record.has_primary:
        codes = active_codes if mode == ContentModeEnum.DEVOTIONAL else [AFFIRMATION_TRANSLATION_CODE]
        for code in codes:
            existing = by_code.get(code.upper())
            if existing is None or not existing.translated_text:
                steps.append(PendingStep(StepKind.FETCH_TRANSLATION, code=code.upper()))

        for field in NARRATIVE_FIELDS_BY_MODE[mode]:
            if not record.field_value(field.value):
                steps.append(PendingStep(StepKind.GENERATE_NARRATIVE, field=field.value))

    for translation in translations:
        if translation.narration_text and not translation.audio_url:
            steps.append(PendingStep(StepKind.SYNTHESIZE_NARRATION, code=translation.translation_code))

    if include_meditation_audio and record.meditation_script and not record.meditation_audio_url:
        steps.append(PendingStep(StepKind.MEDITATION_AUDIO))

    if record.status == ContentStatusEnum.EMPTY.value:
        steps.append(PendingStep(StepKind.ADVANCE_STATUS))

    return steps


def steps_of_kind(steps: list[PendingStep], kind: StepKind) -> list[PendingStep]:
    """Filter a gap list down to one kind of step."""
    return [step for step in steps if step.kind == kind]
