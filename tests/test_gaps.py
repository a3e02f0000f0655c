"""
Tests for pipeline/gaps.py
"""

from core.models import ContentRecord, TranslationRecord
from pipeline.gaps import STEP_ORDER, PendingStep, StepKind, analyze_gaps, steps_of_kind


ACTIVE = ["ESV", "KJV"]


def devotional(**fields) -> ContentRecord:
    values = dict(
        id=1,
        post_date="2026-03-01",
        mode="devotional",
        content_text="For God so loved the world",
        verse_reference="John 3:16",
        devotional_reflection="reflection",
        camera_script="script",
        meditation_script="meditation",
        background_prompt="prompt",
        status="generated",
    )
    values.update(fields)
    return ContentRecord(**values)


def translation(code: str, text: str = "verse", audio_url=None, long_text: str = "") -> TranslationRecord:
    return TranslationRecord(
        daily_content_id=1,
        translation_code=code,
        translated_text=text,
        long_text=long_text,
        audio_url=audio_url,
    )


def kinds(steps):
    return [step.kind for step in steps]


class TestStepOrder:
    def test_order(self):
        assert STEP_ORDER[0] == StepKind.SELECT_PRIMARY
        assert STEP_ORDER[-1] == StepKind.ADVANCE_STATUS
        assert STEP_ORDER.index(StepKind.FETCH_TRANSLATION) < STEP_ORDER.index(StepKind.SYNTHESIZE_NARRATION)


class TestAnalyzeGaps:
    def test_empty_devotional(self):
        record = ContentRecord(id=1, post_date="2026-03-01", mode="devotional")

        steps = analyze_gaps(record, [], ACTIVE)

        assert steps == [PendingStep(StepKind.SELECT_PRIMARY), PendingStep(StepKind.ADVANCE_STATUS)]

    def test_empty_affirmation(self):
        record = ContentRecord(id=1, post_date="2026-03-01", mode="affirmation")

        steps = analyze_gaps(record, [], ACTIVE)

        assert kinds(steps) == [StepKind.GENERATE_QUOTE, StepKind.ADVANCE_STATUS]

    def test_reference_without_text_keeps_reference(self):
        record = devotional(content_text="")

        steps = kinds(analyze_gaps(record, [], ACTIVE))

        assert StepKind.FETCH_PRIMARY_TEXT in steps
        assert StepKind.SELECT_PRIMARY not in steps
        # Translations wait until the primary text is back
        assert StepKind.FETCH_TRANSLATION not in steps

    def test_text_without_reference_needs_selection(self):
        record = devotional(verse_reference=None)

        steps = kinds(analyze_gaps(record, [], ACTIVE))

        assert steps[0] == StepKind.SELECT_PRIMARY
        assert StepKind.FETCH_PRIMARY_TEXT not in steps

    def test_complete_record(self):
        rows = [translation("ESV", audio_url="a"), translation("KJV", audio_url="b")]

        assert analyze_gaps(devotional(), rows, ACTIVE) == []

    def test_missing_translations(self):
        steps = analyze_gaps(devotional(), [translation("ESV", audio_url="a")], ["esv", "kjv", "niv"])

        fetch = steps_of_kind(steps, StepKind.FETCH_TRANSLATION)
        assert [s.code for s in fetch] == ["KJV", "NIV"]

    def test_row_without_text_needs_fetch(self):
        steps = analyze_gaps(devotional(), [translation("ESV", text=""), translation("KJV", audio_url="b")], ACTIVE)

        assert [s.code for s in steps_of_kind(steps, StepKind.FETCH_TRANSLATION)] == ["ESV"]
        assert steps_of_kind(steps, StepKind.SYNTHESIZE_NARRATION) == []

    def test_missing_narratives(self):
        record = devotional(devotional_reflection="", background_prompt="")
        rows = [translation("ESV", audio_url="a"), translation("KJV", audio_url="b")]

        steps = analyze_gaps(record, rows, ACTIVE)

        assert steps == [
            PendingStep(StepKind.GENERATE_NARRATIVE, field="devotional_reflection"),
            PendingStep(StepKind.GENERATE_NARRATIVE, field="background_prompt"),
        ]

    def test_affirmation_ignores_reflection_and_active_codes(self):
        record = devotional(mode="affirmation", verse_reference=None, devotional_reflection="")

        steps = analyze_gaps(record, [], ACTIVE)

        assert steps == [PendingStep(StepKind.FETCH_TRANSLATION, code="EN")]

    def test_audio_missing(self):
        rows = [translation("ESV"), translation("KJV", audio_url="b")]

        steps = analyze_gaps(devotional(), rows, ACTIVE)

        assert steps == [PendingStep(StepKind.SYNTHESIZE_NARRATION, code="ESV")]

    def test_long_text_counts_as_narration_text(self):
        rows = [translation("ESV", text="", long_text="whole chapter"), translation("KJV", audio_url="b")]

        steps = analyze_gaps(devotional(), rows, ACTIVE)

        assert PendingStep(StepKind.SYNTHESIZE_NARRATION, code="ESV") in steps

    def test_meditation_audio_opt_in(self):
        rows = [translation("ESV", audio_url="a"), translation("KJV", audio_url="b")]

        assert analyze_gaps(devotional(), rows, ACTIVE) == []
        assert analyze_gaps(devotional(), rows, ACTIVE, include_meditation_audio=True) == [
            PendingStep(StepKind.MEDITATION_AUDIO),
        ]
        record = devotional(meditation_audio_url="https://cdn.example.com/m.mp3")
        assert analyze_gaps(record, rows, ACTIVE, include_meditation_audio=True) == []

    def test_status_only_advances_from_empty(self):
        rows = [translation("ESV", audio_url="a"), translation("KJV", audio_url="b")]

        assert analyze_gaps(devotional(status="empty"), rows, ACTIVE) == [PendingStep(StepKind.ADVANCE_STATUS)]
        assert analyze_gaps(devotional(status="approved"), rows, ACTIVE) == []

    def test_steps_follow_order(self):
        record = devotional(camera_script="", status="empty")
        rows = [translation("ESV")]

        steps = analyze_gaps(record, rows, ACTIVE, include_meditation_audio=True)

        positions = [STEP_ORDER.index(k) for k in kinds(steps)]
        assert positions == sorted(positions)
