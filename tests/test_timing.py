"""
Tests for pipeline/timing.py
"""

import pytest

from pipeline.timing import (
    CharacterAlignment,
    WordDurations,
    WordTiming,
    normalize_timing,
    words_from_alignment,
    words_from_durations,
)


def alignment(text: str, step: int = 100) -> CharacterAlignment:
    """Evenly spaced characters, each lasting one step."""
    return CharacterAlignment(
        characters=list(text),
        start_ms=[i * step for i in range(len(text))],
        duration_ms=[step] * len(text),
    )


class TestWordsFromAlignment:
    def test_groups_characters(self):
        words = words_from_alignment(alignment("Hi there"))

        assert words == [
            WordTiming("Hi", 0, 200),
            WordTiming("there", 300, 800),
        ]

    def test_multiple_spaces_and_newlines(self):
        words = words_from_alignment(alignment(" a \n b "))

        assert [w.text for w in words] == ["a", "b"]
        assert words[0].start_ms == 100
        assert words[1].start_ms == 500

    def test_punctuation_stays_with_word(self):
        words = words_from_alignment(alignment("Amen."))
        assert words == [WordTiming("Amen.", 0, 500)]

    def test_empty(self):
        assert words_from_alignment(CharacterAlignment()) == []
        assert words_from_alignment(alignment("   ")) == []

    def test_monotonic_clamp(self):
        data = CharacterAlignment(
            characters=["a", " ", "b"],
            start_ms=[0, 500, 400],
            duration_ms=[600, 0, 100],
        )

        words = words_from_alignment(data)

        assert words[0] == WordTiming("a", 0, 600)
        # "b" starts before "a" ends in the raw data
        assert words[1].start_ms == 600
        assert words[1].end_ms >= words[1].start_ms

    def test_length_mismatch(self):
        data = CharacterAlignment(characters=["a", "b"], start_ms=[0], duration_ms=[10, 10])
        with pytest.raises(ValueError, match="differ in length"):
            words_from_alignment(data)


class TestWordsFromDurations:
    def test_sequential_starts(self):
        words = words_from_durations(WordDurations(["In", "the", "beginning"], [200, 150, 400]))

        assert words == [
            WordTiming("In", 0, 200),
            WordTiming("the", 200, 350),
            WordTiming("beginning", 350, 750),
        ]

    def test_empty_word_advances_clock(self):
        words = words_from_durations(WordDurations(["Peace", "", "be"], [300, 200, 100]))

        assert [w.text for w in words] == ["Peace", "be"]
        assert words[1].start_ms == 500

    def test_negative_duration_clamped(self):
        words = words_from_durations(WordDurations(["a", "b"], [-50, 100]))

        assert words[0] == WordTiming("a", 0, 0)
        assert words[1] == WordTiming("b", 0, 100)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            words_from_durations(WordDurations(["a"], [1, 2]))


class TestNormalizeTiming:
    def test_dispatch(self):
        assert normalize_timing(alignment("ok")) == [WordTiming("ok", 0, 200)]
        assert normalize_timing(WordDurations(["ok"], [250])) == [WordTiming("ok", 0, 250)]

    def test_unsupported(self):
        with pytest.raises(TypeError):
            normalize_timing({"words": []})

    def test_duration_property(self):
        assert WordTiming("word", 100, 350).duration_ms == 250
