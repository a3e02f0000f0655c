"""
Daily Devotional - Timing Normalization

Converts the two speech-synthesis timing formats into one canonical
word-timing sequence:

- CharacterAlignment: per-character start times and durations (ElevenLabs)
- WordDurations: per-word durations with implied sequential starts (Murf)

All times are integer milliseconds.
"""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class WordTiming:
    """A word with its start and end time in milliseconds."""

    text: str
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class CharacterAlignment:
    """Parallel arrays covering every character of the synthesized text."""

    characters: list[str] = field(default_factory=list)
    start_ms: list[int] = field(default_factory=list)
    duration_ms: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class WordDurations:
    """Whitespace-split words and how long each one is spoken."""

    words: list[str] = field(default_factory=list)
    duration_ms: list[int] = field(default_factory=list)


TimingData = Union[CharacterAlignment, WordDurations]


def _append_monotonic(timings: list[WordTiming], text: str, start_ms: int, end_ms: int) -> None:
    # Provider data occasionally jitters backwards; clamp so starts never
    # precede the previous word's end and ends never precede starts.
    if timings:
        start_ms = max(start_ms, timings[-1].end_ms)
    start_ms = max(0, start_ms)
    end_ms = max(end_ms, start_ms)
    timings.append(WordTiming(text=text, start_ms=start_ms, end_ms=end_ms))


def words_from_alignment(alignment: CharacterAlignment) -> list[WordTiming]:
    """
    Group consecutive non-whitespace characters into words.

    A word starts at its first character's start and ends at its last
    character's start plus that character's duration. Whitespace characters
    are boundaries and are dropped.

    Raises:
        ValueError: If the parallel arrays differ in length
    """
    chars = alignment.characters
    starts = alignment.start_ms
    durations = alignment.duration_ms

    if not (len(chars) == len(starts) == len(durations)):
        raise ValueError(
            f"Alignment arrays differ in length: {len(chars)} characters, "
            f"{len(starts)} starts, {len(durations)} durations"
        )

    timings: list[WordTiming] = []
    current: list[str] = []
    word_start = 0
    word_end = 0

    for char, start, duration in zip(chars, starts, durations):
        if not char or char.isspace():
            if current:
                _append_monotonic(timings, "".join(current), word_start, word_end)
                current = []
            continue

        if not current:
            word_start = int(start)
        current.append(char)
        word_end = int(start) + max(0, int(duration))

    if current:
        _append_monotonic(timings, "".join(current), word_start, word_end)

    return timings


def words_from_durations(durations: WordDurations) -> list[WordTiming]:
    """
    Lay words end to end starting from zero.

    Each word starts where the previous one ended. Empty words are skipped
    but their duration still advances the clock.

    Raises:
        ValueError: If words and durations differ in length
    """
    if len(durations.words) != len(durations.duration_ms):
        raise ValueError(
            f"Word durations differ in length: {len(durations.words)} words, "
            f"{len(durations.duration_ms)} durations"
        )

    timings: list[WordTiming] = []
    clock = 0

    for word, duration in zip(durations.words, durations.duration_ms):
        start = clock
        end = start + max(0, int(duration))
        clock = end
        text = word.strip()
        if text:
            timings.append(WordTiming(text=text, start_ms=start, end_ms=end))

    return timings


def normalize_timing(data: TimingData) -> list[WordTiming]:
    """Convert either provider's timing data to canonical word timings."""
    if isinstance(data, CharacterAlignment):
        return words_from_alignment(data)
    if isinstance(data, WordDurations):
        return words_from_durations(data)
    raise TypeError(f"Unsupported timing data: {type(data).__name__}")
