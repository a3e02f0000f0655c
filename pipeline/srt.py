"""
Daily Devotional - Subtitle Cue Builder

Groups canonical word timings into display cues and renders them as an
SRT document:

    1
    00:00:00,000 --> 00:00:02,340
    In the beginning God created

    2
    ...
"""

from dataclasses import dataclass, field

from core.constants import (
    SRT_MAX_CHARS_PER_CUE,
    SRT_MAX_CUE_DURATION_MS,
    SRT_MAX_WORDS_PER_CUE,
)
from pipeline.timing import WordTiming


@dataclass
class Cue:
    """One displayed subtitle block spanning a contiguous run of words."""

    words: list[WordTiming] = field(default_factory=list)

    @property
    def start_ms(self) -> int:
        return self.words[0].start_ms

    @property
    def end_ms(self) -> int:
        return self.words[-1].end_ms

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words)


# ============================================================================
# Timestamps
# ============================================================================


def format_srt_timestamp(ms: int) -> str:
    """
    Format milliseconds as an SRT timestamp (HH:MM:SS,mmm).

    Negative values are clamped to zero.
    """
    ms = max(0, int(ms))

    hours, remainder = divmod(ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, millis = divmod(remainder, 1000)

    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def parse_srt_timestamp(ts: str) -> int:
    """
    Parse an SRT timestamp to milliseconds.

    Accepts both "," and "." as the decimal separator.

    Raises:
        ValueError: If the timestamp is malformed
    """
    ts = ts.strip().replace(".", ",")

    parts = ts.split(":")
    if len(parts) != 3 or "," not in parts[2]:
        raise ValueError(f"Invalid SRT timestamp: {ts}")

    seconds, millis = parts[2].split(",", 1)
    try:
        return (
            int(parts[0]) * 3_600_000
            + int(parts[1]) * 60_000
            + int(seconds) * 1000
            + int(millis.ljust(3, "0")[:3])
        )
    except ValueError as e:
        raise ValueError(f"Invalid SRT timestamp: {ts}") from e


# ============================================================================
# Cue Building
# ============================================================================


def build_cues(
    timings: list[WordTiming],
    max_words: int = SRT_MAX_WORDS_PER_CUE,
    max_chars: int = SRT_MAX_CHARS_PER_CUE,
    max_duration_ms: int = SRT_MAX_CUE_DURATION_MS,
) -> list[Cue]:
    """
    Group word timings into cues.

    A word starts a new cue when adding it to the current one would exceed
    the word count, the character count of the joined text, or the cue
    duration. Every cue holds at least one word, so a single over-long word
    still forms its own cue.
    """
    cues: list[Cue] = []
    current = Cue()
    chars = 0

    for word in timings:
        if current.words:
            next_chars = chars + 1 + len(word.text)
            too_many_words = len(current.words) >= max_words
            too_long = next_chars > max_chars
            too_slow = word.end_ms - current.start_ms > max_duration_ms

            if too_many_words or too_long or too_slow:
                cues.append(current)
                current = Cue()
                chars = 0

        chars = len(word.text) if not current.words else chars + 1 + len(word.text)
        current.words.append(word)

    if current.words:
        cues.append(current)

    return cues


def render_srt(cues: list[Cue]) -> str:
    """Render cues as an SRT document (1-based, sequential numbering)."""
    blocks = []
    for index, cue in enumerate(cues, start=1):
        start = format_srt_timestamp(cue.start_ms)
        end = format_srt_timestamp(cue.end_ms)
        blocks.append(f"{index}\n{start} --> {end}\n{cue.text}\n")

    return "\n".join(blocks)


def build_srt(
    timings: list[WordTiming],
    max_words: int = SRT_MAX_WORDS_PER_CUE,
    max_chars: int = SRT_MAX_CHARS_PER_CUE,
    max_duration_ms: int = SRT_MAX_CUE_DURATION_MS,
) -> str:
    """Build the SRT document for a word-timing sequence ("" when empty)."""
    cues = build_cues(
        timings,
        max_words=max_words,
        max_chars=max_chars,
        max_duration_ms=max_duration_ms,
    )
    return render_srt(cues)
