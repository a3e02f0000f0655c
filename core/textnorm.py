"""
Daily Devotional - Text Normalization

Text cleanup for verse text returned by scripture APIs, fuzzy matching
for quote de-duplication, and chunking of long narration text.
"""

import re
import unicodedata
from typing import Optional

from rapidfuzz import fuzz

from core.constants import QUOTE_SIMILARITY_THRESHOLD
from core.logging import get_logger

logger = get_logger(__name__)


def normalize_text(text: str) -> str:
    """
    Normalize text for comparison.

    - Normalizes Unicode (NFKC)
    - Converts to lowercase
    - Collapses whitespace
    - Removes repeated punctuation

    Args:
        text: Input text

    Returns:
        Normalized text
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFKC", text)
    text = text.lower()
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"([.,!?;:])\1+", r"\1", text)
    return text.strip()


def strip_html(html: str) -> str:
    """Remove HTML tags and collapse whitespace."""
    if not html:
        return ""
    text = re.sub(r"<[^>]*>", "", html)
    return re.sub(r"\s+", " ", text).strip()


def clean_verse_text(text: str) -> str:
    """
    Clean verse text from a scripture API.

    Removes pilcrows, leading verse-number markers ("[16]" or "16 ")
    and footnote markers like "(1)", and collapses whitespace.

    Args:
        text: Raw passage text (HTML already stripped)

    Returns:
        Cleaned verse text
    """
    if not text:
        return ""

    text = text.replace("¶", "")
    text = re.sub(r"^\s*\[\d+\]\s*", "", text)
    text = re.sub(r"^\s*\d+\s+", "", text)
    text = re.sub(r"\(\d+\)", "", text)
    return re.sub(r"\s+", " ", text).strip()


def similarity_score(text1: str, text2: str) -> float:
    """
    Get similarity score between two texts.

    Uses rapidfuzz's token_sort_ratio, so word order does not matter.

    Args:
        text1: First text
        text2: Second text

    Returns:
        Similarity score (0-100)
    """
    if not text1 or not text2:
        return 0.0

    return fuzz.token_sort_ratio(normalize_text(text1), normalize_text(text2))


def is_similar(
    text1: str,
    text2: str,
    threshold: float = QUOTE_SIMILARITY_THRESHOLD,
) -> bool:
    """
    Check if two texts are similar using fuzzy matching.

    Args:
        text1: First text
        text2: Second text
        threshold: Similarity threshold (0-100)

    Returns:
        True if similarity >= threshold
    """
    return similarity_score(text1, text2) >= threshold


def find_similar_in_list(
    text: str,
    texts: list[str],
    threshold: float = QUOTE_SIMILARITY_THRESHOLD,
) -> Optional[tuple[int, float]]:
    """
    Find the most similar text in a list.

    Args:
        text: Text to look up
        texts: Candidate texts (e.g. recent quotes)
        threshold: Similarity threshold (0-100)

    Returns:
        Tuple of (index, score) or None if no match above threshold
    """
    if not text or not texts:
        return None

    best_idx = -1
    best_score = 0.0

    for idx, candidate in enumerate(texts):
        score = similarity_score(text, candidate)
        if score >= threshold and score > best_score:
            best_idx = idx
            best_score = score

    if best_idx >= 0:
        return (best_idx, best_score)

    return None


def truncate_text(text: str, max_length: int, suffix: str = "") -> str:
    """
    Truncate text to max_length characters.

    Args:
        text: Input text
        max_length: Maximum length, suffix included
        suffix: Appended when the text is cut

    Returns:
        Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


SENTENCE_DELIMITERS = (". ", "! ", "? ", ".\n", "!\n", "?\n")


def split_text_into_chunks(text: str, max_chars: int) -> list[str]:
    """
    Split text into chunks of at most max_chars characters.

    Splits at the last sentence boundary before the limit, falling back to
    the last space, then to a hard split.

    Args:
        text: Text to split
        max_chars: Maximum characters per chunk

    Returns:
        Non-empty chunks in order
    """
    if len(text) <= max_chars:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > max_chars:
        split_at = -1
        for delimiter in SENTENCE_DELIMITERS:
            idx = remaining.rfind(delimiter, 0, max_chars)
            if idx > 0 and idx + len(delimiter) > split_at:
                split_at = idx + len(delimiter)

        if split_at <= 0:
            split_at = remaining.rfind(" ", 0, max_chars)

        if split_at <= 0:
            split_at = max_chars

        chunk = remaining[:split_at].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)

    return chunks
