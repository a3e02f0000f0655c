"""
Daily Devotional - Verse Selection

Chooses a previously unused verse for devotional content. The used-reference
ledger is the source of truth for what has already been used.
"""

import random
import re
import sqlite3
from typing import Optional

from core.db import get_used_reference_keys
from core.logging import get_logger
from core.models import VerseReference

logger = get_logger(__name__)

# "John 3:16", "1 Corinthians 13:4-7", "Song of Solomon 2:4"
REFERENCE_PATTERN = re.compile(r"^(\d?\s?[A-Za-z][A-Za-z\s]*?)\s+(\d+):(\d+)(?:-\d+)?$")

# Candidate pool of short, self-contained verses suited to a daily devotional
DEFAULT_VERSE_POOL: list[str] = [
    "Genesis 1:1",
    "Joshua 1:9",
    "Deuteronomy 31:6",
    "Numbers 6:24",
    "1 Chronicles 16:11",
    "Psalm 16:11",
    "Psalm 23:1",
    "Psalm 27:1",
    "Psalm 34:18",
    "Psalm 46:1",
    "Psalm 46:10",
    "Psalm 55:22",
    "Psalm 119:105",
    "Psalm 121:1",
    "Psalm 139:14",
    "Proverbs 3:5",
    "Proverbs 16:3",
    "Proverbs 18:10",
    "Ecclesiastes 3:1",
    "Isaiah 26:3",
    "Isaiah 40:31",
    "Isaiah 41:10",
    "Jeremiah 29:11",
    "Lamentations 3:22",
    "Micah 6:8",
    "Zephaniah 3:17",
    "Matthew 5:14",
    "Matthew 6:34",
    "Matthew 11:28",
    "Mark 10:27",
    "Luke 1:37",
    "John 3:16",
    "John 14:27",
    "John 16:33",
    "Romans 8:28",
    "Romans 12:2",
    "Romans 15:13",
    "1 Corinthians 13:4",
    "2 Corinthians 5:17",
    "Galatians 5:22",
    "Ephesians 2:8",
    "Philippians 4:6",
    "Philippians 4:13",
    "Colossians 3:23",
    "Hebrews 11:1",
    "James 1:5",
    "1 Peter 5:7",
    "1 John 4:19",
]


def parse_reference(reference: str) -> VerseReference:
    """
    Parse a display reference into its stable identity.

    Ranges ("Romans 8:28-30") are identified by their first verse.

    Raises:
        ValueError: If the reference cannot be parsed
    """
    match = REFERENCE_PATTERN.match(reference.strip())
    if not match:
        raise ValueError(f"Cannot parse verse reference: {reference!r}")

    book, chapter, verse = match.groups()
    return VerseReference(
        reference=reference.strip(),
        book=" ".join(book.split()),
        chapter=int(chapter),
        verse=int(verse),
    )


class LedgerVerseSelector:
    """
    Random choice from a verse pool, excluding everything in the ledger.

    The ledger is read fresh on every call so references recorded earlier
    in the same run are excluded too.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        pool: Optional[list[str]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.conn = conn
        self.pool = [parse_reference(ref) for ref in (pool or DEFAULT_VERSE_POOL)]
        self.rng = rng or random.Random()

    def available(self) -> list[VerseReference]:
        """Pool entries not yet in the ledger."""
        used = get_used_reference_keys(self.conn)
        return [v for v in self.pool if (v.book, v.chapter, v.verse) not in used]

    async def select_unused(self) -> VerseReference:
        """
        Pick an unused verse.

        Raises:
            RuntimeError: If every verse in the pool has been used
        """
        candidates = self.available()
        if not candidates:
            raise RuntimeError(
                f"Verse pool exhausted: all {len(self.pool)} references are in the ledger"
            )

        choice = self.rng.choice(candidates)
        logger.debug(f"Selected {choice.reference} from {len(candidates)} unused verses")
        return choice
