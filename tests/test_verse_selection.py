"""
Tests for pipeline/verse_selection.py
"""

import random

import pytest

from core.db import insert_used_reference
from core.models import UsedReference
from pipeline.verse_selection import DEFAULT_VERSE_POOL, LedgerVerseSelector, parse_reference


class TestParseReference:
    def test_simple(self):
        verse = parse_reference("John 3:16")

        assert (verse.book, verse.chapter, verse.verse) == ("John", 3, 16)
        assert verse.reference == "John 3:16"

    def test_numbered_book_and_range(self):
        verse = parse_reference("1 Corinthians 13:4-7")

        assert (verse.book, verse.chapter, verse.verse) == ("1 Corinthians", 13, 4)
        assert verse.reference == "1 Corinthians 13:4-7"

    def test_multi_word_book(self):
        assert parse_reference("Song of Solomon 2:4").book == "Song of Solomon"

    @pytest.mark.parametrize("reference", ["", "John", "John 3", "3:16"])
    def test_invalid(self, reference):
        with pytest.raises(ValueError):
            parse_reference(reference)

    def test_default_pool_parses(self):
        identities = {(v.book, v.chapter, v.verse) for v in map(parse_reference, DEFAULT_VERSE_POOL)}
        assert len(identities) == len(DEFAULT_VERSE_POOL)


class TestLedgerVerseSelector:
    @pytest.mark.asyncio
    async def test_excludes_used(self, db_conn):
        insert_used_reference(db_conn, UsedReference(
            book="John", chapter=3, verse=16, verse_reference="John 3:16", used_date="2026-01-01",
        ))
        db_conn.commit()
        selector = LedgerVerseSelector(db_conn, pool=["John 3:16", "Psalm 23:1"])

        for _ in range(5):
            verse = await selector.select_unused()
            assert verse.reference == "Psalm 23:1"

    @pytest.mark.asyncio
    async def test_identity_not_display_text(self, db_conn):
        insert_used_reference(db_conn, UsedReference(
            book="Romans", chapter=8, verse=28, verse_reference="Romans 8:28-30", used_date="2026-01-01",
        ))
        db_conn.commit()
        selector = LedgerVerseSelector(db_conn, pool=["Romans 8:28", "Micah 6:8"])

        assert [v.reference for v in selector.available()] == ["Micah 6:8"]

    @pytest.mark.asyncio
    async def test_exhausted(self, db_conn):
        insert_used_reference(db_conn, UsedReference(
            book="Micah", chapter=6, verse=8, verse_reference="Micah 6:8", used_date="2026-01-01",
        ))
        db_conn.commit()
        selector = LedgerVerseSelector(db_conn, pool=["Micah 6:8"])

        with pytest.raises(RuntimeError, match="exhausted"):
            await selector.select_unused()

    @pytest.mark.asyncio
    async def test_seeded_choice(self, db_conn):
        pool = ["John 3:16", "Psalm 23:1", "Romans 8:28", "Micah 6:8"]
        first = LedgerVerseSelector(db_conn, pool=pool, rng=random.Random(7))
        second = LedgerVerseSelector(db_conn, pool=pool, rng=random.Random(7))

        assert (await first.select_unused()) == (await second.select_unused())

    def test_default_pool(self, db_conn):
        assert len(LedgerVerseSelector(db_conn).available()) == len(DEFAULT_VERSE_POOL)
