"""
Daily Devotional - Scripture Text Source

Fetch verse or chapter text for a translation code:
- ESV from api.esv.org
- Every other code from API.Bible, using the catalog's api_bible_id

Returns None when text is unavailable for a code (no key, unknown code,
unparseable reference, 404, empty content). Other HTTP failures raise.
"""

import re
from typing import Optional
from urllib.parse import quote

import httpx

from core.config import ConfigStore
from core.logging import get_logger
from core.models import TranslationInfo
from core.textnorm import clean_verse_text, strip_html

logger = get_logger(__name__)

ESV_API_URL = "https://api.esv.org/v3/passage/text/"
API_BIBLE_BASE = "https://rest.api.bible/v1"
HTTP_TIMEOUT = 30

# "short" narrates the verse itself, "long" the whole chapter
GRANULARITIES = ("short", "long")

# Book name to API.Bible abbreviation
BOOK_CODES: dict[str, str] = {
    "genesis": "GEN", "exodus": "EXO", "leviticus": "LEV", "numbers": "NUM",
    "deuteronomy": "DEU", "joshua": "JOS", "judges": "JDG", "ruth": "RUT",
    "1 samuel": "1SA", "2 samuel": "2SA", "1 kings": "1KI", "2 kings": "2KI",
    "1 chronicles": "1CH", "2 chronicles": "2CH", "ezra": "EZR", "nehemiah": "NEH",
    "esther": "EST", "job": "JOB", "psalms": "PSA", "psalm": "PSA", "proverbs": "PRO",
    "ecclesiastes": "ECC", "song of solomon": "SNG", "isaiah": "ISA", "jeremiah": "JER",
    "lamentations": "LAM", "ezekiel": "EZK", "daniel": "DAN", "hosea": "HOS",
    "joel": "JOL", "amos": "AMO", "obadiah": "OBA", "jonah": "JON", "micah": "MIC",
    "nahum": "NAM", "habakkuk": "HAB", "zephaniah": "ZEP", "haggai": "HAG",
    "zechariah": "ZEC", "malachi": "MAL",
    "matthew": "MAT", "mark": "MRK", "luke": "LUK", "john": "JHN",
    "acts": "ACT", "romans": "ROM", "1 corinthians": "1CO", "2 corinthians": "2CO",
    "galatians": "GAL", "ephesians": "EPH", "philippians": "PHP", "colossians": "COL",
    "1 thessalonians": "1TH", "2 thessalonians": "2TH",
    "1 timothy": "1TI", "2 timothy": "2TI", "titus": "TIT", "philemon": "PHM",
    "hebrews": "HEB", "james": "JAS", "1 peter": "1PE", "2 peter": "2PE",
    "1 john": "1JN", "2 john": "2JN", "3 john": "3JN", "jude": "JUD",
    "revelation": "REV",
}

_VERSE_PATTERN = re.compile(r"^(\d?\s?[A-Za-z][A-Za-z\s]*?)\s+(\d+):(\d+)(?:-\d+)?$")
_CHAPTER_PATTERN = re.compile(r"^(\d?\s?[A-Za-z][A-Za-z\s]*?)\s+(\d+)(?::.*)?$")


def _book_code(name: str) -> Optional[str]:
    return BOOK_CODES.get(" ".join(name.split()).lower())


def parse_verse_reference(reference: str) -> Optional[str]:
    """"John 3:16" -> "JHN.3.16" (None if unparseable)."""
    match = _VERSE_PATTERN.match(reference.strip())
    if not match:
        return None
    book, chapter, verse = match.groups()
    code = _book_code(book)
    return f"{code}.{chapter}.{verse}" if code else None


def parse_chapter_reference(reference: str) -> Optional[str]:
    """"John 3:16" or "John 3" -> "JHN.3" (None if unparseable)."""
    match = _CHAPTER_PATTERN.match(reference.strip())
    if not match:
        return None
    book, chapter = match.groups()
    code = _book_code(book)
    return f"{code}.{chapter}" if code else None


def chapter_of(reference: str) -> str:
    """"John 3:16" -> "John 3"."""
    return reference.split(":", 1)[0].strip()


def get_http_client(**kwargs) -> httpx.AsyncClient:
    """Get HTTP client with the default timeout."""
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT, **kwargs)


class BibleTextSource:
    """Routes ESV to its own API and every other code to API.Bible."""

    def __init__(self, store: ConfigStore, catalog: list[TranslationInfo]):
        self.store = store
        self.bible_ids = {
            info.code.upper(): info.api_bible_id
            for info in catalog
            if info.api_bible_id
        }

    async def fetch_text(
        self,
        reference: str,
        code: str,
        granularity: str = "short",
    ) -> Optional[str]:
        """
        Fetch passage text for a reference in one translation.

        Args:
            reference: Display reference, e.g. "John 3:16"
            code: Translation code, e.g. "KJV"
            granularity: "short" (the verse) or "long" (its chapter)

        Returns:
            Cleaned text, or None when unavailable for this code

        Raises:
            ValueError: On an unknown granularity
            httpx.HTTPError: On non-404 HTTP failures
        """
        if granularity not in GRANULARITIES:
            raise ValueError(f"Unknown granularity: {granularity!r}")

        code = code.upper()
        if code == "ESV":
            return await self._fetch_esv(reference, granularity)
        return await self._fetch_api_bible(reference, code, granularity)

    async def _fetch_esv(self, reference: str, granularity: str) -> Optional[str]:
        api_key = self.store.get("esv_api_key")
        if not api_key:
            logger.warning("esv_api_key not set, skipping ESV")
            return None

        query = chapter_of(reference) if granularity == "long" else reference
        params = {
            "q": query,
            "include-passage-references": "false",
            "include-verse-numbers": "false",
            "include-first-verse-numbers": "false",
            "include-footnotes": "false",
            "include-headings": "false",
            "include-short-copyright": "false",
        }

        async with get_http_client() as client:
            response = await client.get(
                ESV_API_URL,
                params=params,
                headers={"Authorization": f"Token {api_key}"},
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()

        passages = data.get("passages") or []
        text = clean_verse_text(" ".join(passages))
        return text or None

    async def _fetch_api_bible(
        self,
        reference: str,
        code: str,
        granularity: str,
    ) -> Optional[str]:
        api_key = self.store.get("bible_api_key")
        if not api_key:
            logger.warning(f"bible_api_key not set, skipping {code}")
            return None

        bible_id = self.bible_ids.get(code)
        if not bible_id:
            logger.warning(f"No API.Bible ID for translation code: {code}")
            return None

        if granularity == "long":
            passage_id = parse_chapter_reference(reference)
            path = "chapters"
        else:
            passage_id = parse_verse_reference(reference)
            path = "verses"

        if not passage_id:
            logger.warning(f"Could not parse verse reference: {reference}")
            return None

        url = f"{API_BIBLE_BASE}/bibles/{quote(bible_id, safe='')}/{path}/{passage_id}"

        async with get_http_client() as client:
            response = await client.get(
                url,
                params={"content-type": "text"},
                headers={"api-key": api_key},
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()

        content = (data.get("data") or {}).get("content")
        if not content:
            logger.warning(f"No content in API.Bible response for {code} {reference}")
            return None

        text = clean_verse_text(strip_html(content))
        return text or None
