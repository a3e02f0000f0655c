"""
Shared fixtures: a temporary database and in-memory fakes for every
external collaborator of the orchestrators.
"""

from pathlib import Path
from typing import Optional

import pytest

from core.config import ConfigStore
from core.db import get_connection, init_db, sync_translation_catalog
from core.models import GenerationSettings, TranslationInfo
from pipeline.rate_limit import FixedDelayLimiter, RateLimiters
from pipeline.services import PipelineServices
from pipeline.timing import WordDurations
from pipeline.tts import SpeechSynthesizer, SynthesisError, SynthesisResult
from pipeline.verse_selection import parse_reference


# ============================================================================
# Fakes
# ============================================================================


class FakeSelector:
    """Hands out references in order."""

    def __init__(self, references: Optional[list[str]] = None):
        self.references = list(references or ["John 3:16", "Psalm 23:1", "Romans 8:28"])
        self.calls = 0

    async def select_unused(self):
        reference = self.references[self.calls % len(self.references)]
        self.calls += 1
        return parse_reference(reference)


class FakeTextSource:
    """Returns canned text per code (None for codes mapped to None, raises for codes in errors)."""

    def __init__(
        self,
        texts: Optional[dict[str, Optional[str]]] = None,
        errors: Optional[dict[str, Exception]] = None,
    ):
        self.texts = texts if texts is not None else {}
        self.errors = errors if errors is not None else {}
        self.calls: list[tuple[str, str, str]] = []

    async def fetch_text(self, reference: str, code: str, granularity: str = "short"):
        self.calls.append((reference, code, granularity))
        if code in self.errors:
            raise self.errors[code]
        if code in self.texts:
            return self.texts[code]
        return f"{code} text of {reference}"


class FakeNarratives:
    def __init__(self, fail_field: Optional[str] = None):
        self.fail_field = fail_field
        self.calls: list[str] = []
        self.quotes: list[list[str]] = []

    async def generate(self, field: str, record) -> str:
        self.calls.append(field)
        if field == self.fail_field:
            raise RuntimeError(f"LLM unavailable for {field}")
        return f"Generated {field} for {record.post_date}"

    async def generate_quote(self, recent_quotes: list[str]) -> str:
        self.quotes.append(list(recent_quotes))
        return f"Quote number {len(self.quotes)}: keep going."


class FakeSynthesizer(SpeechSynthesizer):
    """Speaks every word for 300ms."""

    def __init__(self, provider: str, fail_texts: Optional[set[str]] = None):
        self.provider = provider
        self.fail_texts = fail_texts or set()
        self.calls: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return self.provider

    async def synthesize(self, text: str, voice_id: str, credential: str) -> SynthesisResult:
        self.calls.append((text, voice_id, credential))
        if text in self.fail_texts:
            raise SynthesisError("provider error 500")
        words = text.split()
        return SynthesisResult(
            audio=f"audio:{text}".encode("utf-8"),
            timing=WordDurations(words=words, duration_ms=[300] * len(words)),
        )


class FakeStorage:
    def __init__(self):
        self.uploads: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    async def upload(self, data, key: str, content_type: str) -> str:
        self.uploads[key] = data.encode("utf-8") if isinstance(data, str) else data
        self.content_types[key] = content_type
        return f"https://cdn.example.com/{key}"


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ============================================================================
# Fixtures
# ============================================================================


DEFAULT_CATALOG = [
    TranslationInfo(code="ESV", name="English Standard Version", language="en", delay_ms=200),
    TranslationInfo(code="KJV", name="King James Version", language="en", api_bible_id="kjv-id"),
    TranslationInfo(code="RVR", name="Reina Valera", language="es", api_bible_id="rvr-id"),
]

ENGLISH_VOICE = {"elevenlabs_api_key": "el-key", "elevenlabs_voice_id": "el-voice"}


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Create a temporary database for testing."""
    db_path = tmp_path / "devotional.sqlite"
    init_db(db_path)
    return db_path


@pytest.fixture
def db_conn(temp_db):
    """Get a database connection."""
    conn = get_connection(temp_db)
    yield conn
    conn.close()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_services(db_conn, sleep):
    """Factory for PipelineServices wired to fakes."""

    def _make(
        catalog: Optional[list[TranslationInfo]] = None,
        credentials: Optional[dict[str, str]] = None,
        texts: Optional[dict[str, Optional[str]]] = None,
        storage="default",
        narratives: Optional[FakeNarratives] = None,
        settings: Optional[GenerationSettings] = None,
        fail_texts: Optional[set[str]] = None,
        text_errors: Optional[dict[str, Exception]] = None,
    ) -> PipelineServices:
        catalog = DEFAULT_CATALOG if catalog is None else catalog
        sync_translation_catalog(db_conn, catalog)
        db_conn.commit()

        text_limiters = {
            info.code: FixedDelayLimiter(info.delay_ms, name=info.code, sleep=sleep)
            for info in catalog
            if info.delay_ms > 0
        }

        return PipelineServices(
            conn=db_conn,
            selector=FakeSelector(),
            text_source=FakeTextSource(texts, text_errors),
            narratives=narratives or FakeNarratives(),
            synthesizers={
                "elevenlabs": FakeSynthesizer("elevenlabs", fail_texts),
                "murf": FakeSynthesizer("murf", fail_texts),
            },
            store=ConfigStore(ENGLISH_VOICE if credentials is None else credentials, use_env=False),
            storage=FakeStorage() if storage == "default" else storage,
            settings=settings or GenerationSettings(),
            limiters=RateLimiters(
                text_source=text_limiters,
                tts=FixedDelayLimiter(500, name="tts", sleep=sleep),
            ),
        )

    return _make


@pytest.fixture
def events():
    """A progress sink that keeps every event."""
    collected = []

    def sink(event):
        collected.append(event)

    sink.events = collected
    return sink
