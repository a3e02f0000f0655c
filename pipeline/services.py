"""
Daily Devotional - Pipeline Services

The collaborators one generation run needs, wired together explicitly and
passed into the orchestrators (no module-level singletons).
"""

import sqlite3
from dataclasses import dataclass, field
from typing import Any, Optional

from core.config import (
    ConfigStore,
    get_generation_settings,
    get_storage_config,
    get_translation_catalog,
    load_config,
)
from core.constants import DEFAULT_CONTENT_LANGUAGE, TTSProviderEnum
from core.db import sync_translation_catalog
from core.llm import LLMClient
from core.logging import get_logger
from core.models import GenerationSettings
from pipeline.rate_limit import RateLimiters, limiters_from_settings
from pipeline.storage import ObjectStorage, build_storage
from pipeline.text_generation import NarrativeGenerator
from pipeline.text_source import BibleTextSource
from pipeline.tts import ElevenLabsSynthesizer, MurfSynthesizer, SpeechSynthesizer
from pipeline.verse_selection import LedgerVerseSelector

logger = get_logger(__name__)


@dataclass
class PipelineServices:
    """
    Everything the day and month orchestrators call out to.

    selector:     select_unused() -> VerseReference
    text_source:  fetch_text(reference, code, granularity) -> str | None
    narratives:   generate(field, record) -> str, generate_quote(recent) -> str
    synthesizers: provider name -> SpeechSynthesizer
    storage:      upload(data, key, content_type) -> url, or None when disabled
    """

    conn: sqlite3.Connection
    selector: Any
    text_source: Any
    narratives: Any
    synthesizers: dict[str, SpeechSynthesizer]
    store: ConfigStore
    storage: Optional[ObjectStorage] = None
    settings: GenerationSettings = field(default_factory=GenerationSettings)
    limiters: RateLimiters = field(default_factory=RateLimiters)
    language: str = DEFAULT_CONTENT_LANGUAGE

    @classmethod
    def from_config(
        cls,
        conn: sqlite3.Connection,
        config: Optional[dict[str, Any]] = None,
    ) -> "PipelineServices":
        """Build production services and sync the translation catalog into the database."""
        if config is None:
            config = load_config()

        catalog = get_translation_catalog(config)
        sync_translation_catalog(conn, catalog)
        conn.commit()
        logger.info(f"Synced {len(catalog)} translation codes")

        store = ConfigStore.from_config(config)
        settings = get_generation_settings(config)

        return cls(
            conn=conn,
            selector=LedgerVerseSelector(conn, pool=config.get("verse_pool")),
            text_source=BibleTextSource(store, catalog),
            narratives=NarrativeGenerator(LLMClient.from_config(config)),
            synthesizers=default_synthesizers(store),
            store=store,
            storage=build_storage(get_storage_config(config)),
            settings=settings,
            limiters=limiters_from_settings(catalog, settings),
        )


def default_synthesizers(store: ConfigStore) -> dict[str, SpeechSynthesizer]:
    """One synthesizer per supported provider."""
    return {
        TTSProviderEnum.ELEVENLABS.value: ElevenLabsSynthesizer(),
        TTSProviderEnum.MURF.value: MurfSynthesizer(style=store.get("murf_style")),
    }
