"""
Daily Devotional - Rate Limiting

Fixed-delay gates inserted after calls to external APIs with strict
throughput ceilings (scripture text APIs, speech synthesis).
"""

import asyncio
from typing import Awaitable, Callable, Optional

from core.constants import TTS_DELAY_MS
from core.logging import get_logger
from core.models import GenerationSettings, TranslationInfo

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class FixedDelayLimiter:
    """
    Blocking delay of a fixed duration.

    Not a token bucket: every wait() sleeps the full delay, which serializes
    calls to the provider at a safe pace.
    """

    def __init__(self, delay_ms: int, name: str = "", sleep: Optional[SleepFn] = None):
        self.delay_ms = max(0, int(delay_ms))
        self.name = name
        self._sleep = sleep or asyncio.sleep

    async def wait(self) -> None:
        """Sleep for the configured delay (no-op when the delay is zero)."""
        if self.delay_ms <= 0:
            return
        logger.debug(f"Rate limit [{self.name}]: waiting {self.delay_ms}ms")
        await self._sleep(self.delay_ms / 1000)


class RateLimiters:
    """Per-provider limiters: one per text-source code plus one for TTS."""

    def __init__(
        self,
        text_source: Optional[dict[str, FixedDelayLimiter]] = None,
        tts: Optional[FixedDelayLimiter] = None,
        sleep: Optional[SleepFn] = None,
    ):
        self._sleep = sleep
        self.text_source = {code.upper(): limiter for code, limiter in (text_source or {}).items()}
        self.tts = tts or FixedDelayLimiter(TTS_DELAY_MS, name="tts", sleep=sleep)

    def for_code(self, code: str) -> Optional[FixedDelayLimiter]:
        """Limiter for a translation code, or None when it has no ceiling."""
        return self.text_source.get(code.upper())


def limiters_from_settings(
    catalog: list[TranslationInfo],
    settings: Optional[GenerationSettings] = None,
    sleep: Optional[SleepFn] = None,
) -> RateLimiters:
    """Build limiters for every catalog code that declares a delay, plus TTS."""
    settings = settings or GenerationSettings()
    text_source = {
        info.code: FixedDelayLimiter(info.delay_ms, name=info.code, sleep=sleep)
        for info in catalog
        if info.delay_ms > 0
    }
    return RateLimiters(
        text_source=text_source,
        tts=FixedDelayLimiter(settings.tts_delay_ms, name="tts", sleep=sleep),
        sleep=sleep,
    )
