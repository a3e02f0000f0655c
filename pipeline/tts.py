"""
Daily Devotional - Speech Synthesis

Narration audio plus provider-native timing data from two TTS backends:
- ElevenLabs (English): character-level alignment
- Murf (other languages): word-level durations

Provider selection is a policy of the caller (see select_provider); the
adapters themselves only know their own API.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import ConfigStore
from core.constants import (
    ELEVENLABS_API_BASE,
    ELEVENLABS_MODEL_ID,
    ELEVENLABS_OUTPUT_FORMAT,
    MURF_API_URL,
    MURF_MAX_CHARS,
    TTS_HTTP_TIMEOUT,
    TTS_RATE_LIMIT_ATTEMPTS,
    TTSProviderEnum,
)
from core.logging import get_logger
from core.textnorm import split_text_into_chunks
from pipeline.timing import CharacterAlignment, TimingData, WordDurations

logger = get_logger(__name__)


# ============================================================================
# Errors and Results
# ============================================================================


class SynthesisError(RuntimeError):
    """Provider returned an error status or a response missing required fields."""


class SynthesisRateLimitError(SynthesisError):
    """Provider answered 429."""

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


@dataclass
class SynthesisResult:
    """Synthesized MP3 audio and the provider's timing data for it."""

    audio: bytes
    timing: TimingData


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


# ============================================================================
# Synthesizer Abstraction
# ============================================================================


class SpeechSynthesizer(ABC):
    """Abstract base class for speech synthesis backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging."""
        pass

    @abstractmethod
    async def synthesize(self, text: str, voice_id: str, credential: str) -> SynthesisResult:
        """
        Synthesize speech for text.

        Args:
            text: Text to speak
            voice_id: Provider voice identifier
            credential: Provider API key

        Returns:
            SynthesisResult with MP3 bytes and timing data

        Raises:
            SynthesisError: On API errors or malformed responses
        """
        pass


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """
    ElevenLabs text-to-speech with character timestamps.

    Calls the REST "with-timestamps" endpoint, which returns base64 audio and
    per-character start/end times in seconds. 429 responses are retried with
    exponential backoff before surfacing as SynthesisRateLimitError.
    """

    def __init__(
        self,
        base_url: str = ELEVENLABS_API_BASE,
        model_id: str = ELEVENLABS_MODEL_ID,
        output_format: str = ELEVENLABS_OUTPUT_FORMAT,
        timeout: int = TTS_HTTP_TIMEOUT,
        max_attempts: int = TTS_RATE_LIMIT_ATTEMPTS,
        retry_wait: Any = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.output_format = output_format
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=30)

    @property
    def name(self) -> str:
        return TTSProviderEnum.ELEVENLABS.value

    async def synthesize(self, text: str, voice_id: str, credential: str) -> SynthesisResult:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(SynthesisRateLimitError),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"ElevenLabs rate limited, attempt {attempt.retry_state.attempt_number}"
                        f"/{self.max_attempts}"
                    )
                data = await self._request(text, voice_id, credential)

        return self._parse_response(data)

    async def _request(self, text: str, voice_id: str, credential: str) -> dict:
        url = f"{self.base_url}/text-to-speech/{quote(voice_id, safe='')}/with-timestamps"
        headers = {
            "xi-api-key": credential,
            "Content-Type": "application/json",
        }
        payload = {
            "text": text,
            "model_id": self.model_id,
            "output_format": self.output_format,
        }

        logger.debug(f"ElevenLabs request: voice={voice_id}, {len(text)} chars")

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, headers=headers, json=payload) as response:
                if response.status == 429:
                    raise SynthesisRateLimitError(
                        "ElevenLabs rate limit exceeded",
                        _parse_retry_after(response.headers.get("retry-after")),
                    )
                if response.status != 200:
                    error_text = await response.text()
                    raise SynthesisError(
                        f"ElevenLabs API error {response.status}: {error_text}"
                    )
                return await response.json(content_type=None)

    @staticmethod
    def _parse_response(data: dict) -> SynthesisResult:
        audio_base64 = data.get("audio_base64")
        if not audio_base64:
            raise SynthesisError("ElevenLabs response missing audio_base64 field")

        alignment = data.get("alignment") or {}
        characters = alignment.get("characters")
        starts = alignment.get("character_start_times_seconds")
        ends = alignment.get("character_end_times_seconds")
        if characters is None or starts is None or ends is None:
            raise SynthesisError("ElevenLabs response missing alignment data")
        if not (len(characters) == len(starts) == len(ends)):
            raise SynthesisError("ElevenLabs alignment arrays differ in length")

        start_ms = [round(s * 1000) for s in starts]
        duration_ms = [max(0, round(e * 1000) - s) for s, e in zip(start_ms, ends)]

        return SynthesisResult(
            audio=base64.b64decode(audio_base64),
            timing=CharacterAlignment(
                characters=list(characters),
                start_ms=start_ms,
                duration_ms=duration_ms,
            ),
        )


class MurfSynthesizer(SpeechSynthesizer):
    """
    Murf text-to-speech with word durations.

    Murf rejects long requests, so text above MURF_MAX_CHARS is split at
    sentence boundaries and synthesized chunk by chunk. Audio is
    concatenated and word durations appended in order. All Murf timings
    are in milliseconds.
    """

    def __init__(
        self,
        api_url: str = MURF_API_URL,
        max_chars: int = MURF_MAX_CHARS,
        style: Optional[str] = None,
        timeout: int = TTS_HTTP_TIMEOUT,
    ):
        self.api_url = api_url
        self.max_chars = max_chars
        self.style = style
        self.timeout = timeout

    @property
    def name(self) -> str:
        return TTSProviderEnum.MURF.value

    async def synthesize(self, text: str, voice_id: str, credential: str) -> SynthesisResult:
        chunks = split_text_into_chunks(text, self.max_chars)
        if len(chunks) > 1:
            logger.info(f"Murf: splitting {len(text)} chars into {len(chunks)} chunks")

        audio_parts: list[bytes] = []
        words: list[str] = []
        durations: list[int] = []

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            for chunk in chunks:
                audio, chunk_words, chunk_durations = await self._generate_chunk(
                    session, chunk, voice_id, credential
                )
                audio_parts.append(audio)
                words.extend(chunk_words)
                durations.extend(chunk_durations)

        return SynthesisResult(
            audio=b"".join(audio_parts),
            timing=WordDurations(words=words, duration_ms=durations),
        )

    async def _generate_chunk(
        self,
        session: aiohttp.ClientSession,
        text: str,
        voice_id: str,
        credential: str,
    ) -> tuple[bytes, list[str], list[int]]:
        headers = {
            "api-key": credential,
            "Content-Type": "application/json",
        }
        payload = {"text": text, "voiceId": voice_id, "format": "MP3"}
        if self.style:
            payload["style"] = self.style

        logger.debug(f"Murf request: voice={voice_id}, {len(text)} chars")

        async with session.post(self.api_url, headers=headers, json=payload) as response:
            if response.status == 429:
                raise SynthesisRateLimitError(
                    "Murf rate limit exceeded",
                    _parse_retry_after(response.headers.get("retry-after")),
                )
            if response.status != 200:
                error_text = await response.text()
                raise SynthesisError(f"Murf API error {response.status}: {error_text}")
            data = await response.json(content_type=None)

        audio_url = data.get("audioFile")
        if not audio_url:
            raise SynthesisError(
                f"Murf response missing audioFile URL (keys: {', '.join(data.keys())})"
            )

        async with session.get(audio_url) as audio_response:
            if audio_response.status != 200:
                raise SynthesisError(
                    f"Failed to download Murf audio from {audio_url}: {audio_response.status}"
                )
            audio = await audio_response.read()

        words, durations = murf_entries_to_durations(data.get("wordDurations") or [])
        return audio, words, durations


def murf_entries_to_durations(entries: list[dict]) -> tuple[list[str], list[int]]:
    """
    Convert Murf wordDurations entries to sequential (word, duration) lists.

    Entries carry either explicit start/end times ("startMs"/"endMs" or
    "start"/"end") or a bare "duration". Explicit times become a duration
    measured from the previous word's end, so pauses between words are
    folded into the following word and absolute end times are preserved.
    Entries with neither get zero duration.
    """
    words: list[str] = []
    durations: list[int] = []
    clock = 0

    for entry in entries:
        word = str(entry.get("word") or "")
        end = entry.get("endMs", entry.get("end"))
        duration = entry.get("duration")

        if isinstance(end, (int, float)):
            end = int(round(end))
            length = max(0, end - clock)
        elif isinstance(duration, (int, float)):
            length = max(0, int(round(duration)))
        else:
            length = 0

        clock += length
        words.append(word)
        durations.append(length)

    return words, durations


# ============================================================================
# Provider Selection
# ============================================================================


@dataclass
class ProviderChoice:
    """Which backend narrates a code, with the voice and key to use."""

    provider: TTSProviderEnum
    voice_id: str
    credential: str


def is_english(language: str, code: str) -> bool:
    """English content is narrated by ElevenLabs when it is configured."""
    return (language or "").lower().startswith("en") or code.upper() == "EN"


def select_provider(language: str, code: str, store: ConfigStore) -> Optional[ProviderChoice]:
    """
    Pick the synthesis backend for a translation code.

    English with an ElevenLabs key and voice uses ElevenLabs; otherwise a
    Murf key plus voice (a language-specific voice is preferred) uses Murf.
    Returns None when neither is configured.
    """
    if is_english(language, code) and store.has("elevenlabs_api_key", "elevenlabs_voice_id"):
        return ProviderChoice(
            provider=TTSProviderEnum.ELEVENLABS,
            voice_id=store.get("elevenlabs_voice_id"),
            credential=store.get("elevenlabs_api_key"),
        )

    murf_key = store.get("murf_api_key")
    murf_voice = store.get(f"murf_voice_id_{(language or '').lower()}") or store.get("murf_voice_id")
    if murf_key and murf_voice:
        return ProviderChoice(
            provider=TTSProviderEnum.MURF,
            voice_id=murf_voice,
            credential=murf_key,
        )

    return None
