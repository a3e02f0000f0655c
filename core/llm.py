"""
Daily Devotional - LLM Client

OpenAI-compatible LLM client with retry logic.
"""

from typing import Optional

from openai import AsyncOpenAI, OpenAIError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import get_llm_config, load_config
from core.logging import get_logger

logger = get_logger(__name__)


class LLMNotConfiguredError(RuntimeError):
    """Raised when text generation is requested without an API key."""


class LLMClient:
    """
    OpenAI-compatible LLM client.

    Supports any OpenAI-compatible API by configuring base_url.
    Includes retry logic with exponential backoff.
    """

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        api_key: str = "",
        model: str = "gpt-4o",
        temperature: float = 0.8,
        max_tokens: int = 1024,
        timeout: int = 60,
    ):
        """
        Initialize LLM client.

        Args:
            base_url: API base URL (OpenAI-compatible)
            api_key: API key
            model: Model name
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        self._client: Optional[AsyncOpenAI] = None

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "LLMClient":
        """
        Create client from configuration.

        Args:
            config: Config dict (loads from file if None); environment
                variables override it

        Returns:
            LLMClient instance
        """
        if config is None:
            config = load_config()

        llm_config = get_llm_config(config)

        return cls(
            base_url=llm_config.base_url,
            api_key=llm_config.api_key,
            model=llm_config.model,
            temperature=llm_config.temperature,
            max_tokens=llm_config.max_tokens,
            timeout=llm_config.timeout,
        )

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create async OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=self.base_url,
                api_key=self.api_key,
                timeout=self.timeout,
            )
        return self._client

    def is_configured(self) -> bool:
        """Check if API key is configured."""
        return bool(self.api_key and self.api_key != "YOUR_API_KEY")

    @retry(
        retry=retry_if_exception_type(OpenAIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Override default temperature
            max_tokens: Override default max_tokens

        Returns:
            Response content string (stripped)

        Raises:
            LLMNotConfiguredError: If no API key is configured
            OpenAIError: If the API keeps failing after retries
        """
        if not self.is_configured():
            raise LLMNotConfiguredError(
                "LLM API key not configured. Set DEVOTIONAL_LLM_API_KEY or llm.api_key in the config file."
            )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature if temperature is not None else self.temperature,
                max_tokens=max_tokens or self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"LLM API error: {e}")
            raise

        content = (response.choices[0].message.content or "").strip()
        logger.debug(f"LLM response: {content[:100]}...")
        return content

    async def complete(self, prompt: str, system: Optional[str] = None) -> str:
        """
        Single-prompt completion that must produce text.

        Args:
            prompt: User message
            system: Optional system message

        Returns:
            Non-empty response text

        Raises:
            RuntimeError: If the model returns an empty reply
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        content = await self.chat(messages)
        if not content:
            raise RuntimeError("LLM returned an empty response")
        return content

    async def close(self) -> None:
        """Close the client."""
        if self._client:
            await self._client.close()
            self._client = None
