"""Anthropic and OpenAI-compatible backends for the research engine."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from openai import AsyncOpenAI

from ..settings import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_DEFAULT_MODEL,
    LLM_MAX_RETRIES,
    LLM_TIMEOUT_SECONDS,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
)

logger = logging.getLogger(__name__)

# Anthropic requires an explicit output cap
ANTHROPIC_MAX_TOKENS = 4096


@dataclass
class TokenUsage:
    """Running token totals for one adapter."""

    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, input_tokens: int | None, output_tokens: int | None) -> None:
        self.calls += 1
        self.input_tokens += input_tokens or 0
        self.output_tokens += output_tokens or 0


class _SDKAdapter(ABC):
    """Shared lifecycle: the SDK client exists only inside ``async with``."""

    backend = "llm"

    def __init__(self, api_key: str | None, model: str):
        if not api_key:
            raise ValueError(
                f"{self.backend} API key required. Set it in .env or the profile's api_key"
            )
        self.api_key = api_key
        self.model = model
        self.usage = TokenUsage()
        self._client = None

    @abstractmethod
    def _open_client(self):
        """Create the SDK client used inside ``async with``."""

    async def __aenter__(self):
        self._client = self._open_client()
        logger.info(f"{self.backend} client opened for model {self.model}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info(
                f"{self.backend} client closed after {self.usage.calls} calls "
                f"({self.usage.input_tokens} in / {self.usage.output_tokens} out tokens)"
            )

    @property
    def client(self):
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client


class AnthropicAdapter(_SDKAdapter):
    """
    Claude through the Anthropic SDK (the default backend).

    Usage:
        async with AnthropicAdapter() as llm:
            text = await llm.complete("Who narrates chapter 3?", system_prompt=role)
    """

    backend = "Anthropic"

    def __init__(self, api_key: str | None = None, model: str | None = None):
        super().__init__(api_key or ANTHROPIC_API_KEY, model or ANTHROPIC_DEFAULT_MODEL)

    def _open_client(self):
        import anthropic

        return anthropic.AsyncAnthropic(
            api_key=self.api_key,
            max_retries=LLM_MAX_RETRIES,
            timeout=LLM_TIMEOUT_SECONDS,
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        logger.debug(f"Anthropic request: {len(prompt)} chars, temperature={temperature}, max_tokens={max_tokens}")

        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt

        message = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens or ANTHROPIC_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            **kwargs,
        )
        self.usage.add(message.usage.input_tokens, message.usage.output_tokens)

        text = "".join(block.text for block in message.content if block.type == "text")
        if not text:
            raise RuntimeError(f"Anthropic returned no text (stop_reason={message.stop_reason})")

        return text


class OpenRouterAdapter(_SDKAdapter):
    """
    Any OpenAI-compatible chat endpoint, OpenRouter by default.

    Usage:
        async with OpenRouterAdapter(model="anthropic/claude-3.5-sonnet") as llm:
            text = await llm.complete("Who narrates chapter 3?")
    """

    backend = "OpenRouter"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ):
        super().__init__(api_key or OPENROUTER_API_KEY, model or OPENROUTER_DEFAULT_MODEL)
        self.base_url = base_url or OPENROUTER_BASE_URL

    def _open_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            max_retries=LLM_MAX_RETRIES,
            timeout=LLM_TIMEOUT_SECONDS,
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        logger.debug(f"OpenRouter request: {len(prompt)} chars, temperature={temperature}, max_tokens={max_tokens}")

        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if response.usage is not None:
            self.usage.add(response.usage.prompt_tokens, response.usage.completion_tokens)
        else:
            self.usage.add(None, None)

        return response.choices[0].message.content or ""
