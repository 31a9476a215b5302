"""Factory functions to create backends from configuration."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Union

from ..research.orchestrator import BookResearchOrchestrator
from ..research.parsing import scan_blocks

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider
    from ..research.events import DebugEventBus
    from .loader import LLMConfig, ProfileConfig

logger = logging.getLogger(__name__)

# A canned reply: text, an exception to raise, or a callable producing either
MockReply = Union[str, BaseException, Callable[[str, Union[str, None]], object]]

MOCK_CLASSIFICATION = '{"type": "FACTUAL", "priority": 5, "reasoning": "Mock classification"}'
MOCK_SYNTHESIS = "Mock synthesis of the research findings."
MOCK_CONFIDENCE = 0.75


class MockLLMProvider:
    """Mock LLM provider for testing and offline profiles.

    Replies are chosen by the first rule whose pattern occurs in the system
    prompt. Without a matching rule the mock answers in the shape each caller
    expects: classification JSON, a synthesis paragraph, or one block per
    ``LABEL:`` the system prompt asks for.

    Every call is recorded in ``calls``.

    Usage:
        mock = MockLLMProvider()
        mock.when("evidence analysis", RuntimeError("model unavailable"))
    """

    def __init__(
        self,
        rules: list[tuple[str, MockReply]] | None = None,
        delay: float = 0.0,
        model: str = "mock",
    ):
        """
        Initialize the mock.

        Args:
            rules: (system prompt substring, reply) pairs, checked in order
            delay: Seconds to sleep before every reply
            model: Model name reported to the debug feed
        """
        self.rules: list[tuple[str, MockReply]] = list(rules or [])
        self.delay = delay
        self.model = model
        self.calls: list[dict] = []

    def when(self, pattern: str, reply: MockReply) -> MockLLMProvider:
        """Add a rule; returns self for chaining."""
        self.rules.append((pattern, reply))
        return self

    def calls_matching(self, pattern: str) -> list[dict]:
        """Recorded calls whose system prompt contains *pattern*."""
        return [call for call in self.calls if pattern in (call["system_prompt"] or "")]

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """Return a canned completion."""
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )

        if self.delay:
            await asyncio.sleep(self.delay)

        for pattern, reply in self.rules:
            if pattern in (system_prompt or ""):
                return await self._resolve(reply, prompt, system_prompt)

        return self._default_reply(system_prompt or "")

    async def _resolve(self, reply: MockReply, prompt: str, system_prompt: str | None) -> str:
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            result = reply(prompt, system_prompt)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, BaseException):
                raise result
            return str(result)
        return reply

    def _default_reply(self, system_prompt: str) -> str:
        if "query analyzer" in system_prompt:
            return MOCK_CLASSIFICATION
        if "synthesis expert" in system_prompt:
            return MOCK_SYNTHESIS

        labels = []
        for block in scan_blocks(system_prompt):
            if block.label != "CONFIDENCE" and block.label not in labels:
                labels.append(block.label)

        if labels:
            body = "\n\n".join(f"{label}:\nMock {label.lower().replace('_', ' ')}." for label in labels)
            return f"{body}\n\nCONFIDENCE: {MOCK_CONFIDENCE}"

        if "JSON" in system_prompt:
            return "{}"

        return "[Mock response]"

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


def create_llm_provider(config: LLMConfig) -> LLMProvider:
    """Create an LLM backend from configuration.

    Args:
        config: LLM configuration

    Returns:
        LLMProvider instance (AnthropicAdapter, OpenRouterAdapter, or Mock)

    Raises:
        ValueError: If backend type is not supported or the API key is missing
    """
    if config.backend == "anthropic":
        from ..llm import AnthropicAdapter

        if not config.api_key:
            raise ValueError("Anthropic backend requires api_key")

        return AnthropicAdapter(api_key=config.api_key, model=config.model)

    elif config.backend == "openrouter":
        from ..llm import OpenRouterAdapter

        if not config.api_key:
            raise ValueError("OpenRouter backend requires api_key")

        return OpenRouterAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
        )

    elif config.backend == "mock":
        return MockLLMProvider(model=config.model or "mock")

    else:
        raise ValueError(f"Unsupported LLM backend: {config.backend}")


def create_orchestrator(
    profile: ProfileConfig,
    llm: LLMProvider | None = None,
    event_bus: DebugEventBus | None = None,
) -> BookResearchOrchestrator:
    """Create a BookResearchOrchestrator from a profile.

    Args:
        profile: Profile configuration
        llm: LLM provider to use instead of the profile's backend
        event_bus: Bus for debug events

    Returns:
        Orchestrator wired with the four research agents
    """
    if llm is None:
        llm = create_llm_provider(profile.llm)

    logger.debug(f"Creating orchestrator with {type(llm).__name__}")

    return BookResearchOrchestrator(
        llm_provider=llm,
        config=profile.research,
        event_bus=event_bus,
    )
