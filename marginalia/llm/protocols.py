"""The model capability the research engine is written against."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LLMProvider(Protocol):
    """Single-turn text completion.

    The classifier, every research agent and the synthesis step share one
    provider, so implementations must tolerate concurrent ``complete`` calls.
    "Thinking" is requested in the prompt text, never through a provider
    flag. ``model`` is reported in the debug feed.
    """

    model: str

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """
        Send one user turn and return the model's text.

        Args:
            prompt: User turn (role instructions go in ``system_prompt``)
            system_prompt: Role prompt of the calling agent
            temperature: Sampling temperature
            max_tokens: Output cap; the adapter's default when None

        Raises:
            Exception: Transport and API errors propagate; the orchestrator
                decides whether a failed call is fatal.
        """
        ...
