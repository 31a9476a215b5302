"""Model backends behind the LLMProvider protocol."""

from .adapters import AnthropicAdapter, OpenRouterAdapter, TokenUsage
from .protocols import LLMProvider

__all__ = [
    "LLMProvider",
    "AnthropicAdapter",
    "OpenRouterAdapter",
    "TokenUsage",
]
