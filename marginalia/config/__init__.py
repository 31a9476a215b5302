"""Configuration system for LLM backends and the research engine."""

from .loader import (
    load_config,
    load_config_from_yaml,
    list_profiles,
    ProfileConfig,
    LLMConfig,
    AgentConfig,
    AgentsConfig,
    OrchestratorConfig,
    ResearchConfig,
)
from .factory import (
    MockLLMProvider,
    create_llm_provider,
    create_orchestrator,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_yaml",
    "list_profiles",
    "ProfileConfig",
    "LLMConfig",
    "AgentConfig",
    "AgentsConfig",
    "OrchestratorConfig",
    "ResearchConfig",
    # Factory
    "MockLLMProvider",
    "create_llm_provider",
    "create_orchestrator",
]
