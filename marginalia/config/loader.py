"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

from .. import settings
from ..research.research_settings import ResearchSettings

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "dev"
PROFILE_ENV_VAR = "MARGINALIA_PROFILE"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "models.yaml"


class LLMConfig(BaseModel):
    """Configuration for the LLM backend."""

    backend: Literal["anthropic", "openrouter", "mock"] = "anthropic"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None  # OpenAI-compatible endpoint (openrouter backend)


class AgentConfig(BaseModel):
    """Sampling configuration for one research agent."""

    max_tokens: int = 4000
    temperature: float = 0.1
    enable_thinking: bool = True  # Prefix prompts with a planning preamble


class AgentsConfig(BaseModel):
    """Per-agent configuration."""

    search: AgentConfig = AgentConfig()
    evidence: AgentConfig = AgentConfig()
    analysis: AgentConfig = AgentConfig()
    context: AgentConfig = AgentConfig()


class OrchestratorConfig(BaseModel):
    """Configuration for classification, synthesis and deadlines."""

    classifier_max_tokens: int = 500
    classifier_temperature: float = 0.1
    synthesis_max_tokens: int = 4000
    synthesis_temperature: float = 0.2
    request_timeout: float | None = 120.0  # Seconds per model call, None = unbounded


class ResearchConfig(BaseModel):
    """Configuration for the research engine."""

    orchestrator: OrchestratorConfig = OrchestratorConfig()
    agents: AgentsConfig = AgentsConfig()
    # Used when neither the call nor the book context carries settings
    defaults: ResearchSettings = ResearchSettings()


class ProfileConfig(BaseModel):
    """Configuration profile: one LLM backend plus engine tuning."""

    llm: LLMConfig = LLMConfig()
    research: ResearchConfig = ResearchConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Unset variables are left as-is.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        return os.environ.get(match.group(1), match.group(0))

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _unresolved_to_none(value: str | None) -> str | None:
    """Treat a ${VAR} left unexpanded as unset."""
    if value and re.fullmatch(r"\$\{[^}]+\}", value):
        return None
    return value


def load_config_file(config_path: Path) -> ConfigFile:
    """Read and validate a profiles file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    config_file = ConfigFile(**expand_env_vars_recursive(raw_data))

    for profile in config_file.profiles.values():
        profile.llm.api_key = _unresolved_to_none(profile.llm.api_key)

    return config_file


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load one profile from a YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    config_file = load_config_file(config_path)

    if profile_name not in config_file.profiles:
        available = ", ".join(config_file.profiles.keys())
        raise KeyError(f"Profile '{profile_name}' not found. Available profiles: {available}")

    return config_file.profiles[profile_name]


def load_config_from_env() -> ProfileConfig:
    """Build a profile from environment variables (fallback mode).

    Anthropic is used when ANTHROPIC_API_KEY is set, OpenRouter when only
    OPENROUTER_API_KEY is set.
    """
    if settings.ANTHROPIC_API_KEY or not settings.OPENROUTER_API_KEY:
        llm = LLMConfig(
            backend="anthropic",
            model=settings.ANTHROPIC_DEFAULT_MODEL,
            api_key=settings.ANTHROPIC_API_KEY,
        )
    else:
        llm = LLMConfig(
            backend="openrouter",
            model=settings.OPENROUTER_DEFAULT_MODEL,
            api_key=settings.OPENROUTER_API_KEY,
            base_url=settings.OPENROUTER_BASE_URL,
        )

    return ProfileConfig(llm=llm)


def list_profiles(config_path: Path | None = None) -> list[str]:
    """Names of the profiles in the config file (empty if unreadable)."""
    config_path = config_path or DEFAULT_CONFIG_PATH
    try:
        return list(load_config_file(config_path).profiles)
    except Exception as e:
        logger.warning(f"Could not read profiles from {config_path}: {e}")
        return []


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    Tries the YAML profiles file first and falls back to environment
    variables if the file is missing or invalid.

    Args:
        profile: Profile name to load. If None, uses MARGINALIA_PROFILE env var
                or "dev" as default.
        config_path: Path to config file. If None, uses the models.yaml that
                    ships with the package.

    Returns:
        ProfileConfig with the LLM backend and engine configuration

    Raises:
        KeyError: If requested profile doesn't exist
    """
    if profile is None:
        profile = os.environ.get(PROFILE_ENV_VAR, DEFAULT_PROFILE)

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()

    try:
        return load_config_from_yaml(config_path, profile)
    except KeyError:
        raise
    except Exception as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Falling back to environment variables...")
        return load_config_from_env()
