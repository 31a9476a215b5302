"""Per-call research settings with clamping validation.

Settings never fail validation: out-of-range numbers are clamped into their
allowed range, and missing or unusable values fall back to the defaults. The
wire form is camelCase JSON (``tokenLimitPerAgent``, ``maxSections``,
``enabledAgents``, ``researchMode``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

TOKEN_LIMIT_MIN = 25_000
TOKEN_LIMIT_MAX = 150_000
DEFAULT_TOKEN_LIMIT = 75_000

MAX_SECTIONS_MIN = 5
MAX_SECTIONS_MAX = 50
DEFAULT_MAX_SECTIONS = 20

_TRUTHY = {"true", "1", "yes", "on"}


class ResearchMode(str, Enum):
    """How much work a research call should do."""

    QUICK = "quick"  # Search agent only, no classification or synthesis
    FULL = "full"


def _clamp_int(value: Any, default: int, low: int, high: int) -> int:
    """Coerce *value* to an int inside [low, high]; falsy or junk -> default."""
    if isinstance(value, bool) or not value:
        number = default
    else:
        try:
            number = int(float(value))
        except (TypeError, ValueError, OverflowError):
            number = default
    return min(high, max(low, number))


def _coerce_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


class EnabledAgents(BaseModel):
    """Caller switches for each research agent."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    search: bool = Field(True, validation_alias=AliasChoices("search", "bookSearch"))
    evidence: bool = True
    analysis: bool = True
    context: bool = True

    @field_validator("search", "evidence", "analysis", "context", mode="before")
    @classmethod
    def _lenient_bool(cls, value: Any) -> bool:
        return _coerce_bool(value, True)

    def is_enabled(self, agent_key: str) -> bool:
        """Check an agent switch by key (search, evidence, analysis, context)."""
        return bool(getattr(self, agent_key, False))


class ResearchSettings(BaseModel):
    """Budgets and agent switches for one research call."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    token_limit_per_agent: int = DEFAULT_TOKEN_LIMIT
    max_sections: int = DEFAULT_MAX_SECTIONS
    enabled_agents: EnabledAgents = Field(default_factory=EnabledAgents)
    research_mode: ResearchMode = ResearchMode.FULL

    @field_validator("token_limit_per_agent", mode="before")
    @classmethod
    def _clamp_token_limit(cls, value: Any) -> int:
        return _clamp_int(value, DEFAULT_TOKEN_LIMIT, TOKEN_LIMIT_MIN, TOKEN_LIMIT_MAX)

    @field_validator("max_sections", mode="before")
    @classmethod
    def _clamp_max_sections(cls, value: Any) -> int:
        return _clamp_int(value, DEFAULT_MAX_SECTIONS, MAX_SECTIONS_MIN, MAX_SECTIONS_MAX)

    @field_validator("enabled_agents", mode="before")
    @classmethod
    def _default_enabled_agents(cls, value: Any) -> Any:
        if isinstance(value, EnabledAgents):
            return value
        if not isinstance(value, Mapping):
            return {}
        return value

    @field_validator("research_mode", mode="before")
    @classmethod
    def _default_research_mode(cls, value: Any) -> ResearchMode:
        if isinstance(value, ResearchMode):
            return value
        if isinstance(value, str) and value.strip().lower() in ("quick", "full"):
            return ResearchMode(value.strip().lower())
        return ResearchMode.FULL

    def to_dict(self) -> dict:
        """Convert settings to their camelCase wire form."""
        return self.model_dump(by_alias=True, mode="json")


def validate_settings(
    settings: ResearchSettings | Mapping[str, Any] | str | None = None,
) -> ResearchSettings:
    """
    Normalize caller-supplied settings into a complete ResearchSettings.

    Accepts an existing ResearchSettings, a (partial) mapping in either
    camelCase or snake_case, exported JSON text, or None. Never raises for
    out-of-range or missing values; they are clamped or defaulted.

    Args:
        settings: Settings in any supported form

    Returns:
        Validated settings

    Raises:
        ValueError: Only when given text that is not valid JSON
    """
    if settings is None:
        return ResearchSettings()

    if isinstance(settings, ResearchSettings):
        return ResearchSettings.model_validate(settings.model_dump())

    if isinstance(settings, str):
        return import_settings(settings)

    if isinstance(settings, Mapping):
        return ResearchSettings.model_validate(dict(settings))

    logger.warning(f"Ignoring unsupported settings type {type(settings).__name__}, using defaults")
    return ResearchSettings()


def export_settings(settings: ResearchSettings) -> str:
    """Serialize settings to pretty-printed camelCase JSON."""
    return json.dumps(settings.to_dict(), indent=2)


def import_settings(json_string: str) -> ResearchSettings:
    """
    Parse and validate settings exported by :func:`export_settings`.

    Raises:
        ValueError: If the text is not valid JSON
    """
    try:
        parsed = json.loads(json_string)
    except json.JSONDecodeError as e:
        raise ValueError("Invalid JSON format for research settings") from e

    if not isinstance(parsed, Mapping):
        logger.warning("Settings JSON is not an object, using defaults")
        return ResearchSettings()

    return ResearchSettings.model_validate(dict(parsed))
