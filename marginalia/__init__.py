"""Marginalia: multi-agent research engine for books."""

from .research import (
    BookContext,
    BookDocument,
    BookResearchOrchestrator,
    DebugEventBus,
    DocumentSection,
    ResearchError,
    ResearchResponse,
    ResearchSettings,
    ResearchTimeoutError,
    validate_settings,
)

__all__ = [
    "BookContext",
    "BookDocument",
    "BookResearchOrchestrator",
    "DebugEventBus",
    "DocumentSection",
    "ResearchError",
    "ResearchResponse",
    "ResearchSettings",
    "ResearchTimeoutError",
    "validate_settings",
]
