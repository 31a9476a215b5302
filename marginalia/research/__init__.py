"""
Multi-agent research over a single book.

The orchestrator classifies a query, runs the matching specialized agents
concurrently over a windowed rendering of the book and synthesizes their
findings into one answer.
"""

from .agents import AgentTrace, AnalysisAgent, BaseAgent, ContextAgent, EvidenceAgent, SearchAgent
from .classifier import QueryAnalysis, QueryClassifier
from .events import DebugEvent, DebugEventBus, DebugEventType
from .models import (
    AgentResult,
    BookContext,
    BookDocument,
    ContextualInsight,
    CrossReference,
    DocumentSection,
    EvidenceResult,
    QueryType,
    ResearchQuery,
    ResearchResponse,
    SearchResult,
    SourceReference,
)
from .orchestrator import BookResearchOrchestrator, ResearchError, ResearchTimeoutError
from .research_settings import (
    EnabledAgents,
    ResearchMode,
    ResearchSettings,
    export_settings,
    import_settings,
    validate_settings,
)
from .session import AgentDebugInfo, AgentStatus, DebugSession, SessionRecorder, SessionStatus
from .windowing import ContentWindower, estimate_tokens

__all__ = [
    # Orchestration
    "BookResearchOrchestrator",
    "ResearchError",
    "ResearchTimeoutError",
    "QueryClassifier",
    "QueryAnalysis",
    # Agents
    "BaseAgent",
    "AgentTrace",
    "SearchAgent",
    "EvidenceAgent",
    "AnalysisAgent",
    "ContextAgent",
    # Models
    "QueryType",
    "ResearchQuery",
    "DocumentSection",
    "BookDocument",
    "BookContext",
    "SourceReference",
    "AgentResult",
    "ResearchResponse",
    "SearchResult",
    "EvidenceResult",
    "CrossReference",
    "ContextualInsight",
    # Settings
    "ResearchMode",
    "EnabledAgents",
    "ResearchSettings",
    "validate_settings",
    "export_settings",
    "import_settings",
    # Windowing
    "ContentWindower",
    "estimate_tokens",
    # Debugging
    "DebugEvent",
    "DebugEventBus",
    "DebugEventType",
    "DebugSession",
    "AgentDebugInfo",
    "AgentStatus",
    "SessionStatus",
    "SessionRecorder",
]
