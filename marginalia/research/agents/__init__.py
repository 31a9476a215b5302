"""Specialized research agents."""

from .analysis import AnalysisAgent
from .base import AgentTrace, BaseAgent, ProgressCallback
from .context import ContextAgent
from .evidence import EvidenceAgent
from .search import SearchAgent

__all__ = [
    "AgentTrace",
    "AnalysisAgent",
    "BaseAgent",
    "ContextAgent",
    "EvidenceAgent",
    "ProgressCallback",
    "SearchAgent",
]
