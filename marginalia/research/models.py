"""Data models for the multi-agent book research engine.

Caller-supplied inputs (the book and its section tree) are frozen pydantic
models so they can be loaded straight from JSON and shared read-only between
concurrently running agents. Engine outputs are frozen dataclasses.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .research_settings import ResearchSettings


class QueryType(str, Enum):
    """Kind of question being asked about the book."""

    FACTUAL = "factual"  # "What does the author say about X?"
    ANALYTICAL = "analytical"  # "How does the author's argument develop?"
    COMPARATIVE = "comparative"  # "How do chapters 3 and 7 relate?"
    EVALUATIVE = "evaluative"  # "Is the author's claim well-supported?"

    @classmethod
    def parse(cls, value: object) -> QueryType | None:
        """Match a model-provided label case-insensitively, or None."""
        if isinstance(value, QueryType):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def generate_id() -> str:
    """Short random identifier for queries, sessions and agent runs."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class ResearchQuery:
    """A classified user query."""

    id: str
    text: str
    type: QueryType
    priority: int  # 1-10, 10 = most complex

    def __post_init__(self):
        if not 1 <= self.priority <= 10:
            raise ValueError("Priority must be between 1 and 10")


# ---------------------------------------------------------------------------
# Book input
# ---------------------------------------------------------------------------


class DocumentSection(BaseModel):
    """A node in the book's section tree."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    content: str | None = None
    children: tuple[DocumentSection, ...] = ()


class BookDocument(BaseModel):
    """A parsed book: metadata plus the ordered section tree."""

    model_config = ConfigDict(frozen=True)

    title: str
    author: str | None = None
    sections: tuple[DocumentSection, ...] = ()

    def iter_sections(self) -> Iterator[DocumentSection]:
        """Yield every section depth-first in document order."""
        stack = list(reversed(self.sections))
        while stack:
            section = stack.pop()
            yield section
            stack.extend(reversed(section.children))

    @property
    def section_count(self) -> int:
        """Total number of sections at every depth."""
        return sum(1 for _ in self.iter_sections())


class BookContext(BaseModel):
    """Everything an agent needs to research one book."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    book_id: str = Field(..., alias="bookId")
    document: BookDocument
    settings: ResearchSettings | None = None
    current_section_id: str | None = Field(None, alias="currentSectionId")

    def with_settings(self, settings: ResearchSettings) -> BookContext:
        """Return a copy of this context carrying *settings*."""
        return self.model_copy(update={"settings": settings})


# ---------------------------------------------------------------------------
# Agent and orchestrator output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceReference:
    """A section of the book that an agent's answer drew on."""

    section_id: str
    section_title: str
    excerpt: str
    relevance_score: float

    @property
    def key(self) -> tuple[str, str]:
        """Identity used when consolidating sources across agents."""
        return (self.section_id, self.section_title)

    def to_dict(self) -> dict:
        return {
            "sectionId": self.section_id,
            "sectionTitle": self.section_title,
            "excerpt": self.excerpt,
            "relevanceScore": self.relevance_score,
        }


@dataclass(frozen=True)
class AgentResult:
    """Structured findings from one agent invocation."""

    agent_name: str
    query_id: str
    findings: tuple[str, ...]
    confidence: float  # 0-1, self-reported by the model
    sources: tuple[SourceReference, ...] = ()
    related_queries: tuple[str, ...] | None = None
    execution_time: float = 0.0  # seconds

    def __post_init__(self):
        if not 0 <= self.confidence <= 1:
            raise ValueError("Confidence must be between 0 and 1")

    def to_dict(self) -> dict:
        return {
            "agentName": self.agent_name,
            "queryId": self.query_id,
            "findings": list(self.findings),
            "confidence": self.confidence,
            "sources": [s.to_dict() for s in self.sources],
            "relatedQueries": list(self.related_queries) if self.related_queries is not None else None,
            "executionTime": self.execution_time,
        }


@dataclass(frozen=True)
class ResearchResponse:
    """Final output of one research call."""

    synthesis: str
    agent_results: tuple[AgentResult, ...]
    total_execution_time: float  # seconds
    confidence: float
    sources: tuple[SourceReference, ...]
    mode: str = "full"

    @property
    def agent_count(self) -> int:
        """Number of agents that contributed findings."""
        return len(self.agent_results)

    def to_dict(self) -> dict:
        """Convert the response to a JSON-ready dictionary."""
        return {
            "synthesis": self.synthesis,
            "agentResults": [r.to_dict() for r in self.agent_results],
            "totalExecutionTime": self.total_execution_time,
            "confidence": self.confidence,
            "sources": [s.to_dict() for s in self.sources],
            "mode": self.mode,
        }


# ---------------------------------------------------------------------------
# Helper-operation results
# ---------------------------------------------------------------------------


def _as_float(value: object, default: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _as_str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


@dataclass
class SearchResult:
    """One hit from a direct content search."""

    section_title: str
    relevance: float
    match_type: str  # title, content or both
    excerpt: str

    @classmethod
    def from_dict(cls, data: dict) -> SearchResult:
        return cls(
            section_title=str(data.get("sectionTitle", "")),
            relevance=_as_float(data.get("relevance"), 0.0),
            match_type=str(data.get("matchType", "content")),
            excerpt=str(data.get("excerpt", "")),
        )


@dataclass
class EvidenceResult:
    """Verdict on a single claim checked against the book."""

    claim: str
    supporting_evidence: list[SourceReference] = field(default_factory=list)
    contradicting_evidence: list[SourceReference] = field(default_factory=list)
    evidence_types: list[str] = field(default_factory=list)  # example, statistic, quote, case_study
    strength: str = "weak"  # strong, moderate, weak

    @classmethod
    def unverified(cls, claim: str) -> EvidenceResult:
        """Neutral result used when verification could not be performed."""
        return cls(claim=claim)

    @classmethod
    def from_dict(cls, data: dict, claim: str) -> EvidenceResult:
        strength = str(data.get("strength", "weak")).lower()
        if strength not in ("strong", "moderate", "weak"):
            strength = "weak"

        return cls(
            claim=str(data.get("claim") or claim),
            supporting_evidence=_parse_references(data.get("supportingEvidence")),
            contradicting_evidence=_parse_references(data.get("contradictingEvidence")),
            evidence_types=_as_str_list(data.get("evidenceTypes")),
            strength=strength,
        )


def _parse_references(items: object) -> list[SourceReference]:
    references = []
    if not isinstance(items, list):
        return references
    for item in items:
        if not isinstance(item, dict):
            continue
        references.append(
            SourceReference(
                section_id=str(item.get("sectionId", "")),
                section_title=str(item.get("sectionTitle", "")),
                excerpt=str(item.get("excerpt", "")),
                relevance_score=min(1.0, max(0.0, _as_float(item.get("relevanceScore"), 0.0))),
            )
        )
    return references


@dataclass
class CrossReference:
    """A relationship between two sections of the book."""

    from_section: str
    to_section: str
    relationship: str  # supports, contradicts, elaborates, related, builds_upon
    description: str
    confidence: float

    @classmethod
    def from_dict(cls, data: dict) -> CrossReference:
        return cls(
            from_section=str(data.get("fromSection", "")),
            to_section=str(data.get("toSection", "")),
            relationship=str(data.get("relationship", "related")),
            description=str(data.get("description", "")),
            confidence=min(1.0, max(0.0, _as_float(data.get("confidence"), 0.0))),
        )


@dataclass
class ContextualInsight:
    """High-level structural overview of a book."""

    theme: str
    sections: list[str]
    development: str
    significance: str

    @classmethod
    def undetermined(cls, reason: str = "Could not determine") -> ContextualInsight:
        return cls(
            theme=reason,
            sections=[],
            development=reason,
            significance=reason,
        )

    @classmethod
    def from_dict(cls, data: dict) -> ContextualInsight:
        return cls(
            theme=str(data.get("theme", "")),
            sections=_as_str_list(data.get("sections")),
            development=str(data.get("development", "")),
            significance=str(data.get("significance", "")),
        )
