"""Query classification: type and priority from a single model call."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import QueryType, ResearchQuery, generate_id
from .parsing import extract_json_object

if TYPE_CHECKING:
    from ..config.loader import OrchestratorConfig
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TYPE = QueryType.FACTUAL
DEFAULT_PRIORITY = 5

CLASSIFIER_SYSTEM_PROMPT = """You are a query analyzer. Categorize this research query and determine its type.

Query types:
- FACTUAL: Asking for specific information ("What does the author say about X?")
- ANALYTICAL: Asking for analysis or interpretation ("How does X work?" "Why did Y happen?")
- COMPARATIVE: Comparing different parts or concepts ("How does X relate to Y?")
- EVALUATIVE: Asking for judgment or assessment ("Is X well-supported?" "How effective is Y?")

Return in JSON format:
{
  "type": "FACTUAL",
  "priority": 8,
  "reasoning": "This query asks for specific factual information..."
}

Priority: 1-10 scale where 10 is highest priority/complexity"""


@dataclass(frozen=True)
class QueryAnalysis:
    """A classified query plus the model's stated reasoning."""

    query: ResearchQuery
    reasoning: str = ""
    fallback: bool = False  # True when the default classification was used


def _coerce_priority(value: object) -> int:
    """Priority as an int in 1-10; missing or unusable values give the default."""
    if isinstance(value, bool) or not value:
        return DEFAULT_PRIORITY
    try:
        priority = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_PRIORITY
    return min(10, max(1, priority))


class QueryClassifier:
    """
    Labels a free-text query with a QueryType and a 1-10 priority.

    Classification never fails: any problem with the model call or its answer
    yields a FACTUAL query with priority 5.
    """

    def __init__(self, llm_provider: LLMProvider, config: OrchestratorConfig | None = None):
        """
        Initialize the classifier.

        Args:
            llm_provider: LLM provider for the classification call
            config: Orchestrator configuration (sampling and timeout)
        """
        if config is None:
            from ..config.loader import OrchestratorConfig
            config = OrchestratorConfig()

        self.llm = llm_provider
        self.config = config

    async def classify(self, text: str) -> ResearchQuery:
        """Classify *text* into a ResearchQuery."""
        analysis = await self.analyze(text)
        return analysis.query

    async def analyze(self, text: str) -> QueryAnalysis:
        """
        Classify *text* and keep the model's reasoning.

        Args:
            text: User query

        Returns:
            QueryAnalysis; ``fallback`` is set when the default was used
        """
        try:
            response = await asyncio.wait_for(
                self.llm.complete(
                    prompt=f'Analyze this query: "{text}"',
                    system_prompt=CLASSIFIER_SYSTEM_PROMPT,
                    temperature=self.config.classifier_temperature,
                    max_tokens=self.config.classifier_max_tokens,
                ),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Query analysis timed out after {self.config.request_timeout}s, using defaults")
            return self._fallback(text)
        except Exception as e:
            logger.warning(f"Query analysis failed, using defaults: {e}")
            return self._fallback(text)

        data = extract_json_object(response)
        if data is None:
            logger.warning("Query analysis returned no JSON, using defaults")
            return self._fallback(text)

        query_type = QueryType.parse(data.get("type"))
        if query_type is None:
            logger.warning(f"Unknown query type {data.get('type')!r}, using defaults")
            return self._fallback(text)

        query = ResearchQuery(
            id=generate_id(),
            text=text,
            type=query_type,
            priority=_coerce_priority(data.get("priority")),
        )
        logger.info(f"Classified query as {query.type.value} (priority {query.priority})")

        return QueryAnalysis(query=query, reasoning=str(data.get("reasoning") or ""))

    def _fallback(self, text: str) -> QueryAnalysis:
        return QueryAnalysis(
            query=ResearchQuery(
                id=generate_id(),
                text=text,
                type=DEFAULT_QUERY_TYPE,
                priority=DEFAULT_PRIORITY,
            ),
            fallback=True,
        )
