"""
Book research orchestrator.

Classifies a query, fans the selected agents out concurrently over the same
book, tolerates partial failure and synthesizes the surviving findings into a
single answer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .agents import AnalysisAgent, BaseAgent, ContextAgent, EvidenceAgent, SearchAgent
from .classifier import QueryClassifier
from .events import DebugEventBus
from .models import (
    AgentResult,
    BookContext,
    QueryType,
    ResearchQuery,
    ResearchResponse,
    SourceReference,
    generate_id,
)
from .research_settings import ResearchMode, ResearchSettings, validate_settings
from .session import SessionRecorder
from .windowing import ContentWindower

if TYPE_CHECKING:
    from ..config.loader import ResearchConfig
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)

# Agents added to the search agent for each query type
AGENT_SELECTION: dict[QueryType, tuple[str, ...]] = {
    QueryType.FACTUAL: ("evidence", "context"),
    QueryType.ANALYTICAL: ("analysis", "context", "evidence"),
    QueryType.COMPARATIVE: ("analysis", "context"),
    QueryType.EVALUATIVE: ("evidence", "analysis", "context"),
}
DEFAULT_SELECTION = ("evidence", "analysis", "context")

QUICK_INSIGHT_PRIORITY = 3
QUICK_INSIGHT_CONFIDENCE = 0.7

SYNTHESIS_SYSTEM_PROMPT_TEMPLATE = """You are a research synthesis expert. Your task is to combine findings from multiple research agents into a comprehensive, coherent response.

Given:
- Original query: "{query}"
- Query type: {query_type}
- Multiple agent findings

Create a response that:
1. Directly addresses the original query
2. Integrates insights from all agents smoothly
3. Maintains proper attribution to sources
4. Provides a logical flow of information
5. Highlights the most important findings
6. Notes any limitations or gaps in available information

Write in a natural, conversational tone as if you're an expert who has thoroughly studied this book."""

SYNTHESIS_USER_PROMPT_TEMPLATE = """Original query: "{query}"

Research findings from specialized agents:

{agent_summary}

Please synthesize these findings into a comprehensive response that directly addresses the original query."""


class ResearchError(RuntimeError):
    """A research call could not produce an answer."""


class ResearchTimeoutError(ResearchError):
    """A research call ran past its deadline."""


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


def format_agent_summary(results: list[AgentResult]) -> str:
    """Findings grouped by agent, as fed to the synthesis call."""
    return "\n\n---\n\n".join(
        f"## {result.agent_name} (Confidence: {result.confidence}):\n" + "\n\n".join(result.findings)
        for result in results
    )


def overall_confidence(results: list[AgentResult]) -> float:
    """Mean agent confidence rounded to two decimals (0 with no results)."""
    if not results:
        return 0.0
    return round(sum(r.confidence for r in results) / len(results), 2)


def consolidate_sources(results: list[AgentResult]) -> list[SourceReference]:
    """Union of agent sources, first occurrence per (section id, title) wins."""
    unique: dict[tuple[str, str], SourceReference] = {}
    for result in results:
        for source in result.sources:
            unique.setdefault(source.key, source)
    return list(unique.values())


class BookResearchOrchestrator:
    """
    Coordinates the research agents for one book query.

    A call runs in four phases: classification, agent fan-out, synthesis and
    aggregation. Agents run concurrently and independently; a failed agent is
    dropped and the call only fails when no agent succeeds. With debugging
    enabled the call is mirrored as a DebugSession on the event bus.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        config: ResearchConfig | None = None,
        event_bus: DebugEventBus | None = None,
        agents: Mapping[str, BaseAgent] | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            llm_provider: LLM provider shared by the classifier, agents and synthesis
            config: Research configuration (defaults if None)
            event_bus: Bus for debug events (a private bus if None)
            agents: Agents keyed by settings key, replacing the defaults
        """
        if config is None:
            from ..config.loader import ResearchConfig
            config = ResearchConfig()

        self.llm = llm_provider
        self.config = config
        self.event_bus = event_bus or DebugEventBus()
        self.classifier = QueryClassifier(llm_provider, config.orchestrator)

        if agents is None:
            windower = ContentWindower()
            agents = {
                "search": SearchAgent(llm_provider, config.agents.search, windower),
                "evidence": EvidenceAgent(llm_provider, config.agents.evidence, windower),
                "analysis": AnalysisAgent(llm_provider, config.agents.analysis, windower),
                "context": ContextAgent(llm_provider, config.agents.context, windower),
            }
        self.agents: dict[str, BaseAgent] = dict(agents)

    @property
    def request_timeout(self) -> float | None:
        return self.config.orchestrator.request_timeout

    def resolve_settings(
        self,
        context: BookContext,
        settings: ResearchSettings | Mapping[str, Any] | str | None = None,
    ) -> ResearchSettings:
        """Explicit settings, else the context's, else the configured defaults."""
        if settings is not None:
            return validate_settings(settings)
        if context.settings is not None:
            return validate_settings(context.settings)
        return validate_settings(self.config.defaults)

    def select_agents(self, query_type: QueryType, settings: ResearchSettings) -> list[BaseAgent]:
        """
        Agents to run for *query_type*, filtered by the enabled switches.

        Search always leads the selection unless it is switched off.
        """
        keys = ("search",) + AGENT_SELECTION.get(query_type, DEFAULT_SELECTION)
        return [
            self.agents[key]
            for key in keys
            if key in self.agents and settings.enabled_agents.is_enabled(key)
        ]

    # -- full research ------------------------------------------------------

    async def conduct_research(
        self,
        query_text: str,
        context: BookContext,
        debug_enabled: bool = False,
        session_id: str | None = None,
        settings: ResearchSettings | Mapping[str, Any] | str | None = None,
        timeout: float | None = None,
    ) -> ResearchResponse:
        """
        Research *query_text* against the book.

        Args:
            query_text: Free-text user query
            context: Book and (optional) settings
            debug_enabled: Publish the session on the event bus
            session_id: Session id for debug events (generated if None)
            settings: Settings overriding those in *context*
            timeout: Deadline for the whole call in seconds

        Returns:
            Synthesized ResearchResponse

        Raises:
            ResearchError: If every selected agent failed or none was selected
            ResearchTimeoutError: If *timeout* expired
        """
        context = context.with_settings(self.resolve_settings(context, settings))
        recorder = SessionRecorder(
            self.event_bus,
            query=query_text,
            book_id=context.book_id,
            session_id=session_id,
            enabled=debug_enabled,
        )

        try:
            if timeout is None:
                return await self._research(query_text, context, recorder)
            try:
                return await asyncio.wait_for(self._research(query_text, context, recorder), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise ResearchTimeoutError(f"Research timed out after {timeout}s") from e
        except ResearchError as e:
            logger.error(str(e))
            recorder.session_failed(e)
            raise
        except asyncio.CancelledError:
            recorder.session_failed(ResearchError("Research cancelled"))
            raise
        except Exception as e:
            error = ResearchError(f"Research failed: {_describe(e)}")
            logger.error(str(error))
            recorder.session_failed(error)
            raise error from e

    async def _research(
        self,
        query_text: str,
        context: BookContext,
        recorder: SessionRecorder,
    ) -> ResearchResponse:
        started = time.perf_counter()
        recorder.session_started()

        # Phase 1: classify
        analysis = await self.classifier.analyze(query_text)
        query = analysis.query

        # Phase 2: fan out
        agents = self.select_agents(query.type, context.settings)
        logger.info(f"Selected agents for {query.type.value} query: {[a.name for a in agents]}")
        recorder.query_analyzed(analysis, [a.name for a in agents])

        if not agents:
            raise ResearchError("Research failed: no research agents are enabled")

        outcomes = await asyncio.gather(
            *(self._run_agent(agent, query, context, recorder) for agent in agents),
            return_exceptions=True,
        )

        successful: list[AgentResult] = []
        for agent, outcome in zip(agents, outcomes):
            if isinstance(outcome, AgentResult):
                successful.append(outcome)
            else:
                logger.warning(f"Agent {agent.name} failed: {_describe(outcome)}")

        logger.info(f"{len(successful)}/{len(agents)} agents completed successfully")

        if not successful:
            raise ResearchError(f"Research failed: all {len(agents)} agents failed")

        # Phase 3: synthesize
        synthesis = await self._synthesize(query, successful, recorder)

        # Phase 4: aggregate
        response = ResearchResponse(
            synthesis=synthesis,
            agent_results=tuple(successful),
            total_execution_time=time.perf_counter() - started,
            confidence=overall_confidence(successful),
            sources=tuple(consolidate_sources(successful)),
            mode=ResearchMode.FULL.value,
        )
        recorder.session_completed(response)
        return response

    async def _run_agent(
        self,
        agent: BaseAgent,
        query: ResearchQuery,
        context: BookContext,
        recorder: SessionRecorder,
    ) -> AgentResult:
        agent_id = recorder.agent_started(agent, query.text)
        progress = recorder.progress_callback(agent_id, agent.name)

        try:
            result, trace = await asyncio.wait_for(
                agent.execute_traced(query, context, progress),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError as e:
            error = TimeoutError(f"{agent.name} timed out after {self.request_timeout}s")
            recorder.agent_failed(agent_id, agent.name, error)
            raise error from e
        except Exception as e:
            recorder.agent_failed(agent_id, agent.name, e)
            raise

        recorder.agent_completed(agent_id, result, trace)
        return result

    async def _synthesize(
        self,
        query: ResearchQuery,
        results: list[AgentResult],
        recorder: SessionRecorder,
    ) -> str:
        """One synthesis call; the raw agent summary is the fallback."""
        agent_summary = format_agent_summary(results)
        system_prompt = SYNTHESIS_SYSTEM_PROMPT_TEMPLATE.format(query=query.text, query_type=query.type.value)
        user_prompt = SYNTHESIS_USER_PROMPT_TEMPLATE.format(query=query.text, agent_summary=agent_summary)

        recorder.synthesis_started(agent_summary, len(results), system_prompt)

        orchestrator_config = self.config.orchestrator
        try:
            synthesis = await asyncio.wait_for(
                self.llm.complete(
                    prompt=user_prompt,
                    system_prompt=system_prompt,
                    temperature=orchestrator_config.synthesis_temperature,
                    max_tokens=orchestrator_config.synthesis_max_tokens,
                ),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Synthesis timed out after {self.request_timeout}s, returning raw findings")
            synthesis = None
        except Exception as e:
            logger.warning(f"Synthesis failed, returning raw findings: {e}")
            synthesis = None

        fallback = synthesis is None
        if fallback:
            synthesis = f'Research findings for "{query.text}":\n\n{agent_summary}'

        recorder.synthesis_completed(synthesis, fallback)
        return synthesis

    # -- quick insight ------------------------------------------------------

    async def get_quick_insight(
        self,
        query_text: str,
        context: BookContext,
        settings: ResearchSettings | Mapping[str, Any] | str | None = None,
    ) -> str:
        """
        Fast answer from the search agent alone.

        No classification and no synthesis: the query is treated as FACTUAL
        with priority 3 and the search findings are returned verbatim.

        Raises:
            ResearchError: If the search agent failed
        """
        context = context.with_settings(self.resolve_settings(context, settings))
        query = ResearchQuery(
            id=generate_id(),
            text=query_text,
            type=QueryType.FACTUAL,
            priority=QUICK_INSIGHT_PRIORITY,
        )

        try:
            result = await asyncio.wait_for(
                self.agents["search"].execute(query, context),
                timeout=self.request_timeout,
            )
        except Exception as e:
            logger.error(f"Quick insight failed: {_describe(e)}")
            raise ResearchError(f"Quick insight failed: {_describe(e)}") from e

        return "\n\n".join(result.findings)

    # -- mode dispatch ------------------------------------------------------

    async def answer(
        self,
        query_text: str,
        context: BookContext,
        settings: ResearchSettings | Mapping[str, Any] | str | None = None,
        debug_enabled: bool = False,
        session_id: str | None = None,
        timeout: float | None = None,
    ) -> ResearchResponse:
        """
        Answer a query in the research mode named by the settings.

        Quick mode wraps :meth:`get_quick_insight` in a ResearchResponse with
        no agent results; its debug feed is only session_started followed by
        session_completed or session_failed. Full mode runs
        :meth:`conduct_research`.
        """
        resolved = self.resolve_settings(context, settings)

        if resolved.research_mode != ResearchMode.QUICK:
            return await self.conduct_research(
                query_text,
                context,
                debug_enabled=debug_enabled,
                session_id=session_id,
                settings=resolved,
                timeout=timeout,
            )

        # Quick mode has no analysis, agent or synthesis phases to report
        recorder = SessionRecorder(
            self.event_bus,
            query=query_text,
            book_id=context.book_id,
            session_id=session_id,
            enabled=debug_enabled,
        )
        recorder.session_started()

        started = time.perf_counter()
        try:
            try:
                insight = await asyncio.wait_for(
                    self.get_quick_insight(query_text, context, settings=resolved),
                    timeout=timeout,
                )
            except asyncio.TimeoutError as e:
                raise ResearchTimeoutError(f"Quick insight timed out after {timeout}s") from e
        except ResearchError as e:
            recorder.session_failed(e)
            raise
        except asyncio.CancelledError:
            recorder.session_failed(ResearchError("Research cancelled"))
            raise

        response = ResearchResponse(
            synthesis=insight,
            agent_results=(),
            total_execution_time=time.perf_counter() - started,
            confidence=QUICK_INSIGHT_CONFIDENCE,
            sources=(),
            mode=ResearchMode.QUICK.value,
        )
        recorder.session_completed(response)
        return response
