"""Shared behaviour for the specialized research agents."""

from __future__ import annotations

import logging
import time
from abc import ABC
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..models import AgentResult, BookContext, ResearchQuery, SourceReference
from ..parsing import extract_confidence, extract_findings, extract_json_object
from ..windowing import ContentWindower

if TYPE_CHECKING:
    from ...config.loader import AgentConfig
    from ...llm.protocols import LLMProvider

logger = logging.getLogger(__name__)

# (stage, message) callback used to surface per-agent progress
ProgressCallback = Callable[[str, str], None]

THINKING_PREAMBLE = """<thinking>
Let me think about this query step by step and plan my research approach.
</thinking>

"""

SOURCE_RELEVANCE = 0.8
SOURCE_MATCH_CHARS = 100
SOURCE_EXCERPT_CHARS = 200


@dataclass(frozen=True)
class AgentTrace:
    """Prompts and raw output of one agent run, for the debug feed."""

    system_prompt: str
    user_prompt: str
    raw_output: str


class BaseAgent(ABC):
    """
    Base class for research agents.

    A concrete agent supplies its role prompt, the user prompt template and
    the labeled blocks it expects back. Running an agent windows the book,
    makes one model call and parses the answer into findings, a confidence
    value and source references. The only error that escapes ``execute`` is
    the model call's own.
    """

    name: str = "BaseAgent"
    key: str = ""  # switch name in ResearchSettings.enabled_agents
    description: str = ""
    system_prompt: str = ""
    user_prompt_template: str = ""
    finding_labels: tuple[tuple[str, str], ...] = ()

    def __init__(
        self,
        llm_provider: LLMProvider,
        config: AgentConfig | None = None,
        windower: ContentWindower | None = None,
    ):
        """
        Initialize the agent.

        Args:
            llm_provider: LLM provider used for every model call
            config: Sampling configuration (defaults if None)
            windower: Document windower (a fresh one if None)
        """
        if config is None:
            from ...config.loader import AgentConfig
            config = AgentConfig()

        self.llm = llm_provider
        self.config = config
        self.windower = windower or ContentWindower()

    @property
    def model_name(self) -> str | None:
        """Model identifier reported by the provider, if any."""
        return getattr(self.llm, "model", None)

    async def execute(self, query: ResearchQuery, context: BookContext) -> AgentResult:
        """Research *query* against the book in *context*."""
        result, _ = await self.execute_traced(query, context)
        return result

    async def execute_traced(
        self,
        query: ResearchQuery,
        context: BookContext,
        progress: ProgressCallback | None = None,
    ) -> tuple[AgentResult, AgentTrace]:
        """
        Run the agent and keep the prompts and raw output.

        Args:
            query: Classified query
            context: Book and settings (read-only)
            progress: Optional callback receiving (stage, message)

        Returns:
            Tuple of (agent result, trace)
        """
        started = time.perf_counter()

        self._report(progress, "windowing", "Preparing book content")
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = self.build_user_prompt(query, book_content)

        self._report(progress, "querying_model", f"Sending {len(user_prompt)} chars to the model")
        try:
            response = await self.call_model(self.system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"{self.name} execution failed: {e}")
            raise

        self._report(progress, "parsing", f"Parsing {len(response)} chars of output")
        result = AgentResult(
            agent_name=self.name,
            query_id=query.id,
            findings=tuple(self.parse_findings(response)),
            confidence=extract_confidence(response),
            sources=tuple(self.extract_source_references(response, context)),
            related_queries=self.parse_related_queries(response),
            execution_time=time.perf_counter() - started,
        )

        logger.info(
            f"{self.name} produced {len(result.findings)} findings "
            f"(confidence={result.confidence:.2f}, sources={len(result.sources)})"
        )
        return result, AgentTrace(self.system_prompt, user_prompt, response)

    def build_user_prompt(self, query: ResearchQuery, book_content: str) -> str:
        """Fill the agent's user prompt template."""
        return self.user_prompt_template.format(
            query=query.text,
            query_type=query.type.value,
            book_content=book_content,
        )

    def parse_findings(self, response: str) -> list[str]:
        """Tagged findings from the agent's labeled blocks."""
        return extract_findings(response, self.finding_labels)

    def parse_related_queries(self, response: str) -> tuple[str, ...] | None:
        """Follow-up queries suggested by the model (None if not supported)."""
        return None

    async def call_model(
        self,
        system_prompt: str,
        user_prompt: str,
        enable_thinking: bool | None = None,
    ) -> str:
        """
        Make one completion call with this agent's sampling settings.

        Args:
            system_prompt: Role prompt
            user_prompt: Task prompt
            enable_thinking: Prefix the thinking preamble. Defaults to the
                agent config.

        Returns:
            The model's text
        """
        if enable_thinking is None:
            enable_thinking = self.config.enable_thinking

        prompt = THINKING_PREAMBLE + user_prompt if enable_thinking else user_prompt
        logger.debug(f"{self.name}: prompt {len(prompt)} chars, thinking={enable_thinking}")

        return await self.llm.complete(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

    async def complete_json(self, system_prompt: str, user_prompt: str) -> dict | None:
        """
        Model call with a JSON-only response contract.

        Returns:
            The parsed JSON object, or None on any failure
        """
        try:
            response = await self.call_model(system_prompt, user_prompt, enable_thinking=False)
        except Exception as e:
            logger.error(f"{self.name} JSON request failed: {e}")
            return None

        data = extract_json_object(response)
        if data is None:
            logger.warning(f"{self.name} returned no parseable JSON object")
        return data

    async def complete_text(self, system_prompt: str, user_prompt: str, failure_label: str) -> str:
        """Free-text model call that reports failure as text instead of raising."""
        try:
            return await self.call_model(system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"{self.name} {failure_label} failed: {e}")
            return f"Failed to analyze {failure_label}: {e}"

    def extract_source_references(
        self,
        response: str,
        context: BookContext,
        max_sources: int = 5,
    ) -> list[SourceReference]:
        """
        Sections whose title or opening text appear in *response*.

        A section matches when its title occurs case-insensitively, or when
        the first 100 characters of its content occur verbatim.
        """
        sources: list[SourceReference] = []
        lowered = response.lower()

        for section in context.document.iter_sections():
            if len(sources) >= max_sources:
                break

            title_hit = bool(section.title) and section.title.lower() in lowered
            content_hit = bool(section.content) and section.content[:SOURCE_MATCH_CHARS] in response

            if title_hit or content_hit:
                excerpt = section.content[:SOURCE_EXCERPT_CHARS] + "..." if section.content else ""
                sources.append(
                    SourceReference(
                        section_id=section.id,
                        section_title=section.title,
                        excerpt=excerpt,
                        relevance_score=SOURCE_RELEVANCE,
                    )
                )

        return sources

    def _report(self, progress: ProgressCallback | None, stage: str, message: str) -> None:
        if progress is not None:
            progress(stage, message)
