"""Debug session state and the recorder that turns it into events."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .events import (
    AgentCompleted,
    AgentFailed,
    AgentProgress,
    AgentStarted,
    DebugEvent,
    DebugEventBus,
    EventData,
    QueryAnalyzed,
    SessionCompleted,
    SessionFailed,
    SessionStarted,
    SynthesisCompleted,
    SynthesisStarted,
)
from .models import generate_id

if TYPE_CHECKING:
    from .agents.base import AgentTrace, BaseAgent, ProgressCallback
    from .classifier import QueryAnalysis
    from .models import AgentResult, ResearchResponse

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    EXECUTING = "executing"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_STATUS_ORDER = {
    SessionStatus.IDLE: 0,
    SessionStatus.ANALYZING: 1,
    SessionStatus.EXECUTING: 2,
    SessionStatus.SYNTHESIZING: 3,
    SessionStatus.COMPLETED: 4,
    SessionStatus.FAILED: 4,
}

TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED})


@dataclass
class AgentDebugInfo:
    """What one agent did during a debug session."""

    id: str
    name: str
    status: AgentStatus = AgentStatus.PENDING
    start_time: float | None = None
    end_time: float | None = None
    duration: float | None = None
    system_prompt: str | None = None
    user_prompt: str | None = None
    raw_output: str | None = None
    processed_output: str | None = None
    confidence: float | None = None
    sources: list[dict] = field(default_factory=list)
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)  # model_used, temperature, max_tokens


@dataclass
class DebugSession:
    """Observable state of one research call."""

    id: str
    query: str
    book_id: str
    timestamp: float = field(default_factory=time.time)
    status: SessionStatus = SessionStatus.IDLE
    query_analysis: dict[str, Any] | None = None
    agents: list[AgentDebugInfo] = field(default_factory=list)
    synthesis: dict[str, Any] | None = None
    error: str | None = None
    total_duration: float | None = None
    performance: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def advance(self, status: SessionStatus) -> None:
        """
        Move the session to *status*.

        Status only moves forward. ``failed`` is reachable from any
        non-terminal state; ``completed`` and ``failed`` are final.

        Raises:
            ValueError: On a transition out of a terminal state or backwards
        """
        if status == self.status:
            return
        if self.is_terminal:
            raise ValueError(f"Session {self.id} is already {self.status.value}")
        if status != SessionStatus.FAILED and _STATUS_ORDER[status] < _STATUS_ORDER[self.status]:
            raise ValueError(f"Cannot move session {self.id} from {self.status.value} to {status.value}")
        self.status = status

    def agent(self, agent_id: str) -> AgentDebugInfo | None:
        for info in self.agents:
            if info.id == agent_id:
                return info
        return None


class SessionRecorder:
    """
    Keeps a DebugSession current and emits the matching events.

    With debugging disabled every method is a no-op, so the orchestrator can
    call the recorder unconditionally.
    """

    def __init__(
        self,
        bus: DebugEventBus | None,
        query: str,
        book_id: str,
        session_id: str | None = None,
        enabled: bool = True,
    ):
        self.bus = bus
        self.enabled = enabled and bus is not None
        self.session = DebugSession(id=session_id or generate_id(), query=query, book_id=book_id)
        self._started = time.perf_counter()
        self._synthesis_started: float | None = None

    @classmethod
    def disabled(cls, query: str = "", book_id: str = "") -> SessionRecorder:
        return cls(None, query, book_id, enabled=False)

    @property
    def session_id(self) -> str:
        return self.session.id

    def _emit(self, data: EventData) -> None:
        if self.bus is not None:
            self.bus.emit(DebugEvent(session_id=self.session.id, data=data))

    def _elapsed(self) -> float:
        return time.perf_counter() - self._started

    # -- session lifecycle --------------------------------------------------

    def session_started(self) -> None:
        if not self.enabled:
            return
        self.session.advance(SessionStatus.ANALYZING)
        self._emit(SessionStarted(query=self.session.query, book_id=self.session.book_id))

    def query_analyzed(self, analysis: QueryAnalysis, agent_names: list[str]) -> None:
        if not self.enabled:
            return
        query = analysis.query
        self.session.query_analysis = {
            "original_query": query.text,
            "analyzed_type": query.type.value,
            "priority": query.priority,
            "reasoning": analysis.reasoning,
            "selected_agents": list(agent_names),
        }
        self.session.advance(SessionStatus.EXECUTING)
        self._emit(
            QueryAnalyzed(
                original_query=query.text,
                analyzed_type=query.type.value,
                priority=query.priority,
                reasoning=analysis.reasoning,
                selected_agents=list(agent_names),
                fallback=analysis.fallback,
            )
        )

    def synthesis_started(self, agent_inputs: str, agent_count: int, system_prompt: str) -> None:
        if not self.enabled:
            return
        self._synthesis_started = time.perf_counter()
        self.session.synthesis = {
            "start_time": time.time(),
            "system_prompt": system_prompt,
            "agent_inputs": agent_inputs,
        }
        self.session.advance(SessionStatus.SYNTHESIZING)
        self._emit(SynthesisStarted(agent_count=agent_count, agent_inputs=agent_inputs))

    def synthesis_completed(self, output: str, fallback: bool) -> None:
        if not self.enabled:
            return
        duration = time.perf_counter() - (self._synthesis_started or self._started)
        if self.session.synthesis is not None:
            self.session.synthesis.update(
                end_time=time.time(),
                duration=duration,
                final_output=output,
                fallback=fallback,
            )
        self._emit(SynthesisCompleted(duration=duration, fallback=fallback, output_length=len(output)))

    def session_completed(self, response: ResearchResponse) -> None:
        if not self.enabled:
            return
        self.session.total_duration = self._elapsed()
        synthesis_time = (self.session.synthesis or {}).get("duration", 0.0)
        self.session.performance = {
            "total_agents": len(self.session.agents),
            "parallel_execution_time": max((a.duration or 0.0 for a in self.session.agents), default=0.0),
            "synthesis_time": synthesis_time,
            "overall_confidence": response.confidence,
        }
        self.session.advance(SessionStatus.COMPLETED)
        self._emit(
            SessionCompleted(
                total_duration=self.session.total_duration,
                agent_count=response.agent_count,
                confidence=response.confidence,
                source_count=len(response.sources),
            )
        )

    def session_failed(self, error: BaseException) -> None:
        if not self.enabled or self.session.is_terminal:
            return
        self.session.error = str(error)
        self.session.total_duration = self._elapsed()
        self.session.advance(SessionStatus.FAILED)
        self._emit(SessionFailed(error=str(error), total_duration=self.session.total_duration))

    # -- agents -------------------------------------------------------------

    def agent_started(self, agent: BaseAgent, query_text: str) -> str:
        """Register a running agent. Returns its run id."""
        agent_id = f"{agent.name}_{generate_id()}"
        if not self.enabled:
            return agent_id

        self.session.agents.append(
            AgentDebugInfo(
                id=agent_id,
                name=agent.name,
                status=AgentStatus.RUNNING,
                start_time=time.time(),
                metadata={
                    "model_used": agent.model_name,
                    "temperature": agent.config.temperature,
                    "max_tokens": agent.config.max_tokens,
                },
            )
        )
        self._emit(AgentStarted(agent_id=agent_id, agent_name=agent.name, query=query_text))
        return agent_id

    def progress_callback(self, agent_id: str, agent_name: str) -> ProgressCallback | None:
        """Callback that forwards an agent's stages as agent_progress events."""
        if not self.enabled:
            return None

        def report(stage: str, message: str) -> None:
            self._emit(AgentProgress(agent_id=agent_id, agent_name=agent_name, stage=stage, message=message))

        return report

    def agent_completed(self, agent_id: str, result: AgentResult, trace: AgentTrace) -> None:
        if not self.enabled:
            return
        sources = [source.to_dict() for source in result.sources]
        info = self.session.agent(agent_id)
        if info is not None:
            info.status = AgentStatus.COMPLETED
            info.end_time = time.time()
            info.duration = result.execution_time
            info.system_prompt = trace.system_prompt
            info.user_prompt = trace.user_prompt
            info.raw_output = trace.raw_output
            info.processed_output = "\n\n".join(result.findings)
            info.confidence = result.confidence
            info.sources = sources

        self._emit(
            AgentCompleted(
                agent_id=agent_id,
                agent_name=result.agent_name,
                duration=result.execution_time,
                findings=list(result.findings),
                confidence=result.confidence,
                sources=sources,
                raw_output=trace.raw_output,
            )
        )

    def agent_failed(self, agent_id: str, agent_name: str, error: BaseException) -> None:
        if not self.enabled:
            return
        message = str(error) or type(error).__name__
        info = self.session.agent(agent_id)
        if info is not None:
            info.status = AgentStatus.FAILED
            info.end_time = time.time()
            if info.start_time is not None:
                info.duration = info.end_time - info.start_time
            info.error = message

        self._emit(AgentFailed(agent_id=agent_id, agent_name=agent_name, error=message))
