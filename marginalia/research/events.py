"""Debug events and the bus that broadcasts them.

Every event carries a typed payload; the payload class determines the event
type, so the set of event shapes is closed. Events serialize to the
``{type, timestamp, sessionId, data}`` envelope with camelCase payload keys.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class DebugEventType(str, Enum):
    SESSION_STARTED = "session_started"
    QUERY_ANALYZED = "query_analyzed"
    AGENT_STARTED = "agent_started"
    AGENT_PROGRESS = "agent_progress"
    AGENT_COMPLETED = "agent_completed"
    AGENT_FAILED = "agent_failed"
    SYNTHESIS_STARTED = "synthesis_started"
    SYNTHESIS_COMPLETED = "synthesis_completed"
    SESSION_COMPLETED = "session_completed"
    SESSION_FAILED = "session_failed"


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class EventPayload(BaseModel):
    """Base class for event payloads."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    event_type: ClassVar[DebugEventType]


class SessionStarted(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.SESSION_STARTED

    query: str
    book_id: str


class QueryAnalyzed(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.QUERY_ANALYZED

    original_query: str
    analyzed_type: str
    priority: int
    reasoning: str = ""
    selected_agents: list[str]
    fallback: bool = False


class AgentStarted(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.AGENT_STARTED

    agent_id: str
    agent_name: str
    query: str


class AgentProgress(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.AGENT_PROGRESS

    agent_id: str
    agent_name: str
    stage: str  # windowing, querying_model, parsing
    message: str = ""


class AgentCompleted(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.AGENT_COMPLETED

    agent_id: str
    agent_name: str
    duration: float
    findings: list[str]
    confidence: float
    sources: list[dict[str, Any]] = []
    raw_output: str = ""


class AgentFailed(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.AGENT_FAILED

    agent_id: str
    agent_name: str
    error: str


class SynthesisStarted(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.SYNTHESIS_STARTED

    agent_count: int
    agent_inputs: str


class SynthesisCompleted(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.SYNTHESIS_COMPLETED

    duration: float
    fallback: bool = False
    output_length: int = 0


class SessionCompleted(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.SESSION_COMPLETED

    total_duration: float
    agent_count: int
    confidence: float
    source_count: int


class SessionFailed(EventPayload):
    event_type: ClassVar[DebugEventType] = DebugEventType.SESSION_FAILED

    error: str
    total_duration: float | None = None


EventData = Union[
    SessionStarted,
    QueryAnalyzed,
    AgentStarted,
    AgentProgress,
    AgentCompleted,
    AgentFailed,
    SynthesisStarted,
    SynthesisCompleted,
    SessionCompleted,
    SessionFailed,
]


@dataclass(frozen=True)
class DebugEvent:
    """One lifecycle event of a research session."""

    session_id: str
    data: EventData
    timestamp: float = field(default_factory=time.time)

    @property
    def type(self) -> DebugEventType:
        return self.data.event_type

    def to_dict(self) -> dict:
        """JSON-ready envelope."""
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "data": self.data.model_dump(by_alias=True, mode="json"),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------

Subscriber = Callable[[DebugEvent], None]


class DebugEventBus:
    """Thread-safe synchronous broadcast of debug events.

    Subscribers are invoked in registration order on the emitting thread. A
    subscriber that raises is logged and skipped; the remaining subscribers
    still receive the event. Nothing is buffered or replayed.

    Usage::

        bus = DebugEventBus()
        unsubscribe = bus.subscribe(print)
        bus.emit(event)
        unsubscribe()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for every event. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)
            count = len(self._subscribers)
        logger.debug(f"Debug subscriber added, total: {count}")

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers.remove(callback)
                except ValueError:
                    return
                remaining = len(self._subscribers)
            logger.debug(f"Debug subscriber removed, total: {remaining}")

        return unsubscribe

    def emit(self, event: DebugEvent) -> None:
        """Deliver *event* to a snapshot of the current subscribers."""
        with self._lock:
            snapshot = list(self._subscribers)

        for callback in snapshot:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Debug subscriber {callback!r} failed on {event.type.value}")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def clear(self) -> None:
        """Remove all subscribers."""
        with self._lock:
            self._subscribers.clear()
