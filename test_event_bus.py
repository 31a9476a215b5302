"""
Debug Event Bus Tests

Tests for event envelopes, subscriber management, failure isolation and the
debug session state machine.
"""

import json
import threading

import pytest

from marginalia.research.events import (
    AgentStarted,
    DebugEvent,
    DebugEventBus,
    DebugEventType,
    QueryAnalyzed,
    SessionStarted,
)
from marginalia.research.session import DebugSession, SessionStatus


def make_event(session_id: str = "s1") -> DebugEvent:
    return DebugEvent(session_id=session_id, data=SessionStarted(query="Who is Ishmael?", book_id="moby"))


def test_envelope_is_camel_case():
    event = DebugEvent(
        session_id="s1",
        data=AgentStarted(agent_id="SearchAgent_1", agent_name="BookSearchAgent", query="q"),
        timestamp=1700000000.0,
    )

    assert event.type == DebugEventType.AGENT_STARTED
    assert event.to_dict() == {
        "type": "agent_started",
        "timestamp": 1700000000.0,
        "sessionId": "s1",
        "data": {"agentId": "SearchAgent_1", "agentName": "BookSearchAgent", "query": "q"},
    }


def test_to_json_round_trips_through_json():
    event = DebugEvent(
        session_id="s2",
        data=QueryAnalyzed(
            original_query="q",
            analyzed_type="factual",
            priority=5,
            reasoning="",
            selected_agents=["BookSearchAgent", "EvidenceAgent"],
        ),
    )
    parsed = json.loads(event.to_json())

    assert parsed["type"] == "query_analyzed"
    assert parsed["data"]["selectedAgents"] == ["BookSearchAgent", "EvidenceAgent"]
    assert parsed["data"]["analyzedType"] == "factual"


def test_subscribers_receive_in_order_and_unsubscribe():
    bus = DebugEventBus()
    received = []

    unsubscribe_a = bus.subscribe(lambda e: received.append(("a", e.session_id)))
    bus.subscribe(lambda e: received.append(("b", e.session_id)))
    assert bus.subscriber_count == 2

    bus.emit(make_event("s1"))
    unsubscribe_a()
    unsubscribe_a()  # second call is harmless
    bus.emit(make_event("s2"))

    assert received == [("a", "s1"), ("b", "s1"), ("b", "s2")]
    assert bus.subscriber_count == 1


def test_failing_subscriber_does_not_block_others():
    bus = DebugEventBus()
    received = []

    def broken(event):
        raise RuntimeError("subscriber bug")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    bus.emit(make_event())

    assert len(received) == 1
    print("[PASS] Raising subscriber skipped")


def test_emit_uses_subscriber_snapshot():
    """Unsubscribing during delivery does not affect the current event."""
    bus = DebugEventBus()
    received = []
    handles = {}

    def first(event):
        received.append("first")
        handles["second"]()

    handles["first"] = bus.subscribe(first)
    handles["second"] = bus.subscribe(lambda e: received.append("second"))

    bus.emit(make_event())
    bus.emit(make_event())

    assert received == ["first", "second", "first"]


def test_clear():
    bus = DebugEventBus()
    bus.subscribe(lambda e: None)
    bus.clear()
    assert bus.subscriber_count == 0


def test_concurrent_emit_and_subscribe():
    bus = DebugEventBus()
    counter = {"n": 0}
    lock = threading.Lock()

    def count(event):
        with lock:
            counter["n"] += 1

    bus.subscribe(count)

    def emitter():
        for _ in range(200):
            bus.emit(make_event())

    def churner():
        for _ in range(200):
            bus.subscribe(lambda e: None)()

    threads = [threading.Thread(target=emitter) for _ in range(4)] + [threading.Thread(target=churner)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter["n"] == 800
    assert bus.subscriber_count == 1


# ---------------------------------------------------------------------------
# Session state machine
# ---------------------------------------------------------------------------


def test_session_moves_forward():
    session = DebugSession(id="s", query="q", book_id="b")

    for status in (
        SessionStatus.ANALYZING,
        SessionStatus.EXECUTING,
        SessionStatus.SYNTHESIZING,
        SessionStatus.COMPLETED,
    ):
        session.advance(status)

    assert session.status == SessionStatus.COMPLETED
    assert session.is_terminal


def test_session_rejects_regression():
    session = DebugSession(id="s", query="q", book_id="b")
    session.advance(SessionStatus.SYNTHESIZING)

    with pytest.raises(ValueError):
        session.advance(SessionStatus.EXECUTING)


def test_failed_reachable_and_terminal():
    session = DebugSession(id="s", query="q", book_id="b")
    session.advance(SessionStatus.EXECUTING)
    session.advance(SessionStatus.FAILED)

    assert session.status == SessionStatus.FAILED
    with pytest.raises(ValueError):
        session.advance(SessionStatus.COMPLETED)
