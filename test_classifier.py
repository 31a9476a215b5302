"""
Query Classifier Tests

Tests for query classification and its default fallback.
"""

import asyncio

from marginalia.config.factory import MockLLMProvider
from marginalia.config.loader import OrchestratorConfig
from marginalia.research.classifier import QueryClassifier
from marginalia.research.models import QueryType

ANALYZER = "query analyzer"


def classify(reply, config: OrchestratorConfig | None = None):
    mock = MockLLMProvider().when(ANALYZER, reply)
    classifier = QueryClassifier(mock, config)
    return asyncio.run(classifier.analyze("How does Ahab's obsession develop?")), mock


def test_classification_from_json():
    analysis, mock = classify(
        'Here you go: {"type": "ANALYTICAL", "priority": 8, "reasoning": "Asks how something develops"}'
    )

    assert analysis.query.type == QueryType.ANALYTICAL
    assert analysis.query.priority == 8
    assert analysis.query.text == "How does Ahab's obsession develop?"
    assert analysis.reasoning == "Asks how something develops"
    assert analysis.fallback is False


def test_classifier_request_shape():
    _, mock = classify('{"type": "FACTUAL", "priority": 2}')
    call = mock.calls[0]

    assert call["prompt"] == 'Analyze this query: "How does Ahab\'s obsession develop?"'
    assert call["temperature"] == 0.1
    assert call["max_tokens"] == 500


def test_lowercase_type_accepted():
    analysis, _ = classify('{"type": "evaluative", "priority": 6}')
    assert analysis.query.type == QueryType.EVALUATIVE


def test_priority_clamped_and_defaulted():
    analysis, _ = classify('{"type": "COMPARATIVE", "priority": 42}')
    assert analysis.query.priority == 10

    analysis, _ = classify('{"type": "COMPARATIVE"}')
    assert analysis.query.priority == 5

    analysis, _ = classify('{"type": "COMPARATIVE", "priority": "urgent"}')
    assert analysis.query.priority == 5


def test_model_error_falls_back():
    analysis, _ = classify(RuntimeError("rate limited"))

    assert analysis.query.type == QueryType.FACTUAL
    assert analysis.query.priority == 5
    assert analysis.fallback is True
    print("[PASS] Request errors fall back to FACTUAL/5")


def test_malformed_json_falls_back():
    analysis, _ = classify("I think this is analytical, priority eight.")
    assert analysis.fallback is True
    assert analysis.query.type == QueryType.FACTUAL


def test_unknown_type_falls_back():
    analysis, _ = classify('{"type": "OPINION", "priority": 9}')
    assert analysis.fallback is True
    assert (analysis.query.type, analysis.query.priority) == (QueryType.FACTUAL, 5)


def test_timeout_falls_back():
    async def slow(prompt, system_prompt):
        await asyncio.sleep(1.0)
        return '{"type": "ANALYTICAL", "priority": 8}'

    analysis, _ = classify(slow, OrchestratorConfig(request_timeout=0.05))

    assert analysis.fallback is True
    assert analysis.query.type == QueryType.FACTUAL


def test_classify_returns_query():
    mock = MockLLMProvider().when(ANALYZER, '{"type": "COMPARATIVE", "priority": 4}')
    query = asyncio.run(QueryClassifier(mock).classify("How do chapters 3 and 7 relate?"))

    assert query.type == QueryType.COMPARATIVE
    assert query.id
