"""
Labeled Block Parsing Tests

Tests for the lenient parser that turns model answers into findings.
"""

from marginalia.research.parsing import (
    extract_block,
    extract_confidence,
    extract_findings,
    extract_json_object,
    scan_blocks,
    split_bullets,
    split_numbered_items,
)

EVIDENCE_LABELS = (
    ("CLAIMS_IDENTIFIED", "Claims"),
    ("SUPPORTING_EVIDENCE", "Supporting Evidence"),
    ("CONTRADICTING_EVIDENCE", "Contradicting Evidence"),
    ("EVIDENCE_GAPS", "Evidence Gaps"),
    ("OVERALL_ASSESSMENT", "Assessment"),
)

EVIDENCE_RESPONSE = """Some preamble the model added.

CLAIMS_IDENTIFIED:
1. Ahab is obsessed with the whale

SUPPORTING_EVIDENCE:
1. The quarter-deck speech - quote
   Source: Chapter 36
   Strength: Strong

CONTRADICTING_EVIDENCE:

OVERALL_ASSESSMENT: Well supported by the text.

CONFIDENCE: 0.85"""


def test_scan_blocks_in_order():
    blocks = scan_blocks(EVIDENCE_RESPONSE)
    labels = [b.label for b in blocks]

    assert labels == [
        "CLAIMS_IDENTIFIED",
        "SUPPORTING_EVIDENCE",
        "CONTRADICTING_EVIDENCE",
        "OVERALL_ASSESSMENT",
        "CONFIDENCE",
    ]
    assert blocks[2].body == ""
    assert blocks[3].body == "Well supported by the text."


def test_label_must_not_be_glued_to_a_word():
    """Upper-case runs inside words are not label tokens."""
    text = "FINDINGS: the xNOTE: marker stays in the body\nCONFIDENCE: 0.5"
    assert extract_block(text, "FINDINGS") == "the xNOTE: marker stays in the body"
    assert extract_block(text, "NOTE") is None


def test_single_capital_is_not_a_label():
    text = "SYNTHESIS: Plan A: go west.\nCONFIDENCE: 0.6"
    assert extract_block(text, "SYNTHESIS") == "Plan A: go west."


def test_extract_findings_tags_non_empty_blocks():
    findings = extract_findings(EVIDENCE_RESPONSE, EVIDENCE_LABELS)

    assert len(findings) == 3
    assert findings[0] == "Claims: 1. Ahab is obsessed with the whale"
    assert findings[1].startswith("Supporting Evidence: 1. The quarter-deck speech")
    assert findings[2] == "Assessment: Well supported by the text."
    print("[PASS] Tagged findings extracted in label order")


def test_extract_findings_first_occurrence_wins():
    text = "SYNTHESIS: first\nSYNTHESIS: second"
    assert extract_findings(text, (("SYNTHESIS", "Synthesis"),)) == ["Synthesis: first"]


def test_extract_findings_falls_back_to_whole_response():
    assert extract_findings("  Just prose, no labels.  ", EVIDENCE_LABELS) == ["Just prose, no labels."]
    assert extract_findings("   \n ", EVIDENCE_LABELS) == []


def test_split_numbered_items_is_line_anchored():
    block = "1. Chapter One - intro\n   Key passage: \"Call me Ishmael. 2. Not a split\"\n2. Chapter Two"
    items = split_numbered_items(block)

    assert len(items) == 2
    assert items[0].startswith("Chapter One - intro")
    assert "2. Not a split" in items[0]
    assert items[1] == "Chapter Two"


def test_split_bullets_strips_markers_and_limits():
    block = "- whales\n* obsession\n\n3. fate\n- the sea"
    assert split_bullets(block) == ["whales", "obsession", "fate", "the sea"]
    assert split_bullets(block, limit=3) == ["whales", "obsession", "fate"]


def test_extract_confidence():
    assert extract_confidence("CONFIDENCE: 0.85") == 0.85
    assert extract_confidence("CONFIDENCE: .5") == 0.5
    assert extract_confidence("CONFIDENCE:1") == 1.0
    assert extract_confidence("CONFIDENCE: 1.7") == 1.0
    assert extract_confidence("no confidence here") == 0.7
    assert extract_confidence("CONFIDENCE: high") == 0.7


def test_extract_json_object():
    assert extract_json_object('Sure! {"type": "FACTUAL", "priority": 3} Hope that helps.') == {
        "type": "FACTUAL",
        "priority": 3,
    }
    assert extract_json_object("no json at all") is None
    assert extract_json_object("{not valid json}") is None
    assert extract_json_object('} backwards {') is None
    assert extract_json_object('[{"a": 1}]') == {"a": 1}
