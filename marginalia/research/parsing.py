"""Lenient parsing of free-text model answers.

Agents ask the model for labeled blocks::

    SUPPORTING_EVIDENCE:
    1. ...
    EVIDENCE_GAPS:
    - ...
    CONFIDENCE: 0.8

The grammar is ``LABEL:`` followed by text that runs until the next label
token or the end of the input. A label token is an upper-case word of at
least two characters (letters and underscores) directly followed by a colon
and not glued to a preceding word character.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.7

LABEL_TOKEN = re.compile(r"(?<![A-Za-z0-9_])([A-Z][A-Z_]+):")
CONFIDENCE_PATTERN = re.compile(r"CONFIDENCE:\s*([0-9]*\.?[0-9]+)")
NUMBERED_ITEM = re.compile(r"(?m)^\s*\d+\.\s+")
BULLET_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+\.)\s*")


@dataclass(frozen=True)
class LabeledBlock:
    """One ``LABEL:`` block and the text it governs."""

    label: str
    body: str


def scan_blocks(text: str) -> list[LabeledBlock]:
    """
    Tokenize *text* into labeled blocks in order of appearance.

    Text before the first label is ignored. Bodies are stripped; a label
    immediately followed by another label yields an empty body.
    """
    tokens = list(LABEL_TOKEN.finditer(text))
    blocks = []

    for index, token in enumerate(tokens):
        end = tokens[index + 1].start() if index + 1 < len(tokens) else len(text)
        blocks.append(LabeledBlock(label=token.group(1), body=text[token.end():end].strip()))

    return blocks


def extract_block(text: str, label: str) -> str | None:
    """Body of the first *label* block, or None if the label is absent."""
    for block in scan_blocks(text):
        if block.label == label:
            return block.body
    return None


def extract_findings(text: str, labels: Sequence[tuple[str, str]]) -> list[str]:
    """
    Turn expected labeled blocks into tagged findings.

    Args:
        text: Raw model response
        labels: (LABEL, human-readable tag) pairs in output order

    Returns:
        One ``"<tag>: <body>"`` finding per non-empty expected block. If none
        were found, the whole response is the single finding (empty list only
        for a blank response).
    """
    bodies: dict[str, str] = {}
    for block in scan_blocks(text):
        bodies.setdefault(block.label, block.body)

    findings = [
        f"{tag}: {bodies[label]}"
        for label, tag in labels
        if bodies.get(label)
    ]

    if findings:
        return findings

    return [text.strip()] if text.strip() else []


def split_numbered_items(block: str) -> list[str]:
    """Split a block on line-leading ``1.``, ``2.`` ... markers."""
    return [item.strip() for item in NUMBERED_ITEM.split(block) if item.strip()]


def split_bullets(block: str, limit: int | None = None) -> list[str]:
    """One item per non-empty line, with bullet or number prefixes removed."""
    items = []
    for line in block.splitlines():
        item = BULLET_PREFIX.sub("", line).strip()
        if item:
            items.append(item)
    return items[:limit] if limit is not None else items


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value into [0, 1]."""
    return min(1.0, max(0.0, value))


def extract_confidence(text: str, default: float = DEFAULT_CONFIDENCE) -> float:
    """Read the ``CONFIDENCE: <float>`` line, clamped to [0, 1]."""
    match = CONFIDENCE_PATTERN.search(text)
    if not match:
        return clamp_confidence(default)

    try:
        return clamp_confidence(float(match.group(1)))
    except ValueError:
        return clamp_confidence(default)


def extract_json_object(text: str) -> dict | None:
    """
    Parse the JSON object spanning the first ``{`` to the last ``}``.

    Returns:
        The parsed object, or None if there is no parseable object
    """
    json_start = text.find("{")
    json_end = text.rfind("}") + 1

    if json_start == -1 or json_end <= json_start:
        logger.debug("No JSON object found in response")
        return None

    try:
        data = json.loads(text[json_start:json_end])
    except json.JSONDecodeError as e:
        logger.debug(f"Failed to parse JSON: {e}")
        return None

    return data if isinstance(data, dict) else None
