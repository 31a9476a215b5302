"""Render a book's section tree into a single bounded text window.

Agents see the book as one text blob. The window is built depth-first in
document order and cut at whole-section boundaries as soon as the next
section would break either the section budget or the token budget.
"""

from __future__ import annotations

import logging
import math

from .models import BookDocument, DocumentSection
from .research_settings import ResearchSettings

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate used for budgeting (ceil(chars / 4))."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncation_marker(reason: str, limit: int, omitted: int) -> str:
    """Marker appended once when the window is cut short."""
    noun = "section" if omitted == 1 else "sections"
    return f"[Content truncated: {reason} limit of {limit} reached, {omitted} {noun} omitted]\n"


class ContentWindower:
    """
    Fits a hierarchical document into a token and section budget.

    The renderer is pure: the same document and settings always produce the
    same string.
    """

    def render(self, document: BookDocument, settings: ResearchSettings | None = None) -> str:
        """
        Render *document* within the budgets in *settings*.

        Args:
            document: Book to render
            settings: Budgets to honor (defaults if None)

        Returns:
            The windowed text, or an empty string for a document with no sections
        """
        settings = settings or ResearchSettings()

        if not document.sections:
            return ""

        total_sections = document.section_count
        parts = [self._header(document)]
        used_chars = len(parts[0])
        processed = 0

        for section, depth in self._walk(document.sections):
            omitted = total_sections - processed

            if processed >= settings.max_sections:
                parts.append(truncation_marker("section", settings.max_sections, omitted))
                break

            chunk = self._render_section(section, depth)
            projected = used_chars + len(chunk)
            # Keep room for the marker only when something would still follow
            if omitted > 1:
                projected += self._marker_room(settings, omitted - 1)
            if math.ceil(projected / CHARS_PER_TOKEN) > settings.token_limit_per_agent:
                parts.append(truncation_marker("token", settings.token_limit_per_agent, omitted))
                break

            parts.append(chunk)
            used_chars += len(chunk)
            processed += 1

        if processed < total_sections:
            logger.debug(
                f"Windowed '{document.title}': {processed}/{total_sections} sections, "
                f"~{estimate_tokens(''.join(parts))} tokens"
            )

        return "".join(parts)

    def _marker_room(self, settings: ResearchSettings, omitted: int) -> int:
        return max(
            len(truncation_marker("token", settings.token_limit_per_agent, omitted)),
            len(truncation_marker("section", settings.max_sections, omitted)),
        )

    def _header(self, document: BookDocument) -> str:
        header = f'Book: "{document.title}"'
        if document.author:
            header += f" by {document.author}"
        return header + "\n\n"

    def _render_section(self, section: DocumentSection, depth: int) -> str:
        chunk = f"{'  ' * depth}## {section.title}\n"
        if section.content:
            chunk += f"{section.content}\n\n"
        return chunk

    def _walk(self, sections: tuple[DocumentSection, ...]):
        """Depth-first (section, depth) pairs in document order."""
        stack = [(section, 0) for section in reversed(sections)]
        while stack:
            section, depth = stack.pop()
            yield section, depth
            stack.extend((child, depth + 1) for child in reversed(section.children))