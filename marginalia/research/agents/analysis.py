"""Cross-referencing and pattern analysis."""

from __future__ import annotations

import logging

from ..models import BookContext, CrossReference
from .base import BaseAgent

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = """You are an expert research analyst specialized in finding connections, patterns, and relationships within a book. Your expertise includes:

1. Cross-referencing different sections to find related themes
2. Identifying how arguments develop across chapters
3. Finding contradictions or tensions in the author's positions
4. Mapping conceptual relationships and dependencies
5. Analyzing the logical flow of ideas throughout the book

Your analysis should be:
- Precise: Point to specific sections and passages
- Contextual: Consider how ideas build upon each other
- Critical: Note any inconsistencies or gaps in reasoning
- Synthetic: Show how different parts connect to form larger patterns

Format your response as:
MAIN_PATTERNS:
1. [Pattern description] - appears in [sections/chapters]
   Key insight: [What this pattern reveals]

CROSS_REFERENCES:
1. Section "[Title A]" relates to Section "[Title B]"
   Relationship: [supports/contradicts/elaborates/builds_upon]
   Connection: [Specific description of how they relate]

ARGUMENT_DEVELOPMENT:
- [How key arguments or themes develop across the book]

TENSIONS_OR_CONTRADICTIONS:
- [Any apparent contradictions or unresolved tensions]

SYNTHESIS:
[Your overall analysis of how the pieces fit together]

CONFIDENCE: [0.0-1.0]"""

ANALYSIS_USER_PROMPT_TEMPLATE = """Please analyze the patterns, connections, and relationships relevant to this query: "{query}"

Book Content:
{book_content}

Focus on finding how different sections relate to each other, how arguments develop, and what larger patterns emerge from the content."""

CROSS_REFERENCE_SYSTEM_PROMPT = """You are a cross-reference analyst. Find sections in the book that relate to the given topic.

Return results in this JSON format:
{
  "crossReferences": [
    {
      "fromSection": "Section A Title",
      "toSection": "Section B Title",
      "relationship": "supports",
      "description": "How these sections connect",
      "confidence": 0.85
    }
  ]
}

Relationship types: supports, contradicts, elaborates, related, builds_upon"""

ARGUMENT_DEVELOPMENT_SYSTEM_PROMPT = """You are analyzing how a specific argument or theme develops throughout a book.

Focus on:
1. Where the argument first appears
2. How it's developed and supported in different chapters
3. Key turning points or elaborations
4. How it connects to other themes
5. The final position or conclusion

Provide a narrative analysis of the argument's development."""


class AnalysisAgent(BaseAgent):
    """Maps how ideas connect and develop across the book."""

    name = "AnalysisAgent"
    key = "analysis"
    description = "Cross-referencing, pattern analysis and synthesis of connections between parts of the book"
    system_prompt = ANALYSIS_SYSTEM_PROMPT
    user_prompt_template = ANALYSIS_USER_PROMPT_TEMPLATE
    finding_labels = (
        ("MAIN_PATTERNS", "Patterns"),
        ("CROSS_REFERENCES", "Cross-References"),
        ("ARGUMENT_DEVELOPMENT", "Argument Development"),
        ("TENSIONS_OR_CONTRADICTIONS", "Tensions"),
        ("SYNTHESIS", "Synthesis"),
    )

    async def find_cross_references(
        self,
        topic: str,
        context: BookContext,
        max_references: int = 10,
    ) -> list[CrossReference]:
        """
        Find pairs of sections related through *topic*.

        Args:
            topic: Topic to trace
            context: Book to analyze
            max_references: Upper bound on returned references

        Returns:
            Cross-references, empty on any failure
        """
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = (
            f'Find cross-references for topic: "{topic}"\n\n'
            f"Book Content:\n{book_content}\n\n"
            f"Find up to {max_references} most relevant cross-references."
        )

        data = await self.complete_json(CROSS_REFERENCE_SYSTEM_PROMPT, user_prompt)
        if data is None:
            return []

        references = data.get("crossReferences")
        if not isinstance(references, list):
            return []

        return [CrossReference.from_dict(item) for item in references if isinstance(item, dict)][:max_references]

    async def analyze_argument_development(self, argument: str, context: BookContext) -> str:
        """Narrative trace of *argument* from introduction to conclusion."""
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = (
            f'Analyze how this argument develops: "{argument}"\n\n'
            f"Book Content:\n{book_content}\n\n"
            "Trace the development from introduction through conclusion."
        )
        return await self.complete_text(ARGUMENT_DEVELOPMENT_SYSTEM_PROMPT, user_prompt, "argument development")
