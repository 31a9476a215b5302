"""Book structure and chapter relationships."""

from __future__ import annotations

import logging

from ..models import BookContext, ContextualInsight
from .base import BaseAgent

logger = logging.getLogger(__name__)

CONTEXT_SYSTEM_PROMPT = """You are an expert in understanding book structure and contextual relationships. Your expertise includes:

1. Analyzing the overall organization and flow of the book
2. Understanding how chapters relate to the main thesis
3. Identifying the author's strategic placement of information
4. Recognizing thematic arcs and narrative development
5. Understanding prerequisite knowledge and conceptual dependencies

When analyzing context, consider:
- Why does this information appear in this chapter/section?
- What came before that sets this up?
- What comes after that builds on this?
- How does this fit into the author's overall argument?
- What would be lost if this section were moved or removed?

Format your response as:
STRUCTURAL_ANALYSIS:
- [How the relevant sections fit into the book's overall structure]

CHAPTER_RELATIONSHIPS:
1. Chapter/Section "[Title]"
   Role: [Its function in the overall argument]
   Prerequisites: [What the reader needs to know beforehand]
   Sets up: [What this prepares the reader for later]

THEMATIC_POSITIONING:
- [How the query topic fits into the book's main themes]

CONTEXTUAL_SIGNIFICANCE:
- [Why this information matters in the broader context of the book]

NAVIGATIONAL_INSIGHTS:
- [Guidance on where readers should look for related information]

CONFIDENCE: [0.0-1.0]"""

CONTEXT_USER_PROMPT_TEMPLATE = """Please analyze the structural and contextual aspects relevant to this query: "{query}"

Book Content:
{book_content}

Focus on understanding how the relevant content fits into the book's overall structure and purpose."""

OVERVIEW_SYSTEM_PROMPT = """Provide a structural overview of this book in JSON format:
{
  "theme": "Main theme or thesis",
  "sections": ["List of major sections/parts"],
  "development": "How the argument develops",
  "significance": "Why this book matters"
}"""

CHAPTER_FLOW_SYSTEM_PROMPT = """Analyze the flow of information leading to and from a specific chapter/section.

Consider:
1. What prior chapters set up this section?
2. What concepts or information does the reader need beforehand?
3. How does this section advance the overall argument?
4. What later sections build on this foundation?

Provide a clear analysis of the informational flow."""


class ContextAgent(BaseAgent):
    """Explains where material sits in the book's structure and argument."""

    name = "ContextAgent"
    key = "context"
    description = "Book structure, chapter relationships and thematic organization"
    system_prompt = CONTEXT_SYSTEM_PROMPT
    user_prompt_template = CONTEXT_USER_PROMPT_TEMPLATE
    finding_labels = (
        ("STRUCTURAL_ANALYSIS", "Structure"),
        ("CHAPTER_RELATIONSHIPS", "Chapter Relationships"),
        ("THEMATIC_POSITIONING", "Thematic Position"),
        ("CONTEXTUAL_SIGNIFICANCE", "Significance"),
        ("NAVIGATIONAL_INSIGHTS", "Navigation"),
    )

    async def get_book_overview(self, context: BookContext) -> ContextualInsight:
        """Theme, major parts and development of the whole book."""
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = f"Analyze the overall structure and themes of this book:\n{book_content}"

        data = await self.complete_json(OVERVIEW_SYSTEM_PROMPT, user_prompt)
        if data is None:
            return ContextualInsight.undetermined()

        return ContextualInsight.from_dict(data)

    async def analyze_chapter_flow(self, section_id: str, context: BookContext) -> str:
        """Prerequisites of a section and what it sets up later."""
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = (
            f"Analyze the chapter flow for section ID: {section_id}\n\n"
            f"Book Content:\n{book_content}\n\n"
            "Focus on prerequisites and what this section enables later."
        )
        return await self.complete_text(CHAPTER_FLOW_SYSTEM_PROMPT, user_prompt, "chapter flow")
