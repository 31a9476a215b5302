"""Passage discovery across the whole book."""

from __future__ import annotations

import logging

from ..models import BookContext, SearchResult
from ..parsing import extract_block, split_bullets, split_numbered_items
from .base import BaseAgent

logger = logging.getLogger(__name__)

MAX_RELATED_CONCEPTS = 3

SEARCH_SYSTEM_PROMPT = """You are an expert research assistant specialized in finding relevant passages and content within a book. Your task is to:

1. Analyze the user's query to understand what information they're seeking
2. Search through the provided book content to find the most relevant sections
3. Rank findings by relevance and importance
4. Extract key passages that directly address the query
5. Identify any related concepts or themes that might also be valuable

Be thorough but focused: aim to find the 3-5 most relevant sections that best address the query.

Format your response as:
FINDINGS:
1. [Section title] - [Brief description of relevance]
   Key passage: "[Most relevant excerpt]"

2. [Section title] - [Brief description of relevance]
   Key passage: "[Most relevant excerpt]"

RELATED_CONCEPTS:
- [Any related themes or concepts that came up during search]

CONFIDENCE: [Your confidence level from 0.0 to 1.0 in the completeness of these findings]"""

SEARCH_USER_PROMPT_TEMPLATE = """Please search through this book content to find information relevant to the query: "{query}"

Book Content:
{book_content}

Query Type: {query_type}
Focus on finding the most relevant sections that directly address this query."""

CONTENT_SEARCH_SYSTEM_PROMPT = """You are a semantic search engine for book content. Given a search term, find the most relevant sections and passages.

Return your results in this exact JSON format:
{
  "results": [
    {
      "sectionTitle": "Chapter/Section Title",
      "relevance": 0.95,
      "matchType": "content",
      "excerpt": "Most relevant passage from this section..."
    }
  ]
}"""


class SearchAgent(BaseAgent):
    """Finds the passages that most directly answer a query."""

    name = "BookSearchAgent"
    key = "search"
    description = "Semantic content discovery and passage retrieval across the entire book"
    system_prompt = SEARCH_SYSTEM_PROMPT
    user_prompt_template = SEARCH_USER_PROMPT_TEMPLATE

    def parse_findings(self, response: str) -> list[str]:
        """One finding per numbered passage in the FINDINGS block."""
        block = extract_block(response, "FINDINGS")
        if block:
            passages = split_numbered_items(block)
            if passages:
                return passages

        return [response.strip()] if response.strip() else []

    def parse_related_queries(self, response: str) -> tuple[str, ...]:
        block = extract_block(response, "RELATED_CONCEPTS")
        if not block:
            return ()
        return tuple(split_bullets(block, limit=MAX_RELATED_CONCEPTS))

    async def search_content(
        self,
        search_term: str,
        context: BookContext,
        max_results: int = 5,
    ) -> list[SearchResult]:
        """
        Direct semantic search for *search_term*.

        Args:
            search_term: Term or phrase to look for
            context: Book to search
            max_results: Upper bound on returned hits

        Returns:
            Search hits, empty on any failure
        """
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = (
            f'Search for content related to: "{search_term}"\n\n'
            f"Book Content:\n{book_content}\n\n"
            f"Return the {max_results} most relevant sections."
        )

        data = await self.complete_json(CONTENT_SEARCH_SYSTEM_PROMPT, user_prompt)
        if data is None:
            return []

        results = data.get("results")
        if not isinstance(results, list):
            return []

        return [SearchResult.from_dict(item) for item in results if isinstance(item, dict)][:max_results]
