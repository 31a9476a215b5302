"""Claim verification and evidence gathering."""

from __future__ import annotations

import logging

from ..models import BookContext, EvidenceResult
from .base import BaseAgent

logger = logging.getLogger(__name__)

EVIDENCE_SYSTEM_PROMPT = """You are an expert research assistant specialized in evidence analysis and claim verification. Your tasks include:

1. Identify claims or statements in the user's query that need evidence
2. Search through the book content for supporting and contradicting evidence
3. Categorize evidence types (examples, statistics, quotes, case studies, expert opinions)
4. Evaluate the strength and quality of evidence presented
5. Note any gaps in evidence or areas where claims are unsupported

For each piece of evidence found, consider:
- Is this direct evidence or circumstantial?
- How credible is the source within the book's context?
- Are there any contradictory statements elsewhere?
- What type of evidence is this (empirical data, anecdotal, theoretical)?

Format your response as:
CLAIMS_IDENTIFIED:
1. [Specific claim from query]

SUPPORTING_EVIDENCE:
1. [Evidence description] - [Evidence type: statistic/example/quote/case_study]
   Source: [Section/Chapter]
   Strength: [Strong/Moderate/Weak]
   Quote: "[Specific passage]"

CONTRADICTING_EVIDENCE:
1. [Any contradictory evidence found]

EVIDENCE_GAPS:
- [Areas where evidence is lacking or insufficient]

OVERALL_ASSESSMENT: [Your assessment of how well-supported the claims are]

CONFIDENCE: [0.0-1.0]"""

EVIDENCE_USER_PROMPT_TEMPLATE = """Please analyze the evidence for any claims in this query: "{query}"

Book Content:
{book_content}

Focus on finding concrete evidence, data, examples, and expert opinions that either support or contradict any claims made in the query or implied by the question."""

CLAIM_CHECK_SYSTEM_PROMPT = """You are a fact-checker analyzing a specific claim against book content.

Provide your analysis in this JSON format:
{
  "claim": "The claim being checked",
  "supportingEvidence": [
    {
      "sectionId": "section_id",
      "sectionTitle": "Section Title",
      "excerpt": "Relevant passage...",
      "relevanceScore": 0.9
    }
  ],
  "contradictingEvidence": [],
  "evidenceTypes": ["statistic", "example"],
  "strength": "strong"
}

Strength options: strong, moderate, weak"""


class EvidenceAgent(BaseAgent):
    """Looks for evidence for and against the claims behind a query."""

    name = "EvidenceAgent"
    key = "evidence"
    description = "Claim verification, fact-checking and supporting evidence"
    system_prompt = EVIDENCE_SYSTEM_PROMPT
    user_prompt_template = EVIDENCE_USER_PROMPT_TEMPLATE
    finding_labels = (
        ("CLAIMS_IDENTIFIED", "Claims"),
        ("SUPPORTING_EVIDENCE", "Supporting Evidence"),
        ("CONTRADICTING_EVIDENCE", "Contradicting Evidence"),
        ("EVIDENCE_GAPS", "Evidence Gaps"),
        ("OVERALL_ASSESSMENT", "Assessment"),
    )

    async def verify_claim(self, claim: str, context: BookContext) -> EvidenceResult:
        """
        Check a single claim against the book.

        Returns:
            The verdict, or an unverified (weak, evidence-free) result when the
            model call or its JSON fails
        """
        book_content = self.windower.render(context.document, context.settings)
        user_prompt = f'Book Content:\n{book_content}\n\nAnalyze the claim: "{claim}"'

        data = await self.complete_json(CLAIM_CHECK_SYSTEM_PROMPT, user_prompt)
        if data is None:
            return EvidenceResult.unverified(claim)

        return EvidenceResult.from_dict(data, claim)
