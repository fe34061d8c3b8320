"""
Strategy selection for answering questions about a document.

Questions asking for a summary are answered from the full document text
(context stuffing); everything else goes through retrieval of the most
relevant chunks.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    """Context-construction strategy for one answer."""
    SUMMARY = "summary"
    RETRIEVAL = "retrieval"


class StrategySelector:
    """
    Deterministic keyword classifier.

    Matching is a case-insensitive substring test, so "summar" covers
    "summary", "summarize" and "summarise".
    """

    SUMMARY_KEYWORDS = (
        "summar",
        "overview",
        "tl;dr",
        "digest",
        "describe the document",
    )

    def select_strategy(self, question: str) -> Strategy:
        """
        Classify a question as a summary request or a specific question.

        Args:
            question: User question string

        Returns:
            Strategy.SUMMARY or Strategy.RETRIEVAL
        """
        keyword = self.matched_keyword(question)
        if keyword is not None:
            logger.info(f"Strategy: {Strategy.SUMMARY.value} (keyword '{keyword}') - {question[:50]}")
            return Strategy.SUMMARY

        logger.info(f"Strategy: {Strategy.RETRIEVAL.value} - {question[:50]}")
        return Strategy.RETRIEVAL

    def matched_keyword(self, question: str) -> Optional[str]:
        """Return the first summary keyword found in the question, if any."""
        question_lower = (question or "").lower()
        for keyword in self.SUMMARY_KEYWORDS:
            if keyword in question_lower:
                return keyword
        return None
