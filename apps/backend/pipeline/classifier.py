"""
Relevance classifier.

Decides whether a raw posting is a psychiatric mental health NP job using the
rule tables in core.rule_tables. Pure and deterministic: the same title and
description always give the same answer.
"""

import logging
from typing import Dict, List, Optional

from core.rule_tables import (
    AMBIGUOUS_ROLE_PHRASES,
    DOMAIN_CONTEXT_TERMS,
    GENERIC_NP_TITLES,
    GENERIC_TITLE_SUFFIXES,
    POSITIVE_PHRASES,
    STRONG_POSITIVE_PHRASES,
    TITLE_PSYCH_TERMS,
    TITLE_ROLE_TERMS,
    WRONG_ROLE_PHRASES,
)

logger = logging.getLogger(__name__)


class ClassificationResult:
    """Outcome of a relevance check with the phrases that drove it."""

    def __init__(
        self,
        accepted: bool,
        reason: str,
        positive_matches: Optional[List[str]] = None,
        negative_matches: Optional[List[str]] = None,
        excused_matches: Optional[List[str]] = None,
    ):
        self.accepted = accepted
        self.reason = reason
        self.positive_matches = positive_matches or []
        self.negative_matches = negative_matches or []
        self.excused_matches = excused_matches or []

    def to_dict(self) -> Dict:
        return {
            'accepted': self.accepted,
            'reason': self.reason,
            'positive_matches': self.positive_matches,
            'negative_matches': self.negative_matches,
            'excused_matches': self.excused_matches,
        }

    def __bool__(self) -> bool:
        return self.accepted


class RelevanceClassifier:
    """Rule-based relevance classifier for PMHNP postings."""

    def explain(self, title: Optional[str], description: Optional[str]) -> ClassificationResult:
        """
        Classify and report why.

        Steps:
            1. positive phrase in title + description, or the domain-term +
               title-role fallback, or "pmhnp" anywhere
            2. wrong-role phrases in the title; ambiguous ones are excused
               when the combined text has a strong positive phrase
            3. generic NP titles need psych wording in the title itself
        """
        title_lower = (title or '').strip().lower()
        description_lower = (description or '').lower()
        if not title_lower and not description_lower.strip():
            return ClassificationResult(False, 'empty')

        combined = f"{title_lower} {description_lower}"

        positives = [phrase for phrase in POSITIVE_PHRASES if phrase in combined]
        if not positives:
            has_domain = any(term in combined for term in DOMAIN_CONTEXT_TERMS)
            # Leading space so " np" also matches a title that starts with "NP".
            has_role = any(term in f" {title_lower}" for term in TITLE_ROLE_TERMS)
            if has_domain and has_role:
                positives = ['domain+role']
            else:
                return ClassificationResult(False, 'no_positive_match')

        negatives = [phrase for phrase in WRONG_ROLE_PHRASES if phrase in title_lower]
        excused = []
        if negatives:
            has_strong = any(phrase in combined for phrase in STRONG_POSITIVE_PHRASES)
            excused = [phrase for phrase in negatives if phrase in AMBIGUOUS_ROLE_PHRASES and has_strong]
            blocking = [phrase for phrase in negatives if phrase not in excused]
            if blocking:
                return ClassificationResult(False, 'wrong_role', positives, blocking, excused)

        if self._is_generic_title(title_lower) and not any(term in title_lower for term in TITLE_PSYCH_TERMS):
            return ClassificationResult(False, 'generic_title', positives, negatives, excused)

        return ClassificationResult(True, 'accepted', positives, negatives, excused)

    def classify(self, title: Optional[str], description: Optional[str]) -> bool:
        result = self.explain(title, description)
        if not result.accepted:
            logger.debug(f"[classifier] Rejected '{(title or '')[:80]}' ({result.reason}: {result.negative_matches})")
        return result.accepted

    @staticmethod
    def _is_generic_title(title_lower: str) -> bool:
        for generic in GENERIC_NP_TITLES:
            if title_lower == generic:
                return True
            if any(title_lower.startswith(generic + suffix) for suffix in GENERIC_TITLE_SUFFIXES):
                return True
        return False


_classifier: Optional[RelevanceClassifier] = None


def get_classifier() -> RelevanceClassifier:
    """Get or create the global classifier instance"""
    global _classifier
    if _classifier is None:
        _classifier = RelevanceClassifier()
    return _classifier


def is_relevant_job(title: Optional[str], description: Optional[str]) -> bool:
    return get_classifier().classify(title, description)
