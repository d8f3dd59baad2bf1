"""
Quality Scoring Module
Scores normalized postings for ranking: link quality, salary, description,
location precision and employer submissions.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from core.rule_tables import DIRECT_ATS_DOMAINS, JOB_BOARD_DOMAINS

logger = logging.getLogger(__name__)


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def classify_link_tier(url: Optional[str]) -> str:
    """Return 'direct_ats', 'job_board', 'career_page' or 'none' for an apply link."""
    if not url:
        return 'none'
    host = (urlparse(url).hostname or '').lower()
    if not host:
        return 'none'
    if any(domain in host for domain in DIRECT_ATS_DOMAINS):
        return 'direct_ats'
    if any(domain in host for domain in JOB_BOARD_DOMAINS):
        return 'job_board'
    return 'career_page'


class QualityScorer:
    """
    Additive quality score in [0, 100].

    Factors:
    - Link tier (direct ATS > employer career page > job board)
    - Any salary signal
    - Summary or description length
    - Location precision (city + state > state)
    - Employer submission
    """

    LINK_TIER_POINTS = {
        'direct_ats': 30,
        'career_page': 20,
        'job_board': 0,
        'none': 0,
    }
    SALARY_POINTS = 20
    SUMMARY_POINTS = 10
    DESCRIPTION_POINTS = 5
    CITY_STATE_POINTS = 10
    STATE_ONLY_POINTS = 5
    EMPLOYER_SUBMITTED_POINTS = 30

    MIN_SUMMARY_LENGTH = 20
    MIN_DESCRIPTION_LENGTH = 200
    MAX_SCORE = 100

    def score_breakdown(self, record: Any) -> Dict[str, int]:
        """
        Score a record factor by factor.

        Args:
            record: NormalizedRecord or a dict with the same field names

        Returns:
            Dict of factor name -> points awarded
        """
        factors = {}

        tier = classify_link_tier(_field(record, 'apply_link'))
        factors['link_tier'] = self.LINK_TIER_POINTS[tier]

        salary_fields = ('min_salary', 'max_salary', 'normalized_min_salary', 'normalized_max_salary')
        has_salary = any(_field(record, name) for name in salary_fields)
        factors['salary'] = self.SALARY_POINTS if has_salary else 0

        summary = (_field(record, 'summary') or '').strip()
        description = (_field(record, 'description') or '').strip()
        if len(summary) > self.MIN_SUMMARY_LENGTH:
            factors['description'] = self.SUMMARY_POINTS
        elif len(description) > self.MIN_DESCRIPTION_LENGTH:
            factors['description'] = self.DESCRIPTION_POINTS
        else:
            factors['description'] = 0

        if _field(record, 'city') and _field(record, 'state'):
            factors['location'] = self.CITY_STATE_POINTS
        elif _field(record, 'state'):
            factors['location'] = self.STATE_ONLY_POINTS
        else:
            factors['location'] = 0

        factors['employer_submitted'] = self.EMPLOYER_SUBMITTED_POINTS if _field(record, 'employer_submitted') else 0
        return factors

    def score(self, record: Any) -> int:
        total = sum(self.score_breakdown(record).values())
        return max(0, min(self.MAX_SCORE, total))


# Global instance
_quality_scorer: Optional[QualityScorer] = None


def get_quality_scorer() -> QualityScorer:
    """Get or create the global quality scorer instance"""
    global _quality_scorer

    if _quality_scorer is None:
        _quality_scorer = QualityScorer()

    return _quality_scorer
