"""
Ingestion-time duplicate detection.

One store query per candidate: (external_id AND source) OR (title AND
employer AND location). Lookup failures count as duplicates so a flaky store
never lets the same posting in twice.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pipeline.store import JobStore

logger = logging.getLogger(__name__)

STRATEGY_EXTERNAL_ID = 'external_id'
STRATEGY_TITLE_EMPLOYER_LOCATION = 'title_employer_location'
STRATEGY_LOOKUP_ERROR = 'lookup_error'


@dataclass
class DuplicateMatch:
    """The stored record a candidate collided with. record_id is None on lookup errors."""
    record_id: Optional[str]
    strategy: str
    record: Optional[Dict[str, Any]] = None


def build_dedup_criteria(candidate: Any) -> Optional[Dict[str, Any]]:
    branches: List[Dict[str, Any]] = []
    if candidate.external_id and candidate.source:
        branches.append({'external_id': candidate.external_id, 'source': candidate.source})
    if candidate.title and candidate.employer:
        branches.append({
            'title': candidate.title,
            'employer': candidate.employer,
            'location': candidate.location or '',
        })
    if not branches:
        return None
    return {'$or': branches}


class Deduplicator:
    """Checks candidates against the store before they are persisted."""

    def __init__(self, store: JobStore):
        self.store = store

    def find_duplicate(self, candidate: Any) -> Optional[DuplicateMatch]:
        """
        Find the stored record a candidate duplicates.

        Args:
            candidate: RawRecord or NormalizedRecord (anything with title,
                employer, location, external_id and source attributes)

        Returns:
            DuplicateMatch, or None when the candidate is new
        """
        criteria = build_dedup_criteria(candidate)
        if criteria is None:
            return None

        try:
            row = self.store.find_matching(criteria)
        except Exception as e:
            logger.error(f"[dedupe] Lookup failed for '{candidate.title}' ({candidate.source}), treating as duplicate: {e}")
            return DuplicateMatch(record_id=None, strategy=STRATEGY_LOOKUP_ERROR)

        if not row:
            return None

        if candidate.external_id and row.get('external_id') == candidate.external_id and row.get('source') == candidate.source:
            strategy = STRATEGY_EXTERNAL_ID
        else:
            strategy = STRATEGY_TITLE_EMPLOYER_LOCATION
        logger.debug(f"[dedupe] Duplicate of {row.get('id')} by {strategy}: '{candidate.title}'")
        return DuplicateMatch(record_id=row.get('id'), strategy=strategy, record=row)

    def is_duplicate(self, candidate: Any) -> bool:
        return self.find_duplicate(candidate) is not None
