"""
Offline duplicate pass over published postings.

Three passes, each over what the previous one left:
1. normalized apply URL
2. normalized title + employer within the same state (or remote bucket)
3. fuzzy: similar employer and >= 0.8 title word overlap, flagged only

Passes 1 and 2 keep the best record of each group (highest quality score,
earliest created on ties) and unpublish the rest. Nothing is deleted.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse

from rapidfuzz.distance import Levenshtein

from core.rule_tables import TRACKING_QUERY_PARAMS
from pipeline.models import utcnow
from pipeline.store import JobStore

logger = logging.getLogger(__name__)

FUZZY_TITLE_THRESHOLD = 0.8
MAX_EMPLOYER_EDIT_DISTANCE = 3
MIN_TITLE_WORD_LENGTH = 3

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def normalize_apply_url(url: Optional[str]) -> str:
    """Canonical form for URL comparison: no tracking params, www, trailing slash or fragment."""
    if not url:
        return ''
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.strip().lower()
    host = (parsed.hostname or '').lower()
    if host.startswith('www.'):
        host = host[4:]
    path = parsed.path.rstrip('/').lower()
    params = sorted(
        (key, value) for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key.lower() not in TRACKING_QUERY_PARAMS and not key.lower().startswith('utm_')
    )
    normalized = f"{host}{path}"
    if params:
        normalized += '?' + urlencode(params)
    return normalized


def normalize_text(text: Optional[str]) -> str:
    text = re.sub(r'[^a-z0-9\s]', '', (text or '').lower())
    return re.sub(r'\s+', ' ', text).strip()


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def employers_similar(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = normalize_text(a), normalize_text(b)
    if not na or not nb:
        return False
    if na == nb or na in nb or nb in na:
        return True
    return levenshtein(na, nb) <= MAX_EMPLOYER_EDIT_DISTANCE


def title_word_overlap(a: Optional[str], b: Optional[str]) -> float:
    """Dice coefficient over words of three or more characters."""
    words_a = {w for w in normalize_text(a).split(' ') if len(w) >= MIN_TITLE_WORD_LENGTH}
    words_b = {w for w in normalize_text(b).split(' ') if len(w) >= MIN_TITLE_WORD_LENGTH}
    if not words_a or not words_b:
        return 0.0
    return 2 * len(words_a & words_b) / (len(words_a) + len(words_b))


def location_bucket(record: Dict[str, Any]) -> str:
    if record.get('state'):
        return record['state']
    return 'REMOTE' if record.get('is_remote') else 'UNKNOWN'


@dataclass
class FuzzyMatch:
    first_id: str
    second_id: str
    first_title: str
    second_title: str
    first_employer: str
    second_employer: str
    similarity: float


@dataclass
class BatchDedupeReport:
    scanned: int = 0
    url_duplicates: int = 0
    exact_duplicates: int = 0
    fuzzy_matches: List[FuzzyMatch] = field(default_factory=list)
    unpublished_ids: List[str] = field(default_factory=list)
    dry_run: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scanned': self.scanned,
            'url_duplicates': self.url_duplicates,
            'exact_duplicates': self.exact_duplicates,
            'fuzzy_matches': len(self.fuzzy_matches),
            'unpublished': len(self.unpublished_ids),
            'dry_run': self.dry_run,
        }


def _keeper_sort_key(record: Dict[str, Any]):
    return (-(record.get('quality_score') or 0), record.get('created_at') or _EPOCH)


def _losers(groups: Dict[str, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    losers = []
    for group in groups.values():
        if len(group) < 2:
            continue
        group.sort(key=_keeper_sort_key)
        losers.extend(group[1:])
    return losers


def find_duplicates(records: Iterable[Dict[str, Any]]) -> BatchDedupeReport:
    """Run all three passes in memory and report what would be unpublished."""
    remaining = list(records)
    report = BatchDedupeReport(scanned=len(remaining))

    url_groups: Dict[str, List[Dict[str, Any]]] = {}
    for record in remaining:
        key = normalize_apply_url(record.get('apply_link'))
        if key:
            url_groups.setdefault(key, []).append(record)
    url_losers = _losers(url_groups)
    report.url_duplicates = len(url_losers)
    dropped = {record['id'] for record in url_losers}
    remaining = [record for record in remaining if record['id'] not in dropped]

    exact_groups: Dict[str, List[Dict[str, Any]]] = {}
    for record in remaining:
        key = '|'.join((normalize_text(record.get('title')), normalize_text(record.get('employer')), location_bucket(record)))
        exact_groups.setdefault(key, []).append(record)
    exact_losers = _losers(exact_groups)
    report.exact_duplicates = len(exact_losers)
    dropped.update(record['id'] for record in exact_losers)
    remaining = [record for record in remaining if record['id'] not in dropped]
    report.unpublished_ids = [record['id'] for record in url_losers + exact_losers]

    by_bucket: Dict[str, List[Dict[str, Any]]] = {}
    for record in remaining:
        by_bucket.setdefault(location_bucket(record), []).append(record)
    for bucket in by_bucket.values():
        for i, first in enumerate(bucket):
            for second in bucket[i + 1:]:
                if not employers_similar(first.get('employer'), second.get('employer')):
                    continue
                similarity = title_word_overlap(first.get('title'), second.get('title'))
                if similarity >= FUZZY_TITLE_THRESHOLD:
                    report.fuzzy_matches.append(FuzzyMatch(
                        first_id=first['id'],
                        second_id=second['id'],
                        first_title=first.get('title') or '',
                        second_title=second.get('title') or '',
                        first_employer=first.get('employer') or '',
                        second_employer=second.get('employer') or '',
                        similarity=round(similarity, 3),
                    ))
    return report


def run_batch_dedupe(store: JobStore, dry_run: bool = True) -> BatchDedupeReport:
    """Dedupe published postings in the store; unpublishes losers unless dry_run."""
    report = find_duplicates(store.iter_records({'published': True}))
    report.dry_run = dry_run
    logger.info(
        f"[batch_dedupe] Scanned {report.scanned}: {report.url_duplicates} by URL, "
        f"{report.exact_duplicates} by title+employer, {len(report.fuzzy_matches)} fuzzy for review"
    )
    if dry_run:
        return report

    now = utcnow()
    for record_id in report.unpublished_ids:
        store.update(record_id, {'published': False, 'updated_at': now})
    logger.info(f"[batch_dedupe] Unpublished {len(report.unpublished_ids)} duplicates")
    return report
