"""
Maintenance passes over persisted job records.

Every pass reuses the ingestion components (cleaner, location parser,
salary normalizer, classifier, link validator, scorer) and only ever unpublishes or updates
records; nothing is deleted.
"""
import asyncio
import logging
import time
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from core.description_cleaner import clean_description, summarize
from core.errors import StoreError
from core.link_validator import LinkValidator, get_link_validator
from core.location_parser import parse_location
from core.quality_score import get_quality_scorer
from core.rule_tables import ESTIMATED_MARKERS
from core.salary_normalizer import detect_period, format_display_salary, normalize_salary
from pipeline.classifier import get_classifier
from pipeline.models import utcnow
from pipeline.store import JobStore

logger = logging.getLogger(__name__)

# Dead-link sweep limits
SWEEP_BATCH_SIZE = 15
SWEEP_MAX_RECORDS = 1500
SWEEP_BUDGET_SECONDS = 250
SWEEP_BATCH_DELAY_SECONDS = 0.2

BACKFILL_LIMIT = 5000


def cleanup_expired(store: JobStore, now: Optional[datetime] = None, dry_run: bool = False) -> int:
    """
    Unpublish published records whose expires_at has passed.

    Returns:
        Number of records unpublished (or that would be, on a dry run)
    """
    now = now or utcnow()
    expired = list(store.iter_records({'published': True, 'expires_at__lt': now}))
    if dry_run:
        logger.info(f"[maintenance] Dry run: {len(expired)} expired records would be unpublished")
        return len(expired)

    removed = 0
    for row in expired:
        try:
            store.update(row['id'], {'published': False, 'updated_at': now})
            removed += 1
        except StoreError as e:
            logger.error(f"[maintenance] Failed to unpublish expired record {row['id']}: {e}")
    logger.info(f"[maintenance] Unpublished {removed} expired records")
    return removed


def get_ingestion_stats(store: JobStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Published totals, per-source counts and records added in the last 24 hours"""
    now = now or utcnow()
    by_source = {
        group['key']: group['count']
        for group in store.group_by('source', {'published': True})
        if group['key']
    }
    return {
        'total_active': store.count({'published': True}),
        'total_records': store.count(),
        'by_source': by_source,
        'added_last_24h': store.count({'published': True, 'created_at__gt': now - timedelta(days=1)}),
        'expiring_next_7d': store.count({
            'published': True,
            'expires_at__gt': now,
            'expires_at__lt': now + timedelta(days=7),
        }),
    }


async def sweep_dead_links(
    store: JobStore,
    validator: Optional[LinkValidator] = None,
    batch_size: int = SWEEP_BATCH_SIZE,
    max_records: int = SWEEP_MAX_RECORDS,
    budget_seconds: float = SWEEP_BUDGET_SECONDS,
    batch_delay: float = SWEEP_BATCH_DELAY_SECONDS,
    dry_run: bool = False,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Dict[str, Any]:
    """
    Liveness-check published aggregated records and unpublish dead ones.

    Records are visited least-recently-updated first so consecutive runs
    cover the whole table. Network errors and 5xx count as alive.
    """
    validator = validator or get_link_validator()
    started = clock()
    rows = list(store.iter_records(
        {'published': True, 'employer_submitted': False, 'apply_link__ne': ''},
        order_by='updated_at',
        limit=max_records,
    ))
    logger.info(f"[maintenance] Dead-link sweep over {len(rows)} records")

    checked = alive = dead = errors = 0
    dead_by_source: Counter = Counter()
    budget_exhausted = False

    for start in range(0, len(rows), batch_size):
        if clock() - started >= budget_seconds:
            logger.warning(f"[maintenance] Sweep budget exhausted at {checked}/{len(rows)} records")
            budget_exhausted = True
            break

        batch = rows[start:start + batch_size]
        results = await asyncio.gather(
            *(validator.check_liveness(row['apply_link']) for row in batch),
            return_exceptions=True,
        )
        now = utcnow()
        for row, result in zip(batch, results):
            checked += 1
            if isinstance(result, Exception):
                errors += 1
                logger.error(f"[maintenance] Liveness check crashed for {row.get('apply_link')}: {result}")
                continue
            if not result.is_dead:
                if result.error:
                    errors += 1
                else:
                    alive += 1
                continue

            dead += 1
            source = row.get('source') or 'unknown'
            dead_by_source[source] += 1
            logger.info(f"[maintenance] Dead link [{source}] '{row.get('title')}' -> {result.status}")
            if dry_run:
                continue
            try:
                store.update(row['id'], {'published': False, 'updated_at': now})
            except StoreError as e:
                errors += 1
                logger.error(f"[maintenance] Failed to unpublish {row['id']}: {e}")

        if start + batch_size < len(rows):
            await sleep(batch_delay)

    summary = {
        'checked': checked,
        'alive': alive,
        'dead': dead,
        'errors': errors,
        'dead_by_source': dict(dead_by_source),
        'budget_exhausted': budget_exhausted,
        'dry_run': dry_run,
        'elapsed_seconds': round(clock() - started, 1),
    }
    logger.info(f"[maintenance] Dead-link sweep complete: {summary}")
    return summary


def _apply_patches(store: JobStore, patches: Dict[str, Dict[str, Any]], dry_run: bool) -> int:
    if dry_run:
        return len(patches)
    applied = 0
    for record_id, patch in patches.items():
        try:
            store.update(record_id, patch)
            applied += 1
        except StoreError as e:
            logger.error(f"[maintenance] Failed to update {record_id}: {e}")
    return applied


def backfill_descriptions(store: JobStore, limit: int = BACKFILL_LIMIT, dry_run: bool = False) -> Dict[str, int]:
    """Re-clean descriptions, regenerate summaries and rescore where anything changed"""
    scorer = get_quality_scorer()
    now = utcnow()
    patches: Dict[str, Dict[str, Any]] = {}
    scanned = 0
    for row in store.iter_records({'published': True}, order_by='created_at', limit=limit):
        scanned += 1
        description = clean_description(row.get('description'))
        summary = summarize(description)
        if description == (row.get('description') or '') and summary == (row.get('summary') or ''):
            continue
        updated = dict(row, description=description, summary=summary)
        patches[row['id']] = {
            'description': description,
            'summary': summary,
            'quality_score': scorer.score(updated),
            'updated_at': now,
        }
    updated_count = _apply_patches(store, patches, dry_run)
    logger.info(f"[maintenance] Description backfill: {updated_count}/{scanned} records updated")
    return {'scanned': scanned, 'updated': updated_count}


def backfill_locations(store: JobStore, limit: int = BACKFILL_LIMIT, dry_run: bool = False) -> Dict[str, int]:
    """Re-parse the original location text of records with no structured state"""
    scorer = get_quality_scorer()
    now = utcnow()
    patches: Dict[str, Dict[str, Any]] = {}
    scanned = 0
    for row in store.iter_records({'published': True, 'state_code': None}, limit=limit):
        scanned += 1
        parsed = parse_location(row.get('location'))
        if not parsed.state_code and parsed.is_remote == bool(row.get('is_remote')):
            continue
        patch = {
            'city': parsed.city,
            'state': parsed.state,
            'state_code': parsed.state_code,
            'country': parsed.country,
            'is_remote': bool(row.get('is_remote')) or parsed.is_remote,
            'is_hybrid': bool(row.get('is_hybrid')) or parsed.is_hybrid,
            'location_confidence': parsed.confidence,
            'updated_at': now,
        }
        patch['quality_score'] = scorer.score(dict(row, **patch))
        patches[row['id']] = patch
    updated_count = _apply_patches(store, patches, dry_run)
    logger.info(f"[maintenance] Location backfill: {updated_count}/{scanned} records updated")
    return {'scanned': scanned, 'updated': updated_count}


def backfill_salaries(store: JobStore, limit: int = BACKFILL_LIMIT, dry_run: bool = False) -> Dict[str, int]:
    """Re-run salary normalization over the stored raw bounds and period"""
    scorer = get_quality_scorer()
    now = utcnow()
    patches: Dict[str, Dict[str, Any]] = {}
    scanned = 0
    for row in store.iter_records({'published': True}, order_by='created_at', limit=limit):
        scanned += 1
        min_salary, max_salary = row.get('min_salary'), row.get('max_salary')
        if min_salary is None and max_salary is None:
            continue
        # Source salary text is not stored, so the estimate flag is carried over as a text marker.
        marker = ESTIMATED_MARKERS[0] if row.get('salary_is_estimated') else None
        salary = normalize_salary(min_salary, max_salary, row.get('salary_period'), marker)
        period = salary.period if salary else detect_period(row.get('salary_period'), None, min_salary, max_salary)
        patch = {
            'salary_period': period,
            'normalized_min_salary': salary.normalized_min if salary else None,
            'normalized_max_salary': salary.normalized_max if salary else None,
            'salary_is_estimated': salary.is_estimated if salary else bool(row.get('salary_is_estimated')),
            'salary_confidence': salary.confidence if salary else None,
            'display_salary': format_display_salary(min_salary, max_salary, period),
        }
        if all(row.get(key) == value for key, value in patch.items()):
            continue
        patch['quality_score'] = scorer.score(dict(row, **patch))
        patch['updated_at'] = now
        patches[row['id']] = patch
    updated_count = _apply_patches(store, patches, dry_run)
    logger.info(f"[maintenance] Salary backfill: {updated_count}/{scanned} records updated")
    return {'scanned': scanned, 'updated': updated_count}


def reclassify_backfill(store: JobStore, limit: int = BACKFILL_LIMIT, dry_run: bool = False) -> Dict[str, Any]:
    """Run the current relevance rules over published aggregated records and unpublish misses"""
    classifier = get_classifier()
    now = utcnow()
    patches: Dict[str, Dict[str, Any]] = {}
    reasons: Counter = Counter()
    scanned = 0
    for row in store.iter_records({'published': True, 'employer_submitted': False}, limit=limit):
        scanned += 1
        result = classifier.explain(row.get('title'), row.get('description'))
        if result.accepted:
            continue
        reasons[result.reason] += 1
        patches[row['id']] = {'published': False, 'updated_at': now}
    unpublished = _apply_patches(store, patches, dry_run)
    logger.info(f"[maintenance] Reclassify backfill: {unpublished}/{scanned} records unpublished")
    return {'scanned': scanned, 'unpublished': unpublished, 'reasons': dict(reasons)}


def backfill_quality_scores(store: JobStore, limit: int = BACKFILL_LIMIT, dry_run: bool = False) -> Dict[str, int]:
    """Rescore published records whose stored score differs from the current rules"""
    scorer = get_quality_scorer()
    now = utcnow()
    patches: Dict[str, Dict[str, Any]] = {}
    scanned = 0
    for row in store.iter_records({'published': True}, order_by='-created_at', limit=limit):
        scanned += 1
        score = scorer.score(row)
        if score != row.get('quality_score'):
            patches[row['id']] = {'quality_score': score, 'updated_at': now}
    updated_count = _apply_patches(store, patches, dry_run)
    logger.info(f"[maintenance] Quality score backfill: {updated_count}/{scanned} records updated")
    return {'scanned': scanned, 'updated': updated_count}


BACKFILLS = {
    'descriptions': backfill_descriptions,
    'locations': backfill_locations,
    'salaries': backfill_salaries,
    'relevance': reclassify_backfill,
    'quality': backfill_quality_scores,
}
