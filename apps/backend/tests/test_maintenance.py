"""
Tests for maintenance passes: expiry cleanup, stats, dead-link sweep and backfills.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.link_validator import LinkCheckResult
from pipeline.maintenance import (
    BACKFILLS,
    backfill_descriptions,
    backfill_locations,
    backfill_quality_scores,
    backfill_salaries,
    cleanup_expired,
    get_ingestion_stats,
    reclassify_backfill,
    sweep_dead_links,
)
from pipeline.models import NormalizedRecord, utcnow
from pipeline.store import InMemoryJobStore


def _add(store, external_id, **overrides):
    data = {
        'title': 'Psychiatric Nurse Practitioner',
        'employer': 'Acme',
        'apply_link': f'https://careers.acme.test/jobs/{external_id}',
        'source': 'greenhouse',
        'external_id': external_id,
        'expires_at': utcnow() + timedelta(days=30),
        'created_at': utcnow(),
        'updated_at': utcnow(),
    }
    data.update(overrides)
    return store.create(NormalizedRecord(**data))


class TestCleanupExpired:
    """Test cleanup_expired()."""

    def test_unpublishes_expired_only(self):
        """Test that only records past expiry are unpublished."""
        store = InMemoryJobStore()
        expired = _add(store, '1', expires_at=utcnow() - timedelta(hours=1))
        fresh = _add(store, '2')
        assert cleanup_expired(store) == 1
        assert store.rows[expired]['published'] is False
        assert store.rows[fresh]['published'] is True

    def test_dry_run(self):
        """Test that a dry run only counts."""
        store = InMemoryJobStore()
        _add(store, '1', expires_at=utcnow() - timedelta(days=1))
        assert cleanup_expired(store, dry_run=True) == 1
        assert store.count({'published': True}) == 1


def test_ingestion_stats():
    """Test published totals and per-source counts."""
    store = InMemoryJobStore()
    _add(store, '1')
    _add(store, '2', source='lever', expires_at=utcnow() + timedelta(days=3))
    _add(store, '3', source='lever', published=False)
    stats = get_ingestion_stats(store)
    assert stats['total_active'] == 2
    assert stats['total_records'] == 3
    assert stats['by_source'] == {'greenhouse': 1, 'lever': 1}
    assert stats['added_last_24h'] == 2
    assert stats['expiring_next_7d'] == 1


class TestSweepDeadLinks:
    """Test sweep_dead_links()."""

    def _validator(self, dead_urls=(), error_urls=()):
        def check(url):
            if url in dead_urls:
                return LinkCheckResult(url=url, status=404, is_dead=True)
            if url in error_urls:
                return LinkCheckResult(url=url, clean_url=url, error='timeout')
            return LinkCheckResult(url=url, status=200, clean_url=url)

        validator = MagicMock()
        validator.check_liveness = AsyncMock(side_effect=check)
        return validator

    @pytest.mark.asyncio
    async def test_dead_links_unpublished(self):
        """Test dead, alive and errored links are counted and only dead ones unpublished."""
        store = InMemoryJobStore()
        dead = _add(store, 'dead')
        _add(store, 'alive')
        _add(store, 'flaky')
        _add(store, 'employer', employer_submitted=True)
        validator = self._validator(
            dead_urls={'https://careers.acme.test/jobs/dead'},
            error_urls={'https://careers.acme.test/jobs/flaky'},
        )

        summary = await sweep_dead_links(store, validator, sleep=AsyncMock())

        assert summary['checked'] == 3
        assert (summary['alive'], summary['dead'], summary['errors']) == (1, 1, 1)
        assert summary['dead_by_source'] == {'greenhouse': 1}
        assert store.rows[dead]['published'] is False
        assert store.count({'published': True}) == 3

    @pytest.mark.asyncio
    async def test_dry_run(self):
        """Test that a dry run reports without unpublishing."""
        store = InMemoryJobStore()
        _add(store, 'dead')
        validator = self._validator(dead_urls={'https://careers.acme.test/jobs/dead'})
        summary = await sweep_dead_links(store, validator, dry_run=True, sleep=AsyncMock())
        assert summary['dead'] == 1
        assert store.count({'published': True}) == 1

    @pytest.mark.asyncio
    async def test_oldest_first_and_budget(self):
        """Test that the least recently updated records go first and the budget stops the sweep."""
        store = InMemoryJobStore()
        for i in range(4):
            _add(store, str(i), updated_at=utcnow() - timedelta(days=i))
        validator = self._validator()
        ticks = iter([0, 0, 100, 100])

        summary = await sweep_dead_links(
            store, validator, batch_size=2, budget_seconds=50,
            clock=lambda: next(ticks), sleep=AsyncMock(),
        )

        checked = [call.args[0] for call in validator.check_liveness.await_args_list]
        assert checked == ['https://careers.acme.test/jobs/3', 'https://careers.acme.test/jobs/2']
        assert summary['budget_exhausted'] is True
        assert summary['checked'] == 2


class TestBackfills:
    """Test the backfill passes."""

    def test_descriptions(self):
        """Test that raw HTML descriptions are cleaned and summarized."""
        store = InMemoryJobStore()
        record_id = _add(store, '1', description='<p>Outpatient &amp; telehealth care.</p>')
        assert backfill_descriptions(store) == {'scanned': 1, 'updated': 1}
        row = store.rows[record_id]
        assert row['description'] == 'Outpatient & telehealth care.'
        assert row['summary'] == 'Outpatient & telehealth care.'
        assert backfill_descriptions(store)['updated'] == 0

    def test_locations(self):
        """Test that records without a state are re-parsed."""
        store = InMemoryJobStore()
        record_id = _add(store, '1', location='Denver, CO')
        _add(store, '2', location='Somewhere')
        assert backfill_locations(store) == {'scanned': 2, 'updated': 1}
        assert store.rows[record_id]['state_code'] == 'CO'

    def test_reclassify(self):
        """Test that records the classifier now rejects are unpublished."""
        store = InMemoryJobStore()
        keep = _add(store, '1')
        drop = _add(store, '2', title='Registered Nurse')
        result = reclassify_backfill(store)
        assert result['unpublished'] == 1
        assert result['reasons'] == {'no_positive_match': 1}
        assert store.rows[keep]['published'] is True
        assert store.rows[drop]['published'] is False

    def test_reclassify_dry_run(self):
        """Test dry run leaves records published."""
        store = InMemoryJobStore()
        _add(store, '2', title='Registered Nurse')
        assert reclassify_backfill(store, dry_run=True)['unpublished'] == 1
        assert store.count({'published': True}) == 1

    def test_quality_scores(self):
        """Test stale scores are recomputed."""
        store = InMemoryJobStore()
        record_id = _add(store, '1', quality_score=0)
        assert backfill_quality_scores(store)['updated'] == 1
        assert store.rows[record_id]['quality_score'] == 20

    def test_salaries(self):
        """Test that stored raw salary bounds are normalized again."""
        store = InMemoryJobStore()
        hourly = _add(store, '1', min_salary=60, max_salary=75, salary_period='hourly')
        stale = _add(store, '2', min_salary=5, salary_period='annual', normalized_min_salary=100000)
        _add(store, '3')

        assert backfill_salaries(store) == {'scanned': 3, 'updated': 2}
        row = store.rows[hourly]
        assert (row['normalized_min_salary'], row['normalized_max_salary']) == (124800, 156000)
        assert row['salary_confidence'] == 0.9
        assert row['display_salary'] == '$60-$75/hr'
        assert store.rows[stale]['normalized_min_salary'] is None
        assert backfill_salaries(store)['updated'] == 0

    def test_salaries_dry_run(self):
        """Test that a dry run counts without writing."""
        store = InMemoryJobStore()
        record_id = _add(store, '1', min_salary=60, max_salary=75, salary_period='hourly')
        assert backfill_salaries(store, dry_run=True)['updated'] == 1
        assert store.rows[record_id]['normalized_min_salary'] is None

    def test_registry(self):
        """Test the named backfills."""
        assert set(BACKFILLS) == {'descriptions', 'locations', 'salaries', 'relevance', 'quality'}
