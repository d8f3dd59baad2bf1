"""
Tests for the ingestion orchestrator.

Connectors are stubs returning canned RawRecords; the clock and sleep are
fakes so budget behavior is deterministic.
"""

import os
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.config import Settings
from connectors.base import SourceConnector
from connectors.registry import ConnectorRegistry
from core.errors import SourceFetchError, StoreError
from core.link_validator import LinkCheckResult
from orchestrator import IngestionOrchestrator, RunConfig, RunReport, SourceRunResult, run_ingestion
from pipeline.models import NormalizedRecord, utcnow
from pipeline.store import InMemoryJobStore

PMHNP = {
    'title': 'Psychiatric Nurse Practitioner',
    'description': 'Outpatient psychiatry clinic',
    'employer': 'Acme',
    'location': 'Austin, TX',
    'apply_url': 'https://boards.greenhouse.io/acme/jobs/1',
    'external_id': '1',
}
RN = {
    'title': 'Registered Nurse',
    'description': 'Med surg floor',
    'employer': 'Acme',
    'apply_url': 'https://boards.greenhouse.io/acme/jobs/2',
    'external_id': '2',
}


def _posting(**overrides):
    data = dict(PMHNP)
    data.update(overrides)
    return data


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class StubConnector(SourceConnector):
    batch_width = 1
    batch_pause_seconds = 0

    def __init__(self, name, units, priority=50, missing=None, clock=None, tick=0.0):
        super().__init__(name=name, priority=priority)
        self.units = units
        self.missing = missing
        self.clock = clock
        self.tick = tick
        self.fetched_units = []

    def missing_configuration(self, context):
        return self.missing

    def work_units(self, context):
        return list(self.units)

    async def fetch_unit(self, unit, context):
        self.fetched_units.append(unit)
        if self.clock:
            self.clock.now += self.tick
        outcome = self.units[unit]
        if isinstance(outcome, Exception):
            raise outcome
        return [self.record(**fields) for fields in outcome]


def _settings(**env):
    defaults = {'PMHNP_VALIDATE_LINKS': 'false', 'CHUNK_RUN_BUDGET_SECONDS': '250', 'FULL_RUN_BUDGET_SECONDS': '900'}
    defaults.update(env)
    with patch.dict(os.environ, defaults):
        return Settings()


def _orchestrator(store, *connectors, clock=None, settings=None, link_validator=None):
    registry = ConnectorRegistry()
    for connector in connectors:
        registry.register(connector)
    return IngestionOrchestrator(
        store,
        registry=registry,
        settings=settings or _settings(),
        link_validator=link_validator,
        clock=clock or FakeClock(),
        sleep=AsyncMock(),
    )


@pytest.mark.asyncio
async def test_classifies_and_persists():
    """Test that relevant postings are stored and others counted as rejected."""
    store = InMemoryJobStore()
    orchestrator = _orchestrator(store, StubConnector('stub', {'acme': [PMHNP, RN]}))

    report = await orchestrator.run()

    result = report.results[0]
    assert (result.fetched, result.accepted, result.rejected, result.persisted) == (2, 1, 1, 1)
    assert result.new_job_urls == [PMHNP['apply_url']]
    row = store.find_matching({'external_id': '1', 'source': 'stub'})
    assert row['state_code'] == 'TX'
    assert row['published'] is True
    assert row['quality_score'] > 0
    assert timedelta(days=29) < row['expires_at'] - utcnow() <= timedelta(days=30)


@pytest.mark.asyncio
async def test_existing_posting_is_renewed():
    """Test that a re-sighted posting is renewed instead of duplicated."""
    store = InMemoryJobStore()
    record_id = store.create(NormalizedRecord(
        title=PMHNP['title'], employer='Acme', apply_link=PMHNP['apply_url'],
        source='stub', external_id='1', published=False,
        expires_at=utcnow() - timedelta(days=1),
    ))
    orchestrator = _orchestrator(store, StubConnector('stub', {'acme': [PMHNP]}))

    result = (await orchestrator.run()).results[0]

    assert (result.duplicates, result.renewed, result.persisted) == (1, 1, 0)
    row = store.rows[record_id]
    assert row['published'] is True
    assert row['expires_at'] - utcnow() > timedelta(days=59)
    assert store.count() == 1


@pytest.mark.asyncio
async def test_dry_run_writes_nothing():
    """Test that a dry run counts would-be writes and dedupes within the run."""
    store = InMemoryJobStore()
    connector = StubConnector('stub', {'a': [PMHNP], 'b': [PMHNP, _posting(external_id='3', title='PMHNP Telehealth')]})
    orchestrator = _orchestrator(store, connector)

    report = await orchestrator.run(RunConfig(dry_run=True))

    result = report.results[0]
    assert report.dry_run is True
    assert (result.persisted, result.duplicates) == (2, 1)
    assert store.count() == 0


@pytest.mark.asyncio
async def test_failed_unit_is_isolated():
    """Test that one unit's failure does not affect the others."""
    store = InMemoryJobStore()
    connector = StubConnector('stub', {
        'broken': SourceFetchError('HTTP 500', source='stub', status_code=500),
        'ok': [PMHNP],
    })
    result = (await _orchestrator(store, connector).run()).results[0]

    assert result.failed_units == 1
    assert result.persisted == 1
    assert 'broken' in result.errors[0]


@pytest.mark.asyncio
async def test_failed_page_is_reported_and_earlier_pages_kept():
    """Test that a later page failure is counted while the unit's earlier records persist."""

    class PagedConnector(StubConnector):
        async def fetch_unit(self, unit, context):
            records = await super().fetch_unit(unit, context)
            self.page_failed(unit, 2, SourceFetchError('HTTP 500', source=self.name), context)
            return records

    store = InMemoryJobStore()
    result = (await _orchestrator(store, PagedConnector('stub', {'acme': [PMHNP]})).run()).results[0]

    assert result.persisted == 1
    assert result.failed_units == 1
    assert result.errors == ["'acme' page 2: [stub] HTTP 500"]


@pytest.mark.asyncio
async def test_budget_exhaustion_returns_partial_results():
    """Test that the budget is checked between batches and remaining sources are skipped."""
    clock = FakeClock()
    store = InMemoryJobStore()
    units = {f"u{i}": [_posting(external_id=str(i), title=f"PMHNP {i}")] for i in range(5)}
    slow = StubConnector('slow', units, priority=90, clock=clock, tick=100)
    later = StubConnector('later', {'x': [PMHNP]}, priority=10)

    report = await _orchestrator(store, slow, later, clock=clock).run(RunConfig(mode='chunk'))

    first, second = report.results
    assert slow.fetched_units == ['u0', 'u1', 'u2']
    assert first.budget_exhausted is True
    assert first.persisted == 3
    assert second.budget_exhausted is True
    assert second.fetched == 0
    assert later.fetched_units == []
    assert report.budget_exhausted is True


@pytest.mark.asyncio
async def test_unconfigured_source_is_skipped():
    """Test that missing credentials skip a source with a reason."""
    connector = StubConnector('paid', {'x': [PMHNP]}, missing='RAPIDAPI_KEY')
    result = (await _orchestrator(InMemoryJobStore(), connector).run()).results[0]
    assert result.skipped_reason == 'missing RAPIDAPI_KEY'
    assert connector.fetched_units == []


@pytest.mark.asyncio
async def test_link_validation():
    """Test that dead links are rejected and tracking links replaced by their destination."""
    dead_url = 'https://careers.acme.test/dead'
    tracking_url = 'https://www.adzuna.com/land/ad/5'

    def validate(url):
        if url == dead_url:
            return LinkCheckResult(url=url, status=404, is_dead=True)
        return LinkCheckResult(url=url, is_tracking_url=True, clean_url='https://careers.acme.test/jobs/5')

    validator = MagicMock()
    validator.validate = AsyncMock(side_effect=validate)
    connector = StubConnector('stub', {'x': [
        _posting(external_id='4', title='PMHNP Dead', apply_url=dead_url),
        _posting(external_id='5', title='PMHNP Tracked', apply_url=tracking_url),
    ]})
    store = InMemoryJobStore()
    orchestrator = _orchestrator(store, connector, link_validator=validator)

    result = (await orchestrator.run(RunConfig(validate_links=True))).results[0]

    assert (result.link_rejected, result.persisted) == (1, 1)
    assert store.find_matching({'external_id': '5'})['apply_link'] == 'https://careers.acme.test/jobs/5'


@pytest.mark.asyncio
async def test_store_errors_are_counted():
    """Test that a failed insert is counted as errored, not raised."""
    store = InMemoryJobStore()
    orchestrator = _orchestrator(store, StubConnector('stub', {'x': [PMHNP]}))
    with patch.object(store, 'create', side_effect=StoreError('disk full')):
        result = (await orchestrator.run()).results[0]
    assert (result.errored, result.persisted) == (1, 0)
    assert result.errors == ['disk full']


@pytest.mark.asyncio
async def test_unpublishable_records_are_errored():
    """Test that postings without a title or apply link are counted as errored and not stored."""
    store = InMemoryJobStore()
    connector = StubConnector('stub', {'acme': [
        PMHNP,
        _posting(external_id='7', apply_url=''),
        _posting(external_id='8', title=''),
    ]})
    result = (await _orchestrator(store, connector).run()).results[0]

    assert (result.fetched, result.accepted, result.errored, result.persisted) == (3, 1, 2, 1)
    assert result.errors == ['stub record 7 has no apply link', 'stub record 8 has no title']
    assert store.count() == 1
    assert store.find_matching({'external_id': '7', 'source': 'stub'}) is None


@pytest.mark.asyncio
async def test_cleanup_after_run():
    """Test that the optional cleanup unpublishes expired records."""
    store = InMemoryJobStore()
    store.create(NormalizedRecord(
        title='Old PMHNP', apply_link='https://x.test/old', source='stub', external_id='old',
        expires_at=utcnow() - timedelta(days=2),
    ))
    report = await _orchestrator(store, StubConnector('stub', {})).run(RunConfig(cleanup=True))
    assert report.expired_removed == 1
    assert store.count({'published': True}) == 0


def test_run_config_rejects_unknown_mode():
    """Test mode validation."""
    with pytest.raises(ValueError):
        RunConfig(mode='weekly')


@pytest.mark.asyncio
async def test_unknown_source_raises():
    """Test that naming an unregistered source fails fast."""
    with pytest.raises(KeyError):
        await _orchestrator(InMemoryJobStore()).run(RunConfig(sources=['nope']))


def test_report_totals():
    """Test report aggregation."""
    report = RunReport(mode='full', results=[
        SourceRunResult(source='a', fetched=3, persisted=2),
        SourceRunResult(source='b', fetched=1, persisted=1, budget_exhausted=True),
    ])
    assert report.totals['fetched'] == 4
    assert report.totals['persisted'] == 3
    assert report.to_dict()['budget_exhausted'] is True


@pytest.mark.asyncio
async def test_run_ingestion_wrapper():
    """Test the convenience wrapper passes options through."""
    registry = ConnectorRegistry()
    registry.register(StubConnector('stub', {'x': [PMHNP]}))
    report = await run_ingestion(
        InMemoryJobStore(), RunConfig(sources=['stub']),
        registry=registry, settings=_settings(), sleep=AsyncMock(),
    )
    assert report.totals['persisted'] == 1
