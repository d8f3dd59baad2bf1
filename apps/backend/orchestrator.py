"""
Ingestion orchestrator: runs connectors under a wall-clock budget and pushes
every fetched record through classify -> normalize -> dedupe -> link check ->
score -> persist.
"""
import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from app.config import Settings, get_settings
from connectors import FetchContext, SourceConnector, get_connector_registry
from connectors.registry import ConnectorRegistry
from core.errors import BudgetExceeded, StoreError
from core.link_validator import LinkValidator
from core.net import HTTPClient
from core.quality_score import get_quality_scorer
from pipeline.classifier import RelevanceClassifier, get_classifier
from pipeline.dedupe import DuplicateMatch, Deduplicator
from pipeline.maintenance import cleanup_expired
from pipeline.models import RENEWAL_DAYS, NormalizedRecord, RawRecord, utcnow
from pipeline.normalizer import normalize_record
from pipeline.store import JobStore

logger = logging.getLogger(__name__)

MODES = ('full', 'chunk')
MAX_ERRORS_KEPT = 20


@dataclass
class RunConfig:
    """Parameters of one ingestion run"""
    sources: Optional[List[str]] = None
    pages_per_query: Optional[int] = None
    mode: str = 'full'
    queries: Optional[List[str]] = None
    # None means use Settings.validate_links
    validate_links: Optional[bool] = None
    dry_run: bool = False
    cleanup: bool = False

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"Unknown run mode '{self.mode}', expected one of {MODES}")


@dataclass
class SourceRunResult:
    source: str
    fetched: int = 0
    accepted: int = 0
    rejected: int = 0
    duplicates: int = 0
    renewed: int = 0
    link_rejected: int = 0
    persisted: int = 0
    errored: int = 0
    failed_units: int = 0
    budget_exhausted: bool = False
    skipped_reason: Optional[str] = None
    duration_ms: int = 0
    new_job_urls: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def note_error(self, message: str) -> None:
        if len(self.errors) < MAX_ERRORS_KEPT:
            self.errors.append(message[:300])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


COUNT_FIELDS = (
    'fetched', 'accepted', 'rejected', 'duplicates', 'renewed',
    'link_rejected', 'persisted', 'errored', 'failed_units',
)


@dataclass
class RunReport:
    mode: str
    results: List[SourceRunResult] = field(default_factory=list)
    elapsed_ms: int = 0
    dry_run: bool = False
    expired_removed: Optional[int] = None

    @property
    def budget_exhausted(self) -> bool:
        return any(result.budget_exhausted for result in self.results)

    @property
    def totals(self) -> Dict[str, int]:
        return {name: sum(getattr(result, name) for result in self.results) for name in COUNT_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'dry_run': self.dry_run,
            'elapsed_ms': self.elapsed_ms,
            'budget_exhausted': self.budget_exhausted,
            'totals': self.totals,
            'expired_removed': self.expired_removed,
            'results': [result.to_dict() for result in self.results],
        }


class IngestionOrchestrator:
    """Runs connectors sequentially, one shared budget per run"""

    def __init__(
        self,
        store: JobStore,
        registry: Optional[ConnectorRegistry] = None,
        http: Optional[HTTPClient] = None,
        settings: Optional[Settings] = None,
        link_validator: Optional[LinkValidator] = None,
        classifier: Optional[RelevanceClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.registry = registry or get_connector_registry()
        self.http = http or HTTPClient(user_agent=self.settings.user_agent, timeout=self.settings.http_timeout_seconds)
        self.link_validator = link_validator or LinkValidator(http_client=self.http)
        self.classifier = classifier or get_classifier()
        self.deduplicator = Deduplicator(store)
        self.scorer = get_quality_scorer()
        self.clock = clock
        self.sleep = sleep
        self._started = 0.0
        self._budget = 0.0

    def _check_budget(self) -> None:
        elapsed = self.clock() - self._started
        if elapsed >= self._budget:
            raise BudgetExceeded(elapsed, self._budget)

    def _context(self, config: RunConfig) -> FetchContext:
        return FetchContext(
            http=self.http,
            settings=self.settings,
            queries=config.queries,
            pages_per_query=config.pages_per_query or self.settings.pages_per_query,
            sleep=self.sleep,
        )

    async def run(self, config: Optional[RunConfig] = None) -> RunReport:
        """
        Run one ingestion pass.

        Sources run in the order given (registry priority order by default).
        Once the budget is spent, the remaining sources are reported with
        budget_exhausted set and zero counts.

        Raises:
            KeyError: when config.sources names an unknown connector
        """
        config = config or RunConfig()
        connectors = self.registry.resolve(config.sources)
        self._started = self.clock()
        self._budget = self.settings.budget_for_mode(config.mode)
        report = RunReport(mode=config.mode, dry_run=config.dry_run)
        context = self._context(config)
        seen: Set[Tuple[str, str]] = set()

        logger.info(
            f"[orchestrator] Starting {config.mode} run: {[c.name for c in connectors]} "
            f"(budget {self._budget}s, dry_run={config.dry_run})"
        )
        for connector in connectors:
            if report.budget_exhausted:
                report.results.append(SourceRunResult(source=connector.name, budget_exhausted=True))
                continue
            result = await self.run_source(connector, context, config, seen)
            report.results.append(result)

        if config.cleanup:
            report.expired_removed = cleanup_expired(self.store, dry_run=config.dry_run)

        report.elapsed_ms = int((self.clock() - self._started) * 1000)
        logger.info(f"[orchestrator] Run complete in {report.elapsed_ms}ms: {report.totals}")
        return report

    async def run_source(
        self,
        connector: SourceConnector,
        context: FetchContext,
        config: RunConfig,
        seen: Optional[Set[Tuple[str, str]]] = None,
    ) -> SourceRunResult:
        """Fetch and process one source; never raises for source failures."""
        result = SourceRunResult(source=connector.name)
        source_started = self.clock()
        seen = seen if seen is not None else set()

        missing = connector.missing_configuration(context)
        if missing:
            logger.warning(f"[orchestrator] {connector.name}: {missing} not configured, skipping")
            result.skipped_reason = f"missing {missing}"
            return result

        try:
            units = connector.work_units(context)
        except Exception as e:
            logger.error(f"[orchestrator] {connector.name}: could not build work units: {e}")
            result.failed_units += 1
            result.note_error(str(e))
            return result

        logger.info(f"[orchestrator] {connector.name}: {len(units)} units, batch width {connector.batch_width}")
        try:
            for start in range(0, len(units), connector.batch_width):
                self._check_budget()
                batch = units[start:start + connector.batch_width]
                outcomes = await asyncio.gather(
                    *(connector.fetch_unit(unit, context) for unit in batch),
                    return_exceptions=True,
                )
                for unit, outcome in zip(batch, outcomes):
                    if isinstance(outcome, Exception):
                        logger.error(f"[orchestrator] {connector.name}: unit {unit!r} failed: {outcome}")
                        result.failed_units += 1
                        result.note_error(f"{unit!r}: {outcome}")
                        continue
                    result.fetched += len(outcome)
                    await self.process_records(outcome, result, config, seen)
                for message in context.drain_page_errors():
                    result.failed_units += 1
                    result.note_error(message)
                if start + connector.batch_width < len(units):
                    await self.sleep(connector.batch_pause_seconds)
        except BudgetExceeded as e:
            logger.warning(f"[orchestrator] {connector.name}: {e}, returning partial results")
            result.budget_exhausted = True

        result.duration_ms = int((self.clock() - source_started) * 1000)
        logger.info(
            f"[orchestrator] {connector.name}: fetched {result.fetched}, accepted {result.accepted}, "
            f"duplicates {result.duplicates}, persisted {result.persisted}, errored {result.errored}"
        )
        return result

    def _should_validate_links(self, config: RunConfig) -> bool:
        if config.validate_links is None:
            return self.settings.validate_links
        return config.validate_links

    async def process_records(
        self,
        raws: List[RawRecord],
        result: SourceRunResult,
        config: RunConfig,
        seen: Set[Tuple[str, str]],
    ) -> None:
        """Classify, normalize and dedupe a unit's records, then link-check and persist the survivors."""
        now = utcnow()
        candidates: List[NormalizedRecord] = []

        for raw in raws:
            missing = raw.missing_required()
            if missing:
                message = f"{raw.source} record {raw.external_id or '?'} has no {missing}"
                logger.warning(f"[orchestrator] Skipping {message}")
                result.errored += 1
                result.note_error(message)
                continue

            if not self.classifier.classify(raw.title, raw.description):
                result.rejected += 1
                continue
            result.accepted += 1

            try:
                record = normalize_record(raw, now=now)
            except ValueError as e:
                logger.error(f"[orchestrator] Could not normalize '{raw.title}' from {raw.source}: {e}")
                result.errored += 1
                result.note_error(str(e))
                continue

            key = (record.external_id, record.source) if record.external_id else None
            if key and key in seen:
                result.duplicates += 1
                continue

            match = self.deduplicator.find_duplicate(record)
            if match:
                result.duplicates += 1
                self._renew(match, result, config, now)
                continue

            if key:
                seen.add(key)
            candidates.append(record)

        if candidates and self._should_validate_links(config):
            candidates = await self._validate_links(candidates, result)

        for record in candidates:
            record.quality_score = self.scorer.score(record)
            self._persist(record, result, config)

    async def _validate_links(self, records: List[NormalizedRecord], result: SourceRunResult) -> List[NormalizedRecord]:
        width = max(1, self.settings.batch_width)
        kept: List[NormalizedRecord] = []
        for start in range(0, len(records), width):
            batch = records[start:start + width]
            checks = await asyncio.gather(
                *(self.link_validator.validate(record.apply_link) for record in batch),
                return_exceptions=True,
            )
            for record, check in zip(batch, checks):
                if isinstance(check, Exception):
                    # Unexpected validator failure: keep the link as-is
                    logger.error(f"[orchestrator] Link check crashed for {record.apply_link}: {check}")
                    kept.append(record)
                    continue
                if not check.is_usable:
                    result.link_rejected += 1
                    reason = 'dead' if check.is_dead else 'unresolved tracking link'
                    logger.info(f"[orchestrator] Rejected '{record.title}' ({reason}): {record.apply_link}")
                    continue
                if check.clean_url != record.apply_link:
                    record.apply_link = check.clean_url
                kept.append(record)
        return kept

    def _renew(self, match: DuplicateMatch, result: SourceRunResult, config: RunConfig, now: datetime) -> None:
        """Freshness touch on a re-sighted posting"""
        if not match.record_id or config.dry_run:
            return
        try:
            self.store.update(match.record_id, {
                'updated_at': now,
                'expires_at': now + timedelta(days=RENEWAL_DAYS),
                'published': True,
            })
            result.renewed += 1
        except StoreError as e:
            logger.error(f"[orchestrator] Renewal failed for {match.record_id}: {e}")
            result.errored += 1
            result.note_error(str(e))

    def _persist(self, record: NormalizedRecord, result: SourceRunResult, config: RunConfig) -> None:
        if config.dry_run:
            result.persisted += 1
            result.new_job_urls.append(record.apply_link)
            return
        try:
            record.id = self.store.create(record)
        except StoreError as e:
            logger.error(f"[orchestrator] Failed to persist '{record.title}' ({record.source}): {e}")
            result.errored += 1
            result.note_error(str(e))
            return
        result.persisted += 1
        result.new_job_urls.append(record.apply_link)


async def run_ingestion(store: JobStore, config: Optional[RunConfig] = None, **kwargs) -> RunReport:
    """Convenience wrapper used by the CLI and the cron routes"""
    orchestrator = IngestionOrchestrator(store, **kwargs)
    return await orchestrator.run(config)
