"""
Base connector interface for job sources.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional

from bs4 import BeautifulSoup

from app.config import Settings
from core.net import HTTPClient
from core.rule_tables import SEARCH_LOCATIONS, SEARCH_QUERIES
from pipeline.models import RawRecord

logger = logging.getLogger(__name__)

DIRECT_API = 'direct_api'
PAGINATED_API = 'paginated_api'
HTML = 'html'
CONNECTOR_KINDS = (DIRECT_API, PAGINATED_API, HTML)

# The matrix fans this query out over every state.
PRIMARY_QUERY = 'PMHNP'

# Titles worth an extra per-posting detail request.
DETAIL_TITLE_TERMS = ('pmhnp', 'psych', 'mental health', 'behavioral health', 'nurse practitioner')


class SearchUnit(NamedTuple):
    """One keyword search, optionally scoped to a location."""
    query: str
    location: Optional[str] = None


def build_search_matrix(queries: Optional[List[str]] = None) -> List[SearchUnit]:
    """
    Default keyword x location matrix.

    Every query nationwide, plus the primary query in every state and remote.
    An explicit query list replaces the matrix and runs nationwide only.
    """
    if queries:
        return [SearchUnit(query) for query in queries]
    units = [SearchUnit(query) for query in SEARCH_QUERIES]
    units.extend(SearchUnit(PRIMARY_QUERY, location) for location in SEARCH_LOCATIONS)
    return units


@dataclass
class FetchContext:
    """Everything a connector needs for one run"""
    http: HTTPClient
    settings: Settings
    queries: Optional[List[str]] = None
    pages_per_query: int = 3
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    extra: Dict[str, Any] = field(default_factory=dict)
    # Later pages that failed after earlier pages of the same unit succeeded
    page_errors: List[str] = field(default_factory=list)

    def drain_page_errors(self) -> List[str]:
        errors, self.page_errors = self.page_errors, []
        return errors


def worth_detail_fetch(title: Optional[str]) -> bool:
    lower = (title or '').lower()
    return any(term in lower for term in DETAIL_TITLE_TERMS)


def format_company_name(slug: str) -> str:
    """'array-behavioral-care' -> 'Array Behavioral Care'"""
    return ' '.join(word[:1].upper() + word[1:] for word in slug.replace('_', '-').split('-') if word)


class SourceConnector(ABC):
    """
    Base class for source connectors.

    A connector splits its source into units of work (companies, queries,
    URLs) so the orchestrator can run them in paced batches under a budget.
    Each connector:
    1. Lists its units of work for a run
    2. Fetches one unit and maps it to RawRecords
    3. Reports whether its credentials are configured
    """

    kind = DIRECT_API
    batch_width = 5
    batch_pause_seconds = 0.3
    # Pause between pages or sub-requests inside one unit
    request_delay_seconds = 0.0

    def __init__(self, name: str, priority: int = 50):
        """
        Initialize connector.

        Args:
            name: Connector name, also stored as the record source
            priority: Run order when no explicit source list is given (higher first)
        """
        self.name = name
        self.priority = priority
        self.logger = logging.getLogger(f"{__name__}.{name}")

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        """Name of the missing setting that disables this connector, or None."""
        return None

    @abstractmethod
    def work_units(self, context: FetchContext) -> List[Any]:
        pass

    @abstractmethod
    async def fetch_unit(self, unit: Any, context: FetchContext) -> List[RawRecord]:
        """
        Fetch one unit of work.

        Raises:
            SourceFetchError: when the unit could not be fetched at all
        """

    async def fetch(self, context: FetchContext) -> List[RawRecord]:
        """Fetch every unit in paced batches; failed units are logged and skipped."""
        missing = self.missing_configuration(context)
        if missing:
            self.logger.warning(f"[{self.name}] {missing} not configured, skipping")
            return []

        units = self.work_units(context)
        records: List[RawRecord] = []
        for start in range(0, len(units), self.batch_width):
            batch = units[start:start + self.batch_width]
            results = await asyncio.gather(*(self.fetch_unit(unit, context) for unit in batch), return_exceptions=True)
            for unit, result in zip(batch, results):
                if isinstance(result, Exception):
                    self.logger.error(f"[{self.name}] Unit {unit!r} failed: {result}")
                    continue
                records.extend(result)
            context.drain_page_errors()
            if start + self.batch_width < len(units):
                await context.sleep(self.batch_pause_seconds)
        return records

    def page_failed(self, unit: Any, page: int, error: Exception, context: FetchContext) -> None:
        """Report a failed page; the unit keeps the pages fetched before it."""
        message = f"{unit!r} page {page}: {error}"
        self.logger.error(f"[{self.name}] {message}, keeping earlier pages")
        context.page_errors.append(message)

    def record(self, **fields) -> RawRecord:
        return RawRecord(source=self.name, **fields)

    def get_soup(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html, 'lxml')

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name}, kind={self.kind})>"
