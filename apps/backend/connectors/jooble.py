"""
Jooble search API connector.

Jooble returns a snippet instead of a full description and salary as free
text ("$60 - $75 per hour"); the text is parsed into bounds here.
"""
from typing import Dict, List, Optional

from core.errors import SourceFetchError
from core.salary_normalizer import extract_salary_from_text
from pipeline.models import RawRecord

from .base import PAGINATED_API, FetchContext, SearchUnit, SourceConnector, build_search_matrix

API_URL = "https://jooble.org/api/{key}"
FULL_PAGE_SIZE = 20
DEFAULT_LOCATION = 'United States'


class JoobleConnector(SourceConnector):
    """Jooble keyword search"""

    kind = PAGINATED_API
    batch_width = 2
    batch_pause_seconds = 1.0
    request_delay_seconds = 1.0

    def __init__(self):
        super().__init__(name="jooble", priority=55)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        return None if context.settings.jooble_api_key else 'JOOBLE_API_KEY'

    def work_units(self, context: FetchContext) -> List[SearchUnit]:
        return build_search_matrix(context.queries)

    async def fetch_unit(self, unit: SearchUnit, context: FetchContext) -> List[RawRecord]:
        records: List[RawRecord] = []
        location = unit.location if unit.location and unit.location != 'Remote' else DEFAULT_LOCATION
        keywords = unit.query if unit.location != 'Remote' else f"Remote {unit.query}"
        for page in range(1, context.pages_per_query + 1):
            try:
                data = await context.http.fetch_json(
                    API_URL.format(key=context.settings.jooble_api_key),
                    method="POST",
                    json_data={'keywords': keywords, 'location': location, 'page': page},
                    source=self.name,
                )
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(unit, page, e, context)
                break
            jobs = (data or {}).get('jobs') or []
            self.logger.info(f"[jooble] '{keywords}' {location} page {page}: {len(jobs)} jobs")
            records.extend(self.map_job(job) for job in jobs)
            if len(jobs) < FULL_PAGE_SIZE:
                break
            await context.sleep(self.request_delay_seconds)
        return records

    def map_job(self, job: Dict) -> RawRecord:
        salary_text = (job.get('salary') or '').strip() or None
        low, high, period = extract_salary_from_text(salary_text)
        return self.record(
            external_id=f"jooble_{job.get('id')}",
            title=job.get('title'),
            employer=job.get('company') or 'Company Not Listed',
            location=job.get('location') or DEFAULT_LOCATION,
            description=job.get('snippet') or '',
            apply_url=job.get('link'),
            min_salary=low,
            max_salary=high,
            salary_period=period,
            salary_text=salary_text,
            job_type=job.get('type'),
            source_site=job.get('source'),
            posted_at=job.get('updated'),
        )
