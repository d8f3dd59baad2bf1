"""
JSearch (RapidAPI) connector.

JSearch aggregates Google for Jobs, so each posting carries the publisher it
was found on (Indeed, LinkedIn, ...) which is kept as source_site.
"""
from typing import Dict, List, Optional

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import PAGINATED_API, FetchContext, SearchUnit, SourceConnector, build_search_matrix

API_URL = "https://jsearch.p.rapidapi.com/search"
API_HOST = "jsearch.p.rapidapi.com"

SALARY_PERIODS = {
    'YEAR': 'annual',
    'YEARLY': 'annual',
    'ANNUAL': 'annual',
    'HOUR': 'hourly',
    'HOURLY': 'hourly',
    'MONTH': 'monthly',
    'MONTHLY': 'monthly',
    'WEEK': 'weekly',
    'WEEKLY': 'weekly',
}


def build_location(job: Dict) -> str:
    city, state = job.get('job_city'), job.get('job_state')
    if job.get('job_is_remote'):
        return f"{city}, {state} (Remote)" if city and state else 'Remote'
    if city and state:
        return f"{city}, {state}"
    return state or 'United States'


def build_query(unit: SearchUnit) -> str:
    if not unit.location:
        return unit.query
    if unit.location == 'Remote':
        return f"Remote {unit.query}"
    return f"{unit.query} in {unit.location}"


class JSearchConnector(SourceConnector):
    """JSearch search API (paid, 429s are retried)"""

    kind = PAGINATED_API
    batch_width = 3
    batch_pause_seconds = 0.3
    request_delay_seconds = 0.3

    def __init__(self):
        super().__init__(name="jsearch", priority=50)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        return None if context.settings.rapidapi_key else 'RAPIDAPI_KEY'

    def work_units(self, context: FetchContext) -> List[SearchUnit]:
        return build_search_matrix(context.queries)

    async def fetch_unit(self, unit: SearchUnit, context: FetchContext) -> List[RawRecord]:
        headers = {'X-RapidAPI-Key': context.settings.rapidapi_key or '', 'X-RapidAPI-Host': API_HOST}
        query = build_query(unit)
        records: List[RawRecord] = []
        for page in range(1, context.pages_per_query + 1):
            try:
                data = await context.http.fetch_json(
                    API_URL,
                    headers=headers,
                    params={
                        'query': query,
                        'page': page,
                        'num_pages': 1,
                        'date_posted': 'month',
                        'country': 'us',
                        'language': 'en',
                    },
                    source=self.name,
                    paid=True,
                )
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(unit, page, e, context)
                break
            jobs = (data or {}).get('data') or []
            self.logger.info(f"[jsearch] '{query}' page {page}: {len(jobs)} results")
            if not jobs:
                break
            records.extend(self.map_job(job) for job in jobs)
            if page < context.pages_per_query:
                await context.sleep(self.request_delay_seconds)
        return records

    def map_job(self, job: Dict) -> RawRecord:
        period = SALARY_PERIODS.get((job.get('job_salary_period') or '').upper())
        return self.record(
            external_id=f"jsearch_{job.get('job_id')}",
            title=job.get('job_title'),
            employer=job.get('employer_name') or 'Company Not Listed',
            location=build_location(job),
            description=job.get('job_description') or '',
            apply_url=job.get('job_apply_link'),
            source_site=job.get('job_publisher') or 'Google Jobs',
            min_salary=job.get('job_min_salary'),
            max_salary=job.get('job_max_salary'),
            salary_period=period,
            is_remote=job.get('job_is_remote'),
            job_type=job.get('job_employment_type'),
            posted_at=job.get('job_posted_at_datetime_utc'),
            expires_at=job.get('job_offer_expiration_datetime_utc'),
        )
