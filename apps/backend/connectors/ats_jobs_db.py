"""
ATS Jobs DB (RapidAPI) connector.

The API indexes postings across many ATS platforms (Workday, Paycom, iCIMS,
...) so it reaches employers without a dedicated connector.
"""
from datetime import timedelta
from typing import Dict, List, Optional

from core.errors import SourceFetchError
from pipeline.models import RawRecord, utcnow

from .base import PAGINATED_API, FetchContext, SourceConnector

API_URL = "https://ats-jobs-db.p.rapidapi.com/v1/jobs"
API_HOST = "ats-jobs-db.p.rapidapi.com"
PAGE_SIZE = 25
MAX_PAGES_PER_TERM = 20
POSTED_WITHIN_DAYS = 90

SEARCH_TERMS = ['PMHNP', 'Psychiatric Nurse Practitioner']

EMPLOYMENT_TYPES = {
    'full_time': 'Full-Time',
    'part_time': 'Part-Time',
    'contract': 'Contract',
    'temporary': 'Per Diem',
}


def format_location(locations: List[Dict], is_remote: bool) -> str:
    if is_remote:
        return 'Remote'
    if not locations:
        return 'United States'
    first = locations[0]
    if first.get('city') and first.get('state'):
        return f"{first['city']}, {first['state']}"
    return first.get('location') or 'United States'


class ATSJobsDBConnector(SourceConnector):
    """Cross-ATS search (paid, 429s are retried)"""

    kind = PAGINATED_API
    batch_width = 1
    batch_pause_seconds = 1.0
    request_delay_seconds = 0.5

    def __init__(self):
        super().__init__(name="ats_jobs_db", priority=45)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        return None if context.settings.rapidapi_key else 'RAPIDAPI_KEY'

    def work_units(self, context: FetchContext) -> List[str]:
        return list(context.queries or SEARCH_TERMS)

    async def fetch_unit(self, query: str, context: FetchContext) -> List[RawRecord]:
        headers = {'x-rapidapi-key': context.settings.rapidapi_key or '', 'x-rapidapi-host': API_HOST}
        posted_after = (utcnow() - timedelta(days=POSTED_WITHIN_DAYS)).strftime('%Y-%m-%dT00:00:00Z')
        records: List[RawRecord] = []
        seen_ids = set()

        for page in range(1, MAX_PAGES_PER_TERM + 1):
            try:
                data = await context.http.fetch_json(
                    API_URL,
                    headers=headers,
                    params={
                        'page_size': PAGE_SIZE,
                        'location': 'United States',
                        'q': query,
                        'page': page,
                        'posted_after': posted_after,
                    },
                    source=self.name,
                    paid=True,
                )
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(query, page, e, context)
                break
            jobs = (data or {}).get('jobs') or []
            self.logger.info(f"[ats_jobs_db] '{query}' page {page}: {len(jobs)} jobs")
            for job in jobs:
                if job.get('id') in seen_ids:
                    continue
                seen_ids.add(job.get('id'))
                records.append(self.map_job(job))
            if len(jobs) < PAGE_SIZE:
                break
            await context.sleep(self.request_delay_seconds)
        return records

    def map_job(self, job: Dict) -> RawRecord:
        company = (job.get('company') or {}).get('name') or 'Company Not Listed'
        if ' ' not in company:
            company = company[:1].upper() + company[1:]
        employment_type = job.get('employment_type')
        return self.record(
            external_id=f"atsjobsdb-{job.get('source') or 'ats'}-{job.get('id')}",
            title=job.get('title'),
            employer=company,
            location=format_location(job.get('locations') or [], bool(job.get('is_remote'))),
            description=job.get('description') or '',
            apply_url=job.get('apply_url') or job.get('listing_url'),
            is_remote=job.get('is_remote'),
            job_type=EMPLOYMENT_TYPES.get(employment_type, employment_type),
            source_site=job.get('source'),
            posted_at=job.get('date_posted'),
            expires_at=job.get('valid_through'),
        )
