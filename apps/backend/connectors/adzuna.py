"""
Adzuna search API connector.
"""
from typing import Dict, List, Optional

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import PAGINATED_API, FetchContext, SearchUnit, SourceConnector, build_search_matrix

API_URL = "https://api.adzuna.com/v1/api/jobs/us/search/{page}"
RESULTS_PER_PAGE = 50
MAX_DAYS_OLD = 7


def map_contract(contract_time: Optional[str], contract_type: Optional[str]) -> Optional[str]:
    if contract_time == 'full_time':
        return 'Full-Time'
    if contract_time == 'part_time':
        return 'Part-Time'
    if contract_type == 'contract':
        return 'Contract'
    if contract_type == 'permanent':
        return 'Full-Time'
    return None


class AdzunaConnector(SourceConnector):
    """Adzuna US search (paid, 429s are retried)"""

    kind = PAGINATED_API
    batch_width = 3
    batch_pause_seconds = 0.3
    request_delay_seconds = 0.5

    def __init__(self):
        super().__init__(name="adzuna", priority=60)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        if context.settings.adzuna_app_id and context.settings.adzuna_app_key:
            return None
        return 'ADZUNA_APP_ID/ADZUNA_APP_KEY'

    def work_units(self, context: FetchContext) -> List[SearchUnit]:
        return build_search_matrix(context.queries)

    async def fetch_unit(self, unit: SearchUnit, context: FetchContext) -> List[RawRecord]:
        records: List[RawRecord] = []
        for page in range(1, context.pages_per_query + 1):
            params = {
                'app_id': context.settings.adzuna_app_id,
                'app_key': context.settings.adzuna_app_key,
                'what': unit.query,
                'results_per_page': RESULTS_PER_PAGE,
                'max_days_old': MAX_DAYS_OLD,
                'sort_by': 'date',
            }
            if unit.location and unit.location != 'Remote':
                params['where'] = unit.location
            try:
                data = await context.http.fetch_json(API_URL.format(page=page), params=params, source=self.name, paid=True)
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(unit, page, e, context)
                break
            jobs = (data or {}).get('results') or []
            self.logger.info(f"[adzuna] '{unit.query}' {unit.location or 'US'} page {page}: {len(jobs)} jobs")
            records.extend(self.map_job(job) for job in jobs if job.get('redirect_url'))
            if len(jobs) < RESULTS_PER_PAGE:
                break
            await context.sleep(self.request_delay_seconds)
        return records

    def map_job(self, job: Dict) -> RawRecord:
        return self.record(
            external_id=f"adzuna_{job.get('id')}",
            title=job.get('title'),
            employer=(job.get('company') or {}).get('display_name') or 'Company Not Listed',
            location=(job.get('location') or {}).get('display_name') or 'United States',
            description=job.get('description') or '',
            apply_url=job.get('redirect_url'),
            min_salary=job.get('salary_min'),
            max_salary=job.get('salary_max'),
            salary_period='annual' if job.get('salary_min') else None,
            salary_text='estimated' if str(job.get('salary_is_predicted')) == '1' else None,
            job_type=map_contract(job.get('contract_time'), job.get('contract_type')),
            posted_at=job.get('created'),
        )
