"""
USAJobs search API connector (federal postings: VA, BOP, IHS).
"""
from typing import Dict, List, Optional

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import PAGINATED_API, FetchContext, SourceConnector

API_URL = "https://data.usajobs.gov/api/search"
RESULTS_PER_PAGE = 100
MAX_PAGES = 5
DEFAULT_USER_AGENT = "pmhnp-jobs@example.com"

SEARCH_KEYWORDS = [
    'Psychiatric Nurse Practitioner',
    'PMHNP',
    'Psychiatric Mental Health Nurse Practitioner',
    'Psychiatric APRN',
    'Mental Health Nurse Practitioner',
    'Psychiatric NP',
    'Behavioral Health Nurse Practitioner',
    'Nurse Practitioner Psychiatry',
    'Psychiatric ARNP',
    'Telehealth Psychiatric Nurse Practitioner',
    'Correctional Psychiatric Nurse Practitioner',
    'Outpatient PMHNP',
]

RATE_INTERVALS = {
    'PA': 'annual',
    'PH': 'hourly',
    'PD': 'daily',
    'BW': 'weekly',
    'PM': 'monthly',
}


def format_locations(locations: List[Dict]) -> str:
    names = [loc.get('LocationName') for loc in locations if loc.get('LocationName')]
    if not names:
        return 'United States'
    if len(names) <= 2:
        return '; '.join(names)
    return f"{'; '.join(names[:2])} + {len(names) - 2} more"


class USAJobsConnector(SourceConnector):
    """USAJobs search API (keyword searches, paginated)"""

    kind = PAGINATED_API
    batch_width = 3
    batch_pause_seconds = 0.5
    request_delay_seconds = 0.5

    def __init__(self):
        super().__init__(name="usajobs", priority=70)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        return None if context.settings.usajobs_api_key else 'USAJOBS_API_KEY'

    def work_units(self, context: FetchContext) -> List[str]:
        return list(context.queries or SEARCH_KEYWORDS)

    def _headers(self, context: FetchContext) -> Dict[str, str]:
        return {
            'Authorization-Key': context.settings.usajobs_api_key or '',
            'User-Agent': context.settings.usajobs_user_agent or DEFAULT_USER_AGENT,
            'Host': 'data.usajobs.gov',
        }

    async def fetch_unit(self, keyword: str, context: FetchContext) -> List[RawRecord]:
        records: List[RawRecord] = []
        for page in range(1, MAX_PAGES + 1):
            try:
                data = await context.http.fetch_json(
                    API_URL,
                    headers=self._headers(context),
                    params={'Keyword': keyword, 'ResultsPerPage': RESULTS_PER_PAGE, 'Page': page},
                    source=self.name,
                )
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(keyword, page, e, context)
                break
            items = ((data or {}).get('SearchResult') or {}).get('SearchResultItems') or []
            self.logger.info(f"[usajobs] '{keyword}' page {page}: {len(items)} results")
            records.extend(self.map_item(item) for item in items)
            if len(items) < RESULTS_PER_PAGE:
                break
            await context.sleep(self.request_delay_seconds)
        return records

    def map_item(self, item: Dict) -> RawRecord:
        job = item.get('MatchedObjectDescriptor') or {}
        details = ((job.get('UserArea') or {}).get('Details')) or {}
        remuneration = (job.get('PositionRemuneration') or [{}])[0]

        duties = details.get('MajorDuties') or []
        if isinstance(duties, list):
            duties = '\n'.join(duties)
        parts = [details.get('JobSummary'), duties, details.get('Requirements'), details.get('Education')]
        description = '\n\n'.join(part for part in parts if part)

        return self.record(
            external_id=job.get('PositionID') or item.get('MatchedObjectId'),
            title=job.get('PositionTitle'),
            employer=job.get('OrganizationName') or job.get('DepartmentName'),
            location=format_locations(job.get('PositionLocation') or []),
            description=description,
            apply_url=details.get('ApplyOnlineUrl') or job.get('PositionURI'),
            min_salary=remuneration.get('MinimumRange'),
            max_salary=remuneration.get('MaximumRange'),
            salary_period=RATE_INTERVALS.get(remuneration.get('RateIntervalCode')),
            is_remote=bool(details.get('RemoteIndicator') or details.get('TeleworkEligible')),
            posted_at=job.get('PublicationStartDate'),
            expires_at=job.get('ApplicationCloseDate'),
        )
