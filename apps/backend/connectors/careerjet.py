"""
Careerjet public search API connector.

Needs only an affiliate id (CAREERJET_AFFILIATE_ID). Results carry a snippet
and a free-text salary; postings have no stable id, so the id is derived from
the posting URL.
"""
import hashlib
from typing import Dict, List, Optional, Set

from core.errors import SourceFetchError
from core.salary_normalizer import extract_salary_from_text
from pipeline.models import RawRecord

from .base import PAGINATED_API, FetchContext, SourceConnector

API_URL = "https://public.api.careerjet.net/search"
PAGE_SIZE = 50
DEFAULT_LOCATION = 'United States'

SEARCH_TERMS = ['PMHNP', 'Psychiatric Nurse Practitioner', 'Mental Health Nurse Practitioner']


def external_id_for(url: str) -> str:
    return 'careerjet_' + hashlib.sha1(url.encode('utf-8')).hexdigest()[:16]


class CareerjetConnector(SourceConnector):
    """Careerjet keyword search"""

    kind = PAGINATED_API
    batch_width = 1
    batch_pause_seconds = 1.5
    request_delay_seconds = 1.5

    def __init__(self):
        super().__init__(name="careerjet", priority=50)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        return None if context.settings.careerjet_affiliate_id else 'CAREERJET_AFFILIATE_ID'

    def work_units(self, context: FetchContext) -> List[str]:
        return list(context.queries or SEARCH_TERMS)

    async def _fetch_page(self, query: str, page: int, context: FetchContext) -> Dict:
        data = await context.http.fetch_json(
            API_URL,
            params={
                'locale_code': 'en_US',
                'keywords': query,
                'location': DEFAULT_LOCATION,
                'affid': context.settings.careerjet_affiliate_id,
                'page': page,
                'pagesize': PAGE_SIZE,
                'sort': 'date',
                'user_ip': context.settings.careerjet_user_ip,
                'user_agent': context.settings.user_agent,
            },
            source=self.name,
        )
        data = data or {}
        if data.get('type') == 'ERROR':
            raise SourceFetchError(f"API error: {data.get('error') or 'unknown'}", source=self.name)
        return data

    async def fetch_unit(self, query: str, context: FetchContext) -> List[RawRecord]:
        records: List[RawRecord] = []
        seen_urls: Set[str] = set()

        for page in range(1, context.pages_per_query + 1):
            try:
                data = await self._fetch_page(query, page, context)
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(query, page, e, context)
                break

            jobs = data.get('jobs') or []
            self.logger.info(f"[careerjet] '{query}' page {page}: {len(jobs)} jobs")
            for job in jobs:
                url = job.get('url')
                if not url or url in seen_urls:
                    continue
                seen_urls.add(url)
                records.append(self.map_job(job))
            if not jobs or page >= (data.get('pages') or 0):
                break
            await context.sleep(self.request_delay_seconds)
        return records

    def map_job(self, job: Dict) -> RawRecord:
        salary_text = (job.get('salary') or '').strip() or None
        low, high, period = extract_salary_from_text(salary_text)
        return self.record(
            external_id=external_id_for(job['url']),
            title=job.get('title'),
            employer=job.get('company') or 'Company Not Listed',
            location=job.get('locations') or DEFAULT_LOCATION,
            description=job.get('description') or '',
            apply_url=job['url'],
            min_salary=low,
            max_salary=high,
            salary_period=period,
            salary_text=salary_text,
            source_site=job.get('site'),
            posted_at=job.get('date'),
        )
