"""
SmartRecruiters postings connector.

The public API lists a company's postings 100 at a time:
https://api.smartrecruiters.com/v1/companies/{slug}/postings
Descriptions live on the per-posting detail endpoint, so only titles that pass
the prefilter get the extra call.
"""
from typing import Dict, List

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import DIRECT_API, FetchContext, SourceConnector, format_company_name, worth_detail_fetch

LIST_URL = "https://api.smartrecruiters.com/v1/companies/{slug}/postings"
DETAIL_URL = "https://api.smartrecruiters.com/v1/companies/{slug}/postings/{posting_id}"
APPLY_URL = "https://jobs.smartrecruiters.com/{slug}/{posting_id}"
PAGE_SIZE = 100
MAX_PAGES = 10

DESCRIPTION_SECTIONS = ('jobDescription', 'qualifications', 'additionalInformation', 'companyDescription')

COMPANY_NAMES: Dict[str, str] = {
    'karecruitinginc': 'K.A. Recruiting',
    'oleskyassociates': 'Olesky Associates',
    'newyorkpsychotherapyandcounselingcenter': 'NY Psychotherapy & Counseling',
    'internationalsosgovernmentmedicalservices': 'International SOS',
    'kittitasvalleyhealthcare': 'Kittitas Valley Healthcare',
    'mascmedicalrecruitmentfirm': 'MASC Medical',
}

SMARTRECRUITERS_COMPANIES = list(COMPANY_NAMES)


def format_location(location: Dict) -> str:
    parts = [part for part in (location.get('city'), location.get('region')) if part]
    if parts:
        return ', '.join(parts)
    return 'Remote' if location.get('remote') else 'United States'


class SmartRecruitersConnector(SourceConnector):
    """SmartRecruiters public postings API"""

    kind = DIRECT_API
    batch_width = 3
    batch_pause_seconds = 0.5
    request_delay_seconds = 0.1

    def __init__(self):
        super().__init__(name="smartrecruiters", priority=65)

    def work_units(self, context: FetchContext) -> List[str]:
        return context.settings.companies_for(self.name) or list(SMARTRECRUITERS_COMPANIES)

    async def _fetch_description(self, slug: str, posting_id: str, context: FetchContext) -> str:
        try:
            data = await context.http.fetch_json(DETAIL_URL.format(slug=slug, posting_id=posting_id), source=self.name)
        except SourceFetchError as e:
            self.logger.debug(f"[smartrecruiters] {slug}: no description for {posting_id}: {e}")
            return ''
        sections = ((data or {}).get('jobAd') or {}).get('sections') or {}
        parts = [(sections.get(name) or {}).get('text') for name in DESCRIPTION_SECTIONS]
        return '\n\n'.join(part for part in parts if part)

    async def fetch_unit(self, slug: str, context: FetchContext) -> List[RawRecord]:
        records: List[RawRecord] = []
        company = COMPANY_NAMES.get(slug) or format_company_name(slug)
        offset = 0
        total = 0

        for page in range(1, MAX_PAGES + 1):
            try:
                data = await context.http.fetch_json(
                    LIST_URL.format(slug=slug),
                    params={'limit': PAGE_SIZE, 'offset': offset},
                    source=self.name,
                )
            except SourceFetchError as e:
                if page == 1:
                    raise
                self.page_failed(slug, page, e, context)
                break

            postings = (data or {}).get('content') or []
            total = (data or {}).get('totalFound') or 0
            for posting in postings:
                if not worth_detail_fetch(posting.get('name')):
                    continue
                description = await self._fetch_description(slug, posting.get('id'), context)
                await context.sleep(self.request_delay_seconds)
                records.append(self.map_posting(posting, slug, company, description))

            offset += len(postings)
            if not postings or offset >= total:
                break

        self.logger.info(f"[smartrecruiters] {slug}: {len(records)} candidate postings ({total} total)")
        return records

    def map_posting(self, posting: Dict, slug: str, company: str, description: str) -> RawRecord:
        location = posting.get('location') or {}
        return self.record(
            external_id=f"smartrecruiters-{slug}-{posting.get('id')}",
            title=posting.get('name'),
            employer=company,
            location=format_location(location),
            description=description,
            apply_url=APPLY_URL.format(slug=slug, posting_id=posting.get('id')),
            is_remote=location.get('remote'),
            job_type=(posting.get('typeOfEmployment') or {}).get('label'),
            posted_at=posting.get('releasedDate'),
        )
