"""
Workday career site connector.

Workday sites expose a JSON search endpoint behind every career page:
POST https://{slug}.wd{instance}.myworkdayjobs.com/wday/cxs/{slug}/{site}/jobs
Descriptions need one extra GET per posting, so postings are pre-filtered on
title before the detail call.
"""
from typing import Dict, List, NamedTuple, Optional, Set

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import DIRECT_API, FetchContext, SourceConnector, format_company_name, worth_detail_fetch

PAGE_SIZE = 20
MAX_OFFSET = 200

SEARCH_TERMS = (
    'Psychiatric Nurse Practitioner',
    'PMHNP',
    'Psychiatric Mental Health',
    'Behavioral Health Nurse Practitioner',
    'Psychiatric APRN',
    'Psych NP',
)


class WorkdaySite(NamedTuple):
    slug: str
    instance: int
    site: str
    name: str

    @property
    def host(self) -> str:
        return f"https://{self.slug}.wd{self.instance}.myworkdayjobs.com"

    @property
    def search_url(self) -> str:
        return f"{self.host}/wday/cxs/{self.slug}/{self.site}/jobs"

    def detail_url(self, external_path: str) -> str:
        return f"{self.host}/wday/cxs/{self.slug}/{self.site}{external_path}"

    def apply_url(self, external_path: str) -> str:
        return f"{self.host}/en-US/{self.site}{external_path}"


WORKDAY_SITES = [
    WorkdaySite('trinityhealth', 1, 'jobs', 'Trinity Health'),
    WorkdaySite('memorialhermann', 5, 'External', 'Memorial Hermann'),
    WorkdaySite('sharp', 1, 'External', 'Sharp HealthCare'),
    WorkdaySite('lifestance', 5, 'Careers', 'LifeStance Health'),
    WorkdaySite('chghealthcare', 1, 'External', 'CHG Healthcare'),
    WorkdaySite('aah', 5, 'External', 'Advocate Health'),
    WorkdaySite('ms', 5, 'External', 'Mount Sinai'),
    WorkdaySite('mc', 1, 'External', 'Mayo Clinic'),
    WorkdaySite('adventhealth', 12, 'AH_External_Career_Site', 'AdventHealth'),
    WorkdaySite('allina', 5, 'External', 'Allina Health'),
    WorkdaySite('bannerhealth', 108, 'Careers', 'Banner Health'),
    WorkdaySite('ccf', 1, 'ClevelandClinicCareers', 'Cleveland Clinic'),
    WorkdaySite('geisinger', 5, 'GeisingerExternal', 'Geisinger'),
    WorkdaySite('imh', 108, 'IntermountainCareers', 'Intermountain Health'),
    WorkdaySite('massgeneralbrigham', 1, 'MGBExternal', 'Mass General Brigham'),
    WorkdaySite('multicare', 1, 'multicare', 'MultiCare Health'),
]


def parse_site(entry: str) -> Optional[WorkdaySite]:
    """'slug:instance:site' (from PMHNP_WORKDAY_COMPANIES) -> WorkdaySite"""
    parts = entry.split(':')
    if len(parts) != 3 or not parts[1].isdigit():
        return None
    return WorkdaySite(parts[0], int(parts[1]), parts[2], format_company_name(parts[0]))


class WorkdayConnector(SourceConnector):
    """Workday CXS search API"""

    kind = DIRECT_API
    batch_width = 5
    batch_pause_seconds = 0.3
    request_delay_seconds = 0.2

    def __init__(self):
        super().__init__(name="workday", priority=75)

    def work_units(self, context: FetchContext) -> List[WorkdaySite]:
        overrides = [parse_site(entry) for entry in context.settings.companies_for(self.name)]
        overrides = [site for site in overrides if site]
        return overrides or list(WORKDAY_SITES)

    async def _fetch_description(self, site: WorkdaySite, external_path: str, context: FetchContext) -> str:
        try:
            data = await context.http.fetch_json(site.detail_url(external_path), source=self.name)
        except SourceFetchError as e:
            self.logger.debug(f"[workday] {site.name}: no description for {external_path}: {e}")
            return ''
        return ((data or {}).get('jobPostingInfo') or {}).get('jobDescription') or ''

    async def fetch_unit(self, site: WorkdaySite, context: FetchContext) -> List[RawRecord]:
        records: List[RawRecord] = []
        seen_paths: Set[str] = set()

        for search_text in SEARCH_TERMS:
            offset = 0
            while offset < MAX_OFFSET:
                try:
                    data = await context.http.fetch_json(
                        site.search_url,
                        method="POST",
                        json_data={'limit': PAGE_SIZE, 'offset': offset, 'searchText': search_text, 'appliedFacets': {}},
                        source=self.name,
                    )
                except SourceFetchError as e:
                    self.logger.warning(f"[workday] {site.name}: search '{search_text}' failed: {e}")
                    break

                postings = data.get('jobPostings') or []
                total = data.get('total') or 0
                for posting in postings:
                    path = posting.get('externalPath')
                    if not path or path in seen_paths:
                        continue
                    seen_paths.add(path)
                    if not worth_detail_fetch(posting.get('title')):
                        continue
                    description = await self._fetch_description(site, path, context)
                    await context.sleep(self.request_delay_seconds)
                    records.append(self.map_posting(posting, site, description))

                offset += PAGE_SIZE
                if not postings or offset >= total or len(postings) < PAGE_SIZE:
                    break

        self.logger.info(f"[workday] {site.name}: {len(records)} candidate postings ({len(seen_paths)} searched)")
        return records

    def map_posting(self, posting: Dict, site: WorkdaySite, description: str) -> RawRecord:
        path = posting['externalPath']
        job_id = path.rstrip('/').split('/')[-1] or path
        return self.record(
            external_id=f"workday-{site.slug}-{job_id}",
            title=posting.get('title'),
            employer=site.name,
            location=posting.get('locationsText') or 'United States',
            description=description,
            apply_url=site.apply_url(path),
        )
