"""
Greenhouse job board connector.

Public board API, one request per company:
https://boards-api.greenhouse.io/v1/boards/{slug}/jobs?content=true
"""
from typing import Dict, List

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import DIRECT_API, FetchContext, SourceConnector, format_company_name

API_URL = "https://boards-api.greenhouse.io/v1/boards/{slug}/jobs"

GREENHOUSE_COMPANIES = [
    'sondermind',
    'headway',
    'modernhealth',
    'mantrahealth',
    'cerebral',
    'twochairs',
    'talkspace',
    'ayahealthcare',
    'amwell',
    'octave',
    'growtherapy',
    'blueskytelepsych',
    'bicyclehealth',
    'signifyhealth',
    'valerahealth',
    'charliehealth',
    'blackbirdhealth',
    'ophelia',
    'springhealth66',
    'omadahealth',
    'brave',
    'betterhelp',
    'firsthand',
    'compasspathways',
    'alma',
    'foresightmentalhealth',
    'meruhealth',
    'mavenclinicproviders',
]

COMPANY_NAMES: Dict[str, str] = {
    'sondermind': 'SonderMind',
    'modernhealth': 'Modern Health',
    'mantrahealth': 'Mantra Health',
    'twochairs': 'Two Chairs',
    'ayahealthcare': 'Aya Healthcare',
    'growtherapy': 'Grow Therapy',
    'blueskytelepsych': 'Blue Sky Telepsych',
    'bicyclehealth': 'Bicycle Health',
    'signifyhealth': 'Signify Health',
    'valerahealth': 'Valera Health',
    'charliehealth': 'Charlie Health',
    'blackbirdhealth': 'Blackbird Health',
    'springhealth66': 'Spring Health',
    'omadahealth': 'Omada Health',
    'brave': 'Brave Health',
    'betterhelp': 'BetterHelp',
    'compasspathways': 'COMPASS Pathways',
    'foresightmentalhealth': 'Foresight Mental Health',
    'meruhealth': 'Meru Health',
    'mavenclinicproviders': 'Maven Clinic',
}


class GreenhouseConnector(SourceConnector):
    """Greenhouse boards API"""

    kind = DIRECT_API
    batch_width = 5
    batch_pause_seconds = 0.5

    def __init__(self):
        super().__init__(name="greenhouse", priority=90)

    def work_units(self, context: FetchContext) -> List[str]:
        return context.settings.companies_for(self.name) or list(GREENHOUSE_COMPANIES)

    async def fetch_unit(self, slug: str, context: FetchContext) -> List[RawRecord]:
        try:
            data = await context.http.fetch_json(API_URL.format(slug=slug), params={'content': 'true'}, source=self.name)
        except SourceFetchError as e:
            if e.status_code == 404:
                self.logger.warning(f"[greenhouse] {slug}: board not found (404)")
                return []
            raise

        company = COMPANY_NAMES.get(slug) or format_company_name(slug)
        jobs = data.get('jobs') or []
        self.logger.info(f"[greenhouse] {slug}: {len(jobs)} jobs fetched")
        return [self.map_job(job, slug, company) for job in jobs]

    def map_job(self, job: Dict, slug: str, company: str) -> RawRecord:
        location = (job.get('location') or {}).get('name')
        if not location:
            offices = job.get('offices') or []
            location = offices[0].get('name') if offices else 'Remote'
        return self.record(
            external_id=f"greenhouse-{slug}-{job.get('id')}",
            title=job.get('title'),
            employer=company,
            location=location,
            description=job.get('content') or '',
            apply_url=job.get('absolute_url'),
            posted_at=job.get('updated_at'),
        )
