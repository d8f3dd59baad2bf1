"""
Lever postings connector.

https://api.lever.co/v0/postings/{slug} returns every open posting of a company.
"""
from typing import Dict, List

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import DIRECT_API, FetchContext, SourceConnector, format_company_name

API_URL = "https://api.lever.co/v0/postings/{slug}"

LEVER_COMPANIES = [
    'lifestance',
    'talkiatry',
    'includedhealth',
    'lyrahealth',
    'carbonhealth',
    'prosper',
    'bighealth',
    'genesis',
    'sesame',
    'mindful',
    'athenapsych',
    'seven-starling',
    'beckley-clinical',
    'synapticure',
    'arundellodge',
    'ro',
    'advocate',
    'guidestareldercare',
    'next-health',
]

COMPANY_NAMES: Dict[str, str] = {
    'lifestance': 'LifeStance Health',
    'includedhealth': 'Included Health',
    'lyrahealth': 'Lyra Health',
    'carbonhealth': 'Carbon Health',
    'bighealth': 'Big Health',
    'mindful': 'Mindful Haven',
    'athenapsych': 'AthenaPsych',
    'synapticure': 'SynaptiCure',
    'arundellodge': 'Arundel Lodge',
    'ro': 'Ro Health',
    'advocate': 'Advocate Health',
    'guidestareldercare': 'GuideStar Eldercare',
}


class LeverConnector(SourceConnector):
    """Lever postings API"""

    kind = DIRECT_API
    batch_width = 10
    batch_pause_seconds = 0.2

    def __init__(self):
        super().__init__(name="lever", priority=85)

    def work_units(self, context: FetchContext) -> List[str]:
        return context.settings.companies_for(self.name) or list(LEVER_COMPANIES)

    async def fetch_unit(self, slug: str, context: FetchContext) -> List[RawRecord]:
        try:
            postings = await context.http.fetch_json(API_URL.format(slug=slug), source=self.name)
        except SourceFetchError as e:
            if e.status_code == 404:
                self.logger.warning(f"[lever] {slug}: company not found (404)")
                return []
            raise

        company = COMPANY_NAMES.get(slug) or format_company_name(slug)
        self.logger.info(f"[lever] {slug}: {len(postings or [])} postings fetched")
        return [self.map_posting(posting, slug, company) for posting in postings or []]

    def map_posting(self, posting: Dict, slug: str, company: str) -> RawRecord:
        parts = [posting.get('descriptionPlain') or posting.get('description')]
        for section in posting.get('lists') or []:
            parts.append(f"{section.get('text', '')}\n{section.get('content', '')}")
        parts.append(posting.get('additionalPlain') or posting.get('additional'))

        categories = posting.get('categories') or {}
        location = categories.get('location') or 'Remote'
        return self.record(
            external_id=f"lever-{slug}-{posting.get('id')}",
            title=posting.get('text'),
            employer=company,
            location=location,
            description='\n\n'.join(part for part in parts if part),
            apply_url=posting.get('hostedUrl') or posting.get('applyUrl'),
            job_type=categories.get('commitment'),
            is_remote=(posting.get('workplaceType') == 'remote') or None,
            posted_at=posting.get('createdAt'),
        )
