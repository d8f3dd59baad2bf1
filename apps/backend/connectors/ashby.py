"""
Ashby job board connector.

https://api.ashbyhq.com/posting-api/job-board/{slug}
"""
from typing import Dict, List, Optional, Tuple

from core.errors import SourceFetchError
from core.salary_normalizer import extract_salary_from_text
from pipeline.models import RawRecord

from .base import DIRECT_API, FetchContext, SourceConnector, format_company_name

API_URL = "https://api.ashbyhq.com/posting-api/job-board/{slug}"

ASHBY_COMPANIES: List[Tuple[str, str]] = [
    ('equip', 'Equip Health'),
    ('ReklameHealth', 'Reklame Health'),
    ('legionhealth', 'Legion Health'),
    ('array-behavioral-care', 'Array Behavioral Care'),
    ('blossom-health', 'Blossom Health'),
    ('sondermind', 'SonderMind'),
    ('hims-and-hers', 'Hims & Hers'),
    ('rula', 'Rula'),
    ('tavahealth', 'Tava Health'),
    ('sesame', 'Sesame Care'),
    ('wheel', 'Wheel Health'),
    ('foresight', 'Foresight Mental Health'),
    ('bravehealth', 'Brave Health'),
    ('visanahealth', 'Visana Health'),
    ('finni-health', 'Finni Health'),
    ('nest-health', 'Nest Health'),
    ('cylinderhealth', 'Cylinder Health'),
    ('tandem-health', 'Tandem Health'),
    ('virtahealth', 'Virta Health'),
    ('summerhealth', 'Summer Health'),
]


def parse_compensation(summary: Optional[str]) -> Tuple[Optional[float], Optional[float], Optional[str]]:
    """'$130K - $180K' -> (130000.0, 180000.0, 'annual'), or (None, None, None)."""
    low, high, period = extract_salary_from_text(summary)
    if low is None:
        return None, None, None
    return low, high, period or 'annual'


class AshbyConnector(SourceConnector):
    """Ashby posting API"""

    kind = DIRECT_API
    batch_width = 10
    batch_pause_seconds = 0.2

    def __init__(self):
        super().__init__(name="ashby", priority=80)

    def work_units(self, context: FetchContext) -> List[Tuple[str, str]]:
        overrides = context.settings.companies_for(self.name)
        if overrides:
            return [(slug, format_company_name(slug)) for slug in overrides]
        return list(ASHBY_COMPANIES)

    async def fetch_unit(self, unit: Tuple[str, str], context: FetchContext) -> List[RawRecord]:
        slug, company = unit
        try:
            data = await context.http.fetch_json(API_URL.format(slug=slug), source=self.name)
        except SourceFetchError as e:
            if e.status_code == 404:
                self.logger.warning(f"[ashby] {slug}: Not found (404)")
                return []
            raise

        jobs = data.get('jobs') or []
        self.logger.info(f"[ashby] {slug}: {len(jobs)} jobs fetched")
        return [self.map_job(job, slug, company) for job in jobs]

    def map_job(self, job: Dict, slug: str, company: str) -> RawRecord:
        location = job.get('location')
        address = ((job.get('address') or {}).get('postalAddress')) or {}
        parts = [address.get(key) for key in ('addressLocality', 'addressRegion', 'addressCountry') if address.get(key)]
        if parts:
            location = ', '.join(parts)
        if not location:
            location = 'Remote' if job.get('isRemote') else 'United States'

        summary = (job.get('compensation') or {}).get('compensationTierSummary')
        low, high, period = parse_compensation(summary)
        return self.record(
            external_id=f"ashby-{slug}-{job.get('id')}",
            title=job.get('title'),
            employer=company,
            location=location,
            description=job.get('descriptionHtml') or '',
            apply_url=job.get('jobUrl'),
            is_remote=job.get('isRemote'),
            min_salary=low,
            max_salary=high,
            salary_period=period,
            salary_text=summary,
            job_type=job.get('employmentType'),
            posted_at=job.get('publishedAt') or job.get('updatedAt'),
        )
