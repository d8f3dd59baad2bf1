"""
JazzHR (Resumator) connector.

The embeddable widget at https://app.jazz.co/widgets/basic/create/{slug}
either inlines the openings as a `var jobs = [...]` array or renders them as
links to {slug}.applytojob.com. The inline array is preferred because it
carries locations and descriptions.
"""
import json
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import HTML, FetchContext, SourceConnector, format_company_name

WIDGET_URL = "https://app.jazz.co/widgets/basic/create/{slug}"
APPLY_URL = "https://{slug}.applytojob.com/apply/{job_id}"
DEFAULT_LOCATION = 'United States'

INLINE_JOBS_PATTERN = re.compile(r'var\s+jobs\s*=\s*(\[.*?\]);', re.DOTALL)
APPLY_ID_PATTERN = re.compile(r'/apply/([A-Za-z0-9]+)')

COMPANY_NAMES: Dict[str, str] = {
    'applewoodcenters': 'Applewood Centers',
    'mastercenterforaddictionmedicine': 'Master Center for Addiction Medicine',
}

JAZZHR_COMPANIES = list(COMPANY_NAMES)


def parse_inline_jobs(html: str) -> Optional[List[Dict]]:
    """The widget's inline job array, or None when absent or not valid JSON"""
    match = INLINE_JOBS_PATTERN.search(html)
    if not match:
        return None
    try:
        jobs = json.loads(match.group(1))
    except ValueError:
        return None
    return [job for job in jobs if isinstance(job, dict)] if isinstance(jobs, list) else None


def job_id_from_url(url: str, title: str) -> str:
    match = APPLY_ID_PATTERN.search(url)
    return match.group(1) if match else '-'.join(title.lower().split())


class JazzHRConnector(SourceConnector):
    """JazzHR job widget"""

    kind = HTML
    batch_width = 2
    batch_pause_seconds = 0.5

    def __init__(self):
        super().__init__(name="jazzhr", priority=35)

    def work_units(self, context: FetchContext) -> List[str]:
        return context.settings.companies_for(self.name) or list(JAZZHR_COMPANIES)

    async def fetch_unit(self, slug: str, context: FetchContext) -> List[RawRecord]:
        try:
            html = await context.http.fetch_text(WIDGET_URL.format(slug=slug), source=self.name)
        except SourceFetchError as e:
            if e.status_code == 404:
                self.logger.warning(f"[jazzhr] {slug}: widget not found (404)")
                return []
            raise

        company = COMPANY_NAMES.get(slug) or format_company_name(slug)
        jobs = parse_inline_jobs(html)
        if jobs is not None:
            self.logger.info(f"[jazzhr] {company}: {len(jobs)} openings from the inline feed")
            return [self.map_job(job, slug, company) for job in jobs]

        records = self.extract_links(self.get_soup(html), slug, company)
        self.logger.info(f"[jazzhr] {company}: {len(records)} openings from widget links")
        return records

    def map_job(self, job: Dict, slug: str, company: str) -> RawRecord:
        location = ', '.join(part for part in (job.get('city'), job.get('state')) if part)
        return self.record(
            external_id=f"jazzhr-{slug}-{job.get('id')}",
            title=job.get('title'),
            employer=company,
            location=location or DEFAULT_LOCATION,
            description=job.get('description') or '',
            apply_url=APPLY_URL.format(slug=slug, job_id=job.get('id')),
        )

    def extract_links(self, soup: BeautifulSoup, slug: str, company: str) -> List[RawRecord]:
        pairs = []
        for link in soup.find_all('a', href=True):
            if 'applytojob.com' in link['href']:
                pairs.append((' '.join(link.get_text(' ').split()), link['href']))
        for node in soup.find_all(attrs={'data-title': True, 'data-url': True}):
            pairs.append((node['data-title'].strip(), node['data-url']))

        records = []
        seen_urls = set()
        for title, url in pairs:
            if not title or url in seen_urls:
                continue
            seen_urls.add(url)
            records.append(self.record(
                external_id=f"jazzhr-{slug}-{job_id_from_url(url, title)}",
                title=title,
                employer=company,
                location=DEFAULT_LOCATION,
                apply_url=url,
            ))
        return records
