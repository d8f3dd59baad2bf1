"""
Career page connector.

Scrapes employer career pages that have no API. Pages are configured in
PMHNP_CAREER_PAGE_URLS as comma-separated entries, either a bare URL or
"Employer Name|URL".

Extraction order:
1. JSON-LD JobPosting blocks (richest, includes descriptions)
2. Common job listing containers
3. Links whose text or path looks like a posting
"""
import json
from typing import Dict, List, NamedTuple, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from pipeline.models import RawRecord

from .base import HTML, FetchContext, SourceConnector, format_company_name

# Listing containers, most specific first
JOB_SELECTORS = [
    '.job-listing', '.job-item', '.career-item', '.position',
    'article.job', 'li.job', 'tr.job-row',
    'article[class*="job"]', 'li[class*="job"]', 'div[class*="job-"]',
    'div[class*="posting"]', 'div[class*="opening"]', 'div[class*="opportunity"]',
    'ul.jobs li', 'ul.positions li', 'ul[class*="job"] li',
]

LINK_TEXT_KEYWORDS = ('nurse practitioner', 'pmhnp', 'psychiatric', 'aprn', 'np ')
LINK_PATH_KEYWORDS = ('/job', '/position', '/career', '/opening', '/posting', '/opportunit')
MIN_TITLE_LENGTH = 5
MAX_LINKS = 50


class CareerPage(NamedTuple):
    url: str
    employer: str


def parse_page_entry(entry: str) -> Optional[CareerPage]:
    if '|' in entry:
        name, url = (part.strip() for part in entry.split('|', 1))
    else:
        name, url = '', entry.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    if not name:
        host = parsed.netloc.lower()
        if host.startswith('www.'):
            host = host[4:]
        name = format_company_name(host.split('.')[0])
    return CareerPage(url, name)


def _job_location(posting: Dict) -> str:
    location = posting.get('jobLocation')
    if isinstance(location, list):
        location = location[0] if location else None
    if not isinstance(location, dict):
        return 'Remote' if posting.get('jobLocationType') == 'TELECOMMUTE' else ''
    address = location.get('address') or {}
    if not isinstance(address, dict):
        return str(address)
    parts = [address.get('addressLocality'), address.get('addressRegion')]
    return ', '.join(part for part in parts if part)


def _json_ld_postings(soup: BeautifulSoup) -> List[Dict]:
    postings = []
    for script in soup.find_all('script', type='application/ld+json'):
        try:
            data = json.loads(script.string or '')
        except ValueError:
            continue
        items = data if isinstance(data, list) else data.get('@graph', [data]) if isinstance(data, dict) else []
        postings.extend(item for item in items if isinstance(item, dict) and item.get('@type') == 'JobPosting')
    return postings


class CareerPageConnector(SourceConnector):
    """HTML career pages (BeautifulSoup + lxml)"""

    kind = HTML
    batch_width = 5
    batch_pause_seconds = 0.5

    def __init__(self):
        super().__init__(name="career_page", priority=30)

    def missing_configuration(self, context: FetchContext) -> Optional[str]:
        if context.settings.career_page_urls or context.extra.get('career_page_urls'):
            return None
        return 'PMHNP_CAREER_PAGE_URLS'

    def work_units(self, context: FetchContext) -> List[CareerPage]:
        entries = context.extra.get('career_page_urls') or context.settings.career_page_urls
        pages = [parse_page_entry(entry) for entry in entries]
        return [page for page in pages if page]

    async def fetch_unit(self, page: CareerPage, context: FetchContext) -> List[RawRecord]:
        html = await context.http.fetch_text(page.url, source=self.name)
        records = self.extract(html, page)
        self.logger.info(f"[career_page] {page.employer}: {len(records)} postings from {page.url}")
        return records

    def extract(self, html: str, page: CareerPage) -> List[RawRecord]:
        soup = self.get_soup(html)

        postings = _json_ld_postings(soup)
        if postings:
            self.logger.debug(f"[career_page] {len(postings)} JSON-LD postings on {page.url}")
            return [self.map_posting(posting, page) for posting in postings if posting.get('title')]

        records: List[RawRecord] = []
        seen_urls = set()
        for link, container in self._find_links(soup):
            href = link.get('href', '')
            if not href or href.startswith('#') or href.startswith('javascript:'):
                continue
            apply_url = urljoin(page.url, href)
            key = apply_url.split('#')[0].rstrip('/')
            if key in seen_urls:
                continue
            seen_urls.add(key)

            title = ' '.join(link.get_text(' ').split())
            if len(title) < MIN_TITLE_LENGTH and container is not None:
                title = ' '.join(container.get_text(' ').split())[:100]
            if len(title) < MIN_TITLE_LENGTH:
                continue
            snippet = ' '.join(container.get_text(' ').split())[:500] if container is not None else ''
            records.append(self.record(
                title=title,
                employer=page.employer,
                location='',
                description=snippet,
                apply_url=apply_url,
                source_site=urlparse(page.url).netloc,
            ))
        return records

    def _find_links(self, soup: BeautifulSoup):
        for selector in JOB_SELECTORS:
            containers = soup.select(selector)
            pairs = [(c.find('a', href=True), c) for c in containers]
            pairs = [(link, c) for link, c in pairs if link is not None]
            if pairs:
                self.logger.debug(f"[career_page] {len(pairs)} listings via selector {selector}")
                return pairs[:MAX_LINKS]

        links = []
        for link in soup.find_all('a', href=True):
            text = link.get_text(' ').lower()
            href = link['href'].lower()
            if any(k in text for k in LINK_TEXT_KEYWORDS) or any(k in href for k in LINK_PATH_KEYWORDS):
                links.append((link, None))
        return links[:MAX_LINKS]

    def map_posting(self, posting: Dict, page: CareerPage) -> RawRecord:
        org = posting.get('hiringOrganization')
        employer = org.get('name') if isinstance(org, dict) else None
        salary = posting.get('baseSalary') if isinstance(posting.get('baseSalary'), dict) else {}
        value = salary.get('value') if isinstance(salary.get('value'), dict) else {}
        unit = (value.get('unitText') or '').lower()
        identifier = posting.get('identifier')
        external_id = identifier.get('value') if isinstance(identifier, dict) else identifier
        return self.record(
            external_id=external_id,
            title=posting.get('title'),
            employer=employer or page.employer,
            location=_job_location(posting),
            description=posting.get('description') or '',
            apply_url=posting.get('url') or page.url,
            min_salary=value.get('minValue') or value.get('value'),
            max_salary=value.get('maxValue'),
            salary_period={'year': 'annual', 'hour': 'hourly', 'month': 'monthly', 'week': 'weekly'}.get(unit),
            is_remote=posting.get('jobLocationType') == 'TELECOMMUTE',
            job_type=posting.get('employmentType') if isinstance(posting.get('employmentType'), str) else None,
            posted_at=posting.get('datePosted'),
            expires_at=posting.get('validThrough'),
            source_site=urlparse(page.url).netloc,
        )
