"""
iCIMS career site connector.

iCIMS sites have no JSON API. The keyword search page lists postings as
<a class="iCIMS_Anchor" title="{id} - {title} | {location}"> links and the
description is scraped from each posting page.
"""
import re
from typing import Dict, List, NamedTuple, Optional, Set

from bs4 import BeautifulSoup

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import HTML, FetchContext, SourceConnector, format_company_name, worth_detail_fetch

SEARCH_URL = "https://{slug}.icims.com/jobs/search"
SEARCH_TERMS = ('psychiatric nurse practitioner', 'PMHNP')
DEFAULT_LOCATION = 'United States'

JOB_URL_PATTERN = re.compile(r'\.icims\.com/jobs/(\d+)/')
ANCHOR_TITLE_PATTERN = re.compile(r'^\d+\s*-\s*(.+?)(?:\|(.+))?$')
DESCRIPTION_SELECTORS = ('.iCIMS_InfoMsg_Job', '[class*="iCIMS_JobContent"]')

COMPANY_NAMES: Dict[str, str] = {
    'careers2-universalhealthservices': 'Universal Health Services',
    'facilityjobs-acadiahealthcare': 'Acadia Healthcare',
    'careers-vhchealth': 'VHC Health',
}

ICIMS_COMPANIES = list(COMPANY_NAMES)


class Listing(NamedTuple):
    job_id: str
    title: str
    location: str
    url: str


def parse_listings(soup: BeautifulSoup) -> List[Listing]:
    """Posting links on a search results page, in page order"""
    listings = []
    for link in soup.select('a.iCIMS_Anchor[href]'):
        match = JOB_URL_PATTERN.search(link['href'])
        if not match:
            continue
        label = link.get('title') or ' '.join(link.get_text(' ').split())
        parsed = ANCHOR_TITLE_PATTERN.match(label.strip())
        title = parsed.group(1).strip() if parsed else label.strip()
        location = (parsed.group(2) or '').strip() if parsed else ''
        url = link['href'].replace('?in_iframe=1', '').replace('&in_iframe=1', '')
        listings.append(Listing(match.group(1), title, location or DEFAULT_LOCATION, url))
    return listings


class ICIMSConnector(SourceConnector):
    """iCIMS keyword search pages (BeautifulSoup + lxml)"""

    kind = HTML
    batch_width = 1
    batch_pause_seconds = 0.5
    request_delay_seconds = 0.2

    def __init__(self):
        super().__init__(name="icims", priority=40)

    def work_units(self, context: FetchContext) -> List[str]:
        return context.settings.companies_for(self.name) or list(ICIMS_COMPANIES)

    async def _fetch_description(self, url: str, context: FetchContext) -> str:
        try:
            html = await context.http.fetch_text(url, source=self.name)
        except SourceFetchError as e:
            self.logger.debug(f"[icims] no description for {url}: {e}")
            return ''
        soup = self.get_soup(html)
        for selector in DESCRIPTION_SELECTORS:
            node = soup.select_one(selector)
            if node is not None:
                return node.decode_contents()
        return ''

    async def fetch_unit(self, slug: str, context: FetchContext) -> List[RawRecord]:
        company = COMPANY_NAMES.get(slug) or format_company_name(slug)
        records: List[RawRecord] = []
        seen_ids: Set[str] = set()

        for term in SEARCH_TERMS:
            try:
                html = await context.http.fetch_text(
                    SEARCH_URL.format(slug=slug),
                    params={'ss': 1, 'searchKeyword': term, 'in_iframe': 1},
                    source=self.name,
                )
            except SourceFetchError as e:
                self.logger.warning(f"[icims] {company}: search '{term}' failed: {e}")
                continue

            for listing in parse_listings(self.get_soup(html)):
                if listing.job_id in seen_ids:
                    continue
                seen_ids.add(listing.job_id)
                if not worth_detail_fetch(listing.title):
                    continue
                description = await self._fetch_description(listing.url, context)
                await context.sleep(self.request_delay_seconds)
                records.append(self.map_listing(listing, slug, company, description))

        self.logger.info(f"[icims] {company}: {len(records)} candidate postings ({len(seen_ids)} listed)")
        return records

    def map_listing(self, listing: Listing, slug: str, company: str, description: Optional[str]) -> RawRecord:
        return self.record(
            external_id=f"icims-{slug}-{listing.job_id}",
            title=listing.title,
            employer=company,
            location=listing.location,
            description=description or '',
            apply_url=listing.url,
        )
