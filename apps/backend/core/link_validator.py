"""
Link validation for apply URLs.

Two entry points:
- validate(): full check used at ingestion. Trusted ATS hosts skip the network,
  aggregator tracking links must resolve to a real destination, everything
  else gets one redirect-following GET with a status and body check.
- check_liveness(): cheaper HEAD-first check used by the periodic sweep over
  published postings.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse

import httpx

from core.net import HTTPClient
from core.rule_tables import (
    DEAD_PAGE_PATTERNS,
    DEAD_STATUS_CODES,
    HEAD_REJECTED_STATUS_CODES,
    LIVENESS_DEAD_STATUS_CODES,
    TRACKING_DOMAINS,
    TRUSTED_ATS_HOST_PATTERNS,
)

logger = logging.getLogger(__name__)

VALIDATION_TIMEOUT_SECONDS = 8.0
MAX_REDIRECT_HOPS = 10
BODY_SCAN_CHARS = 5000


@dataclass
class LinkCheckResult:
    """Outcome of a link check. clean_url is None when the link must not be used."""
    url: str
    final_url: Optional[str] = None
    status: Optional[int] = None
    is_dead: bool = False
    is_tracking_url: bool = False
    clean_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def was_tracking(self) -> bool:
        return self.is_tracking_url

    @property
    def is_usable(self) -> bool:
        return self.clean_url is not None and not self.is_dead


def _host(url: str) -> str:
    return (urlparse(url).hostname or '').lower()


def is_trusted_ats(url: str) -> bool:
    host = _host(url)
    return bool(host) and any(pattern in host for pattern in TRUSTED_ATS_HOST_PATTERNS)


def is_tracking_url(url: str) -> bool:
    host = _host(url)
    return bool(host) and any(host == domain or host.endswith('.' + domain) for domain in TRACKING_DOMAINS)


def page_looks_dead(body: str) -> bool:
    prefix = (body or '')[:BODY_SCAN_CHARS].lower()
    return any(pattern in prefix for pattern in DEAD_PAGE_PATTERNS)


class LinkValidator:
    """
    Apply URL validator.

    Features:
    - No network call for trusted ATS hosts
    - Tracking redirects resolved to their destination (or rejected)
    - Redirect following (up to 10 hops) with an 8s timeout
    - Dead detection by status code and filled/expired page text
    """

    def __init__(self, http_client: Optional[HTTPClient] = None, timeout: float = VALIDATION_TIMEOUT_SECONDS):
        self.http_client = http_client or HTTPClient()
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return self.http_client.client(timeout=self.timeout, follow_redirects=True, max_redirects=MAX_REDIRECT_HOPS)

    async def _get(self, url: str) -> httpx.Response:
        async with self._client() as client:
            return await client.get(url)

    def _classify_response(self, result: LinkCheckResult, response: httpx.Response) -> LinkCheckResult:
        result.status = response.status_code
        result.final_url = str(response.url)
        if response.status_code in DEAD_STATUS_CODES or page_looks_dead(response.text):
            result.is_dead = True
            result.clean_url = None
            logger.info(f"[link_validator] Dead: {result.url} ({response.status_code})")
        else:
            result.clean_url = result.final_url
        return result

    async def validate(self, url: Optional[str]) -> LinkCheckResult:
        """
        Validate an apply URL for ingestion.

        Returns:
            LinkCheckResult with clean_url set to the URL to store, or None when
            the link is dead or an unresolvable tracking link.
        """
        url = (url or '').strip()
        result = LinkCheckResult(url=url)
        if not url:
            result.error = 'URL is empty'
            return result

        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            result.error = 'Invalid URL format'
            return result

        if is_trusted_ats(url):
            result.final_url = url
            result.clean_url = url
            return result

        if is_tracking_url(url):
            result.is_tracking_url = True
            try:
                response = await self._get(url)
            except httpx.HTTPError as e:
                result.error = f'Tracking link did not resolve: {e}'
                logger.info(f"[link_validator] Tracking link unresolved: {url} ({e})")
                return result
            if is_tracking_url(str(response.url)):
                result.status = response.status_code
                result.final_url = str(response.url)
                logger.info(f"[link_validator] Tracking link stayed on tracker: {url} -> {response.url}")
                return result
            return self._classify_response(result, response)

        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            # Unreachable right now is not the same as gone.
            result.error = str(e) or e.__class__.__name__
            result.final_url = url
            result.clean_url = url
            logger.debug(f"[link_validator] Network error for {url}, keeping link: {result.error}")
            return result
        return self._classify_response(result, response)

    async def check_liveness(self, url: str) -> LinkCheckResult:
        """
        Sweep-time liveness check: HEAD first, GET only when HEAD is refused.
        404/410 is dead; 5xx and network errors count as alive.
        """
        result = LinkCheckResult(url=url, final_url=url, clean_url=url)
        try:
            async with self._client() as client:
                response = await client.head(url)
                if response.status_code in HEAD_REJECTED_STATUS_CODES:
                    response = await client.get(url)
                    return self._classify_response(result, response)
        except httpx.HTTPError as e:
            result.error = str(e) or e.__class__.__name__
            return result

        result.status = response.status_code
        result.final_url = str(response.url)
        if response.status_code in LIVENESS_DEAD_STATUS_CODES:
            result.is_dead = True
            result.clean_url = None
        return result

    async def check_batch(self, urls: List[str]) -> Dict[str, LinkCheckResult]:
        """
        Liveness-check a batch of URLs concurrently.

        Returns:
            Dictionary mapping URL -> LinkCheckResult
        """
        completed = await asyncio.gather(*(self.check_liveness(url) for url in urls), return_exceptions=True)
        results = {}
        for url, item in zip(urls, completed):
            if isinstance(item, Exception):
                logger.error(f"[link_validator] Batch check error for {url}: {item}")
                results[url] = LinkCheckResult(url=url, final_url=url, clean_url=url, error=str(item))
                continue
            results[url] = item
        return results


_link_validator_instance: Optional[LinkValidator] = None


def get_link_validator() -> LinkValidator:
    """Get or create global link validator instance"""
    global _link_validator_instance
    if _link_validator_instance is None:
        _link_validator_instance = LinkValidator()
    return _link_validator_instance
