"""
HTTP client for source connectors and the link validator.
Wraps httpx.AsyncClient with the bot user agent, per-call timeouts, JSON
helpers and a 429-only retry for paid APIs.
"""
import os
import time
import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from core.errors import RateLimitedError, SourceFetchError

logger = logging.getLogger(__name__)

DEFAULT_UA = "PMHNPJobsBot/1.0 (+https://pmhnphiring.com)"
DEFAULT_TIMEOUT = 15.0
RATE_LIMIT_ATTEMPTS = 3
# Read at call time so tests can swap in tenacity.wait_none().
RATE_LIMIT_WAIT = wait_random_exponential(multiplier=1, max=10)


class HTTPClient:
    """Async HTTP client with the crawler identity and consistent error mapping"""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent or os.getenv("PMHNP_CRAWLER_UA", DEFAULT_UA)
        self.timeout = timeout or DEFAULT_TIMEOUT
        # Injected in tests (httpx.MockTransport)
        self.transport = transport

    def _get_headers(self, custom_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json,text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
        if custom_headers:
            headers.update(custom_headers)
        return headers

    def client(self, timeout: Optional[float] = None, follow_redirects: bool = True, max_redirects: int = 20) -> httpx.AsyncClient:
        """Build an AsyncClient with this client's identity and transport"""
        kwargs: Dict[str, Any] = {
            "timeout": httpx.Timeout(timeout or self.timeout),
            "follow_redirects": follow_redirects,
            "max_redirects": max_redirects,
            "headers": self._get_headers(),
        }
        if self.transport is not None:
            kwargs["transport"] = self.transport
        return httpx.AsyncClient(**kwargs)

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
        timeout: Optional[float] = None,
        source: Optional[str] = None,
    ) -> httpx.Response:
        """
        Send one request and return the response if it is 2xx.

        Raises:
            RateLimitedError: on HTTP 429
            SourceFetchError: on any other non-2xx, timeout or connection failure
        """
        async with self.client(timeout=timeout) as client:
            start_time = time.time()
            try:
                response = await client.request(
                    method.upper(),
                    url,
                    headers=self._get_headers(headers),
                    params=params,
                    json=json_data,
                )
            except httpx.TimeoutException as e:
                logger.warning(f"[net] Timeout fetching {url}: {e}")
                raise SourceFetchError(f"Timeout fetching {url}", source=source) from e
            except httpx.HTTPError as e:
                logger.warning(f"[net] Request failed for {url}: {e}")
                raise SourceFetchError(f"Request failed for {url}: {e}", source=source) from e

            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.debug(f"[net] {method.upper()} {response.status_code} {url} ({elapsed_ms}ms)")

            if response.status_code == 429:
                raise RateLimitedError(f"Rate limited by {url}", source=source, status_code=429)
            if not 200 <= response.status_code < 300:
                raise SourceFetchError(f"Unexpected response from {url}", source=source, status_code=response.status_code)
            return response

    async def _request_with_rate_limit_retry(self, paid: bool, **kwargs) -> httpx.Response:
        if not paid:
            return await self.request(**kwargs)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(RATE_LIMIT_ATTEMPTS),
            wait=RATE_LIMIT_WAIT,
            retry=retry_if_exception_type(RateLimitedError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(f"[net] 429 from {kwargs.get('url')}, attempt {attempt.retry_state.attempt_number}/{RATE_LIMIT_ATTEMPTS}")
                return await self.request(**kwargs)

    async def fetch_json(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
        timeout: Optional[float] = None,
        source: Optional[str] = None,
        paid: bool = False,
    ) -> Any:
        """
        Fetch and decode a JSON document.

        Args:
            paid: retry HTTP 429 with randomized exponential backoff (paid APIs only)
        """
        response = await self._request_with_rate_limit_retry(
            paid,
            url=url,
            method=method,
            headers=headers,
            params=params,
            json_data=json_data,
            timeout=timeout,
            source=source,
        )
        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(f"Malformed JSON from {url}", source=source, status_code=response.status_code) from e

    async def fetch_text(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        source: Optional[str] = None,
    ) -> str:
        response = await self.request(url, headers=headers, params=params, timeout=timeout, source=source)
        return response.text
