"""
Tests for apply link validation and liveness checks.
"""

import httpx
import pytest

from core.link_validator import LinkValidator, is_tracking_url, is_trusted_ats, page_looks_dead
from core.net import HTTPClient


def _validator(handler):
    return LinkValidator(HTTPClient(transport=httpx.MockTransport(handler)))


def _fail(request):
    raise AssertionError(f"unexpected request to {request.url}")


def test_host_helpers():
    """Test trusted ATS and tracking host detection."""
    assert is_trusted_ats('https://boards.greenhouse.io/acme/jobs/1')
    assert is_trusted_ats('https://acme.wd5.myworkdayjobs.com/en-US/careers/job/1')
    assert not is_trusted_ats('https://careers.acme.test/jobs/1')
    assert is_tracking_url('https://www.adzuna.com/land/ad/123')
    assert not is_tracking_url('https://notadzuna.com/x')
    assert page_looks_dead('<h1>This position has been filled</h1>')
    assert not page_looks_dead('<h1>Apply now</h1>')


class TestValidate:
    """Test LinkValidator.validate()."""

    @pytest.mark.asyncio
    async def test_trusted_ats_skips_network(self):
        """Test that trusted ATS links are accepted without a request."""
        result = await _validator(_fail).validate('https://jobs.lever.co/acme/123')
        assert result.clean_url == 'https://jobs.lever.co/acme/123'
        assert result.is_usable

    @pytest.mark.asyncio
    async def test_invalid_urls(self):
        """Test that empty and malformed URLs are unusable."""
        validator = _validator(_fail)
        for url in ('', None, 'ftp://files.test/job', 'not a url'):
            result = await validator.validate(url)
            assert result.clean_url is None
            assert result.error

    @pytest.mark.asyncio
    async def test_alive_link(self):
        """Test a normal employer page."""
        result = await _validator(lambda r: httpx.Response(200, text='Apply today')).validate('https://careers.acme.test/1')
        assert result.status == 200
        assert result.clean_url == 'https://careers.acme.test/1'
        assert not result.is_dead

    @pytest.mark.asyncio
    async def test_dead_status(self):
        """Test that 404 marks the link dead."""
        result = await _validator(lambda r: httpx.Response(404)).validate('https://careers.acme.test/1')
        assert result.is_dead
        assert result.clean_url is None
        assert not result.is_usable

    @pytest.mark.asyncio
    async def test_dead_page_text(self):
        """Test that a 200 page saying the job is gone is dead."""
        handler = lambda r: httpx.Response(200, text='<p>This job is no longer available.</p>')
        result = await _validator(handler).validate('https://careers.acme.test/1')
        assert result.is_dead

    @pytest.mark.asyncio
    async def test_network_error_keeps_link(self):
        """Test that an unreachable host is not treated as dead."""
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        result = await _validator(handler).validate('https://careers.acme.test/1')
        assert not result.is_dead
        assert result.clean_url == 'https://careers.acme.test/1'
        assert result.error

    @pytest.mark.asyncio
    async def test_tracking_link_resolved(self):
        """Test that aggregator redirects are replaced by their destination."""
        def handler(request):
            if request.url.host.endswith('adzuna.com'):
                return httpx.Response(302, headers={'Location': 'https://careers.acme.test/jobs/9'})
            return httpx.Response(200, text='Apply')

        result = await _validator(handler).validate('https://www.adzuna.com/land/ad/9')
        assert result.was_tracking
        assert result.clean_url == 'https://careers.acme.test/jobs/9'

    @pytest.mark.asyncio
    async def test_tracking_link_stuck_on_tracker(self):
        """Test that a tracking link that never leaves the tracker is rejected but not dead."""
        result = await _validator(lambda r: httpx.Response(200, text='Redirecting')).validate('https://jooble.org/desc/1')
        assert result.is_tracking_url
        assert result.clean_url is None
        assert not result.is_dead

    @pytest.mark.asyncio
    async def test_tracking_link_unreachable(self):
        """Test that an unresolvable tracking link is rejected."""
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        result = await _validator(handler).validate('https://www.adzuna.com/land/ad/9')
        assert result.clean_url is None


class TestLiveness:
    """Test LinkValidator.check_liveness() and check_batch()."""

    @pytest.mark.asyncio
    async def test_head_ok(self):
        """Test that a HEAD 200 is alive without a GET."""
        def handler(request):
            assert request.method == 'HEAD'
            return httpx.Response(200)

        result = await _validator(handler).check_liveness('https://careers.acme.test/1')
        assert not result.is_dead
        assert result.status == 200

    @pytest.mark.asyncio
    async def test_head_rejected_falls_back_to_get(self):
        """Test that HEAD 405 is retried with GET."""
        methods = []

        def handler(request):
            methods.append(request.method)
            if request.method == 'HEAD':
                return httpx.Response(405)
            return httpx.Response(200, text='Apply')

        result = await _validator(handler).check_liveness('https://careers.acme.test/1')
        assert methods == ['HEAD', 'GET']
        assert not result.is_dead

    @pytest.mark.asyncio
    async def test_gone_is_dead(self):
        """Test that 410 is dead."""
        result = await _validator(lambda r: httpx.Response(410)).check_liveness('https://careers.acme.test/1')
        assert result.is_dead

    @pytest.mark.asyncio
    async def test_server_error_is_alive(self):
        """Test that 5xx does not unpublish."""
        result = await _validator(lambda r: httpx.Response(503)).check_liveness('https://careers.acme.test/1')
        assert not result.is_dead
        assert result.status == 503

    @pytest.mark.asyncio
    async def test_check_batch(self):
        """Test concurrent batch checks keyed by URL."""
        def handler(request):
            if request.url.path == '/gone':
                return httpx.Response(404)
            if request.url.path == '/down':
                raise httpx.ConnectError('refused', request=request)
            return httpx.Response(200)

        urls = ['https://a.test/ok', 'https://a.test/gone', 'https://a.test/down']
        results = await _validator(handler).check_batch(urls)
        assert [results[url].is_dead for url in urls] == [False, True, False]
        assert results['https://a.test/down'].error
