"""
Tests for the connector HTTP client.
"""

import json
from unittest.mock import patch

import httpx
import pytest
from tenacity import wait_none

from core.errors import RateLimitedError, SourceFetchError
from core.net import DEFAULT_UA, HTTPClient


def _client(handler):
    return HTTPClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_json_sends_identity():
    """Test that JSON is decoded and the bot user agent is sent."""
    seen = {}

    def handler(request):
        seen['ua'] = request.headers['User-Agent']
        seen['params'] = dict(request.url.params)
        return httpx.Response(200, json={'jobs': [1, 2]})

    data = await _client(handler).fetch_json('https://api.test/jobs', params={'q': 'pmhnp'})
    assert data == {'jobs': [1, 2]}
    assert seen['ua'] == DEFAULT_UA
    assert seen['params'] == {'q': 'pmhnp'}


@pytest.mark.asyncio
async def test_post_json_body():
    """Test POST requests carry a JSON body."""
    def handler(request):
        assert request.method == 'POST'
        assert json.loads(request.content) == {"keywords": "PMHNP"}
        return httpx.Response(200, json={'ok': True})

    assert await _client(handler).fetch_json('https://api.test/', method='post', json_data={'keywords': 'PMHNP'}) == {'ok': True}


@pytest.mark.asyncio
async def test_non_2xx_raises():
    """Test that server errors map to SourceFetchError with the status code."""
    client = _client(lambda request: httpx.Response(500, text='boom'))
    with pytest.raises(SourceFetchError) as exc_info:
        await client.fetch_json('https://api.test/jobs', source='lever')
    assert exc_info.value.status_code == 500
    assert exc_info.value.source == 'lever'
    assert '[lever]' in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_raises():
    """Test that timeouts map to SourceFetchError."""
    def handler(request):
        raise httpx.ReadTimeout('slow', request=request)

    with pytest.raises(SourceFetchError):
        await _client(handler).fetch_text('https://careers.test/')


@pytest.mark.asyncio
async def test_malformed_json_raises():
    """Test that undecodable bodies map to SourceFetchError."""
    client = _client(lambda request: httpx.Response(200, text='<html>not json</html>'))
    with pytest.raises(SourceFetchError):
        await client.fetch_json('https://api.test/jobs')


@pytest.mark.asyncio
async def test_429_not_retried_for_free_apis():
    """Test that rate limits are not retried unless the API is paid."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    with pytest.raises(RateLimitedError):
        await _client(handler).fetch_json('https://api.test/jobs')
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_429_retried_for_paid_apis():
    """Test that a paid API call recovers after a 429."""
    responses = [httpx.Response(429), httpx.Response(200, json={'data': []})]

    with patch('core.net.RATE_LIMIT_WAIT', wait_none()):
        data = await _client(lambda request: responses.pop(0)).fetch_json('https://api.test/jobs', paid=True)
    assert data == {'data': []}
    assert responses == []


@pytest.mark.asyncio
async def test_429_retry_gives_up():
    """Test that paid retries stop after three attempts."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    with patch('core.net.RATE_LIMIT_WAIT', wait_none()):
        with pytest.raises(RateLimitedError):
            await _client(handler).fetch_json('https://api.test/jobs', paid=True)
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_other_errors_not_retried_for_paid_apis():
    """Test that only 429 is retried."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    with patch('core.net.RATE_LIMIT_WAIT', wait_none()):
        with pytest.raises(SourceFetchError):
            await _client(handler).fetch_json('https://api.test/jobs', paid=True)
    assert len(calls) == 1
