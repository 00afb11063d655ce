"""
Unit tests for the HTTP client (retries, status handling, proxies).
"""
import httpx
import pytest

from ausbildung_jobs.core.net import FetchError, HTTPClient
from ausbildung_jobs.core.proxy import ProxyRotator

URL = "https://www.ausbildung.de/suche/"


def _client(handler, max_retries=3):
    return HTTPClient(max_retries=max_retries, retry_wait=(0, 0), transport=httpx.MockTransport(handler))


class TestFetch:
    """Retry and failure behaviour."""

    @pytest.mark.asyncio
    async def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        result = await _client(handler).fetch(URL, params={'page': '2'})
        assert result.status == 200
        assert result.text == "<html>ok</html>"
        assert seen[0].url.params['page'] == '2'
        assert seen[0].headers['Accept-Language'].startswith('de-DE')
        assert 'Chrome' in seen[0].headers['User-Agent']

    @pytest.mark.asyncio
    async def test_retryable_status_then_success(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503 if len(calls) == 1 else 403)
            return httpx.Response(200, text="ok")

        result = await _client(handler).fetch(URL)
        assert result.status == 200
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_transport_error_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, text="ok")

        result = await _client(handler).fetch(URL)
        assert result.text == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_not_found_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(FetchError) as exc_info:
            await _client(handler).fetch(URL)
        assert exc_info.value.status == 404
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(FetchError) as exc_info:
            await _client(handler, max_retries=2).fetch(URL)
        assert exc_info.value.status == 500
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        with pytest.raises(FetchError):
            await _client(handler).fetch(URL, retries=0)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_fetch_json(self):
        def handler(request):
            assert request.headers['Accept'].startswith('application/json')
            return httpx.Response(200, json={'pageProps': {'jobs': []}})

        assert await _client(handler).fetch_json(URL) == {'pageProps': {'jobs': []}}

    @pytest.mark.asyncio
    async def test_invalid_json_raises_fetch_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>kein JSON</html>")

        with pytest.raises(FetchError):
            await _client(handler).fetch_json(URL)


class TestProxyRotator:
    """Round-robin proxy rotation."""

    def test_direct_connection_without_proxies(self):
        rotator = ProxyRotator()
        assert not rotator.enabled
        assert rotator.new_url() is None

    def test_round_robin(self):
        rotator = ProxyRotator(['http://p1:8000', ' ', 'http://p2:8000'])
        assert rotator.enabled
        assert [rotator.new_url() for _ in range(3)] == ['http://p1:8000', 'http://p2:8000', 'http://p1:8000']


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
