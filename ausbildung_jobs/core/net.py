"""
HTTP client with retries, backoff, Retry-After handling and proxy rotation.
"""
import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .proxy import ProxyRotator

logger = logging.getLogger(__name__)

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 3
MAX_RETRY_AFTER_SECONDS = 30

# 403 is treated as a blocked session: the next attempt goes out through a fresh proxy
RETRYABLE_STATUS = {403, 408, 429, 500, 502, 503, 504}


class FetchError(Exception):
    """A request that failed for good (retries exhausted, non-retryable status, bad body)."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"{reason} ({url})" if status is None else f"HTTP {status}: {reason} ({url})")


class _RetryableStatus(Exception):
    """Internal marker so tenacity retries on retryable HTTP status codes."""

    def __init__(self, status: int, url: str):
        self.status = status
        self.url = url
        super().__init__(f"HTTP {status} for {url}")


class FetchResult:
    """Body and metadata of a successful fetch."""

    def __init__(self, url: str, status: int, headers: Dict[str, str], content: bytes, elapsed_ms: int = 0):
        self.url = url
        self.status = status
        self.headers = headers
        self.content = content
        self.elapsed_ms = elapsed_ms

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="ignore")

    def json(self) -> Any:
        try:
            return json.loads(self.content)
        except ValueError as e:
            raise FetchError(self.url, f"invalid JSON body: {e}", self.status) from e

    def __repr__(self):
        return f"FetchResult(status={self.status}, bytes={len(self.content)}, url={self.url})"


class HTTPClient:
    """HTTP client with politeness headers, retries and per-attempt proxy rotation"""

    def __init__(
        self,
        proxies: Optional[ProxyRotator] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        user_agent: Optional[str] = None,
        retry_wait: Tuple[float, float] = (1.0, 10.0),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.proxies = proxies or ProxyRotator()
        self.timeout = httpx.Timeout(timeout)
        self.max_retries = max_retries
        self.user_agent = user_agent or DEFAULT_UA
        self.retry_wait = retry_wait
        # Injected transport (tests) bypasses proxies
        self._transport = transport

    def _get_headers(self, accept_json: bool = False, custom_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Browser-like headers for a German-locale desktop Chrome"""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": (
                "application/json,text/plain,*/*"
                if accept_json
                else "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
            ),
            "Accept-Language": "de-DE,de;q=0.9,en;q=0.6",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
        if custom_headers:
            headers.update(custom_headers)
        return headers

    def _client(self) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=self._transport)
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, proxy=self.proxies.new_url())

    async def _handle_retry_after(self, headers: Dict[str, str], url: str):
        """Sleep for a Retry-After header (seconds form only), capped"""
        retry_after = headers.get("retry-after") or headers.get("Retry-After")
        if not retry_after:
            return
        try:
            wait_seconds = int(retry_after)
        except ValueError:
            logger.debug(f"[net] Ignoring non-numeric Retry-After header: {retry_after}")
            return
        wait_seconds = min(max(0, wait_seconds), MAX_RETRY_AFTER_SECONDS)
        if wait_seconds > 0:
            logger.info(f"[net] Retry-After header: waiting {wait_seconds}s for {url}")
            await asyncio.sleep(wait_seconds)

    async def _attempt(
        self,
        url: str,
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> FetchResult:
        async with self._client() as client:
            start_time = time.time()
            response = await client.get(url, headers=headers, params=params)
            elapsed_ms = int((time.time() - start_time) * 1000)
            response_headers = dict(response.headers)

            logger.info(f"[net] GET {response.status_code} {response.url} ({len(response.content)} bytes, {elapsed_ms}ms)")

            if response.status_code in RETRYABLE_STATUS:
                if response.status_code in (429, 503):
                    await self._handle_retry_after(response_headers, url)
                raise _RetryableStatus(response.status_code, url)
            if response.status_code >= 400:
                raise FetchError(url, response.reason_phrase or "request failed", response.status_code)

            return FetchResult(str(response.url), response.status_code, response_headers, response.content, elapsed_ms)

    async def fetch(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        accept_json: bool = False,
        retries: Optional[int] = None,
    ) -> FetchResult:
        """
        Fetch a URL, retrying timeouts, transport errors and retryable status codes.

        Args:
            url: URL to fetch
            params: Query parameters
            headers: Extra headers overriding the defaults
            accept_json: Ask for JSON instead of HTML
            retries: Override the client's retry budget (0 = single attempt)

        Returns:
            FetchResult for a 2xx/3xx response

        Raises:
            FetchError when the request fails for good
        """
        max_retries = self.max_retries if retries is None else max(0, retries)
        request_headers = self._get_headers(accept_json=accept_json, custom_headers=headers)
        wait_min, wait_max = self.retry_wait

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_exponential(multiplier=1, min=wait_min, max=wait_max),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError, _RetryableStatus)),
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.debug(f"[net] Attempt {attempt.retry_state.attempt_number} for {url}")
                    return await self._attempt(url, params, request_headers)
        except RetryError as e:
            last = e.last_attempt.exception()
            status = getattr(last, "status", None)
            logger.warning(f"[net] Giving up on {url} after {max_retries + 1} attempt(s): {last}")
            raise FetchError(url, f"retries exhausted: {last}", status) from last
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, f"request error: {e}") from e
        # AsyncRetrying always returns or raises above
        raise FetchError(url, "no attempt made")

    async def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Fetch a URL and decode its JSON body. Raises FetchError on failure."""
        result = await self.fetch(url, params=params, accept_json=True, retries=retries)
        return result.json()
