"""
Shared test doubles: a scripted client standing in for HTTPClient.
"""
from typing import Any, Dict, List, Optional, Tuple

import pytest

from ausbildung_jobs.core.net import FetchError, FetchResult


class FakeClient:
    """
    Scripted client.

    `pages` maps absolute URLs to HTML strings (or exceptions to raise);
    `api_pages` maps Tier 1 page numbers to JSON payloads (or exceptions).
    Anything not scripted fails with a 404 FetchError.
    """

    def __init__(self, pages: Optional[Dict[str, Any]] = None, api_pages: Optional[Dict[int, Any]] = None):
        self.pages = pages or {}
        self.api_pages = api_pages or {}
        self.requests: List[Tuple[str, Optional[Dict[str, Any]]]] = []

    @property
    def requested_urls(self) -> List[str]:
        return [url for url, _ in self.requests]

    @property
    def requested_api_pages(self) -> List[int]:
        return [int(params['page']) for url, params in self.requests if params and 'page' in params]

    async def fetch(self, url, params=None, headers=None, accept_json=False, retries=None):
        self.requests.append((url, params))
        response = self.pages.get(url)
        if response is None:
            raise FetchError(url, "Not Found", 404)
        if isinstance(response, Exception):
            raise response
        return FetchResult(url, 200, {}, response.encode('utf-8'))

    async def fetch_json(self, url, params=None, retries=None):
        self.requests.append((url, params))
        page = int((params or {}).get('page', 1))
        payload = self.api_pages.get(page)
        if payload is None:
            raise FetchError(url, "Not Found", 404)
        if isinstance(payload, Exception):
            raise payload
        return payload


@pytest.fixture
def fake_client():
    return FakeClient()
